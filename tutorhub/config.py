"""
Runtime settings for TutorHub.

Defaults can be overridden from ``TUTORHUB_*`` environment variables and,
on the command line, from CLI flags.
"""

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "./data/tutorhub.db"
MIN_CONTENT_LENGTH = 100

_ENV_PREFIX = "TUTORHUB_"


class Settings(BaseModel):
    """Resolved configuration for one process."""

    db_path: str = DEFAULT_DB_PATH
    docs_base_url: Optional[str] = None
    request_timeout: float = Field(default=10.0, gt=0)
    min_content_length: int = Field(default=MIN_CONTENT_LENGTH, ge=1)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``TUTORHUB_*`` variables in *environ*."""
        env = os.environ if environ is None else environ
        values = {}
        mapping = {
            "DB_PATH": "db_path",
            "DOCS_URL": "docs_base_url",
            "REQUEST_TIMEOUT": "request_timeout",
            "LOG_LEVEL": "log_level",
        }
        for suffix, field_name in mapping.items():
            raw = env.get(_ENV_PREFIX + suffix)
            if raw:
                values[field_name] = raw
        if values:
            logger.debug("Settings overridden from environment: %s", sorted(values))
        return cls(**values)

    def with_overrides(self, **overrides: object) -> "Settings":
        """Return a copy with non-``None`` *overrides* applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return self.model_validate({**self.model_dump(), **changes})

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO
