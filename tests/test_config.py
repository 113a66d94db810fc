"""
pytest suite for runtime settings.
"""

import logging
import os
import sys

import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tutorhub.config import DEFAULT_DB_PATH, MIN_CONTENT_LENGTH, Settings


class TestSettings:
    """Defaults, environment and CLI overrides."""

    def test_defaults(self):
        s = Settings.from_env({})
        assert s.db_path == DEFAULT_DB_PATH
        assert s.docs_base_url is None
        assert s.request_timeout == 10.0
        assert s.min_content_length == MIN_CONTENT_LENGTH == 100

    def test_from_env(self):
        s = Settings.from_env(
            {
                "TUTORHUB_DB_PATH": "/tmp/x.db",
                "TUTORHUB_DOCS_URL": "http://docs.local",
                "TUTORHUB_REQUEST_TIMEOUT": "2.5",
                "TUTORHUB_LOG_LEVEL": "debug",
                "UNRELATED": "1",
            }
        )
        assert s.db_path == "/tmp/x.db"
        assert s.docs_base_url == "http://docs.local"
        assert s.request_timeout == 2.5
        assert s.log_level_value == logging.DEBUG

    def test_overrides_skip_none(self):
        s = Settings.from_env({"TUTORHUB_DB_PATH": "/tmp/env.db"})
        s2 = s.with_overrides(db_path=None, request_timeout=3)
        assert s2.db_path == "/tmp/env.db"
        assert s2.request_timeout == 3.0
        assert s.request_timeout == 10.0

    def test_invalid_timeout_rejected(self):
        with pytest.raises(ValidationError):
            Settings.from_env({"TUTORHUB_REQUEST_TIMEOUT": "0"})
        with pytest.raises(ValidationError):
            Settings().with_overrides(request_timeout=-1)

    def test_unknown_log_level_falls_back_to_info(self):
        assert Settings(log_level="chatty").log_level_value == logging.INFO
