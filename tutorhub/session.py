"""
Caller-visible state for the tutorial currently being viewed.

Only the most recently requested tutorial may update the session. Each
``open`` takes a new request token; when a resolution finishes, its result
is applied only if its token is still current. ``close`` (return to the
catalog) also advances the token, so late results are dropped.
"""

import itertools
import logging
from typing import Literal, Optional

from tutorhub.models import ResolvedContent, TutorialMetadata
from tutorhub.resolver import ContentResolver

logger = logging.getLogger(__name__)

SessionStatus = Literal["idle", "loading", "loaded", "error"]


class TutorialSession:
    """Holds what the viewer shows: loading, loaded content, or an error."""

    def __init__(self, resolver: ContentResolver) -> None:
        self.resolver = resolver
        self._tokens = itertools.count(1)
        self._current_token = 0
        self.tutorial: Optional[TutorialMetadata] = None
        self.status: SessionStatus = "idle"
        self.content: str = ""
        self.error: Optional[str] = None
        self.result: Optional[ResolvedContent] = None

    def _is_current(self, token: int) -> bool:
        return token == self._current_token

    async def open(self, tutorial: TutorialMetadata) -> Optional[ResolvedContent]:
        """Resolve *tutorial* and show it, unless superseded meanwhile.

        Returns the result when it was applied, ``None`` when it was
        discarded as stale.
        """
        token = self._current_token = next(self._tokens)
        self.tutorial = tutorial
        self.status = "loading"
        self.content = ""
        self.error = None
        self.result = None

        try:
            result = await self.resolver.resolve(tutorial)
        except Exception as exc:
            if not self._is_current(token):
                logger.debug("Discarding stale failure for %s (request %d).", tutorial.id, token)
                return None
            logger.error("Resolving %s failed: %s", tutorial.id, exc, exc_info=True)
            result = ResolvedContent(
                tutorial_id=tutorial.id,
                status="unavailable",
                source="user_store" if tutorial.is_user_authored else "placeholder",
                error=str(exc) or type(exc).__name__,
            )

        if not self._is_current(token):
            logger.debug("Discarding stale result for %s (request %d).", tutorial.id, token)
            return None

        self.result = result
        if result.ok:
            self.status = "loaded"
            self.content = result.text
        else:
            self.status = "error"
            self.content = result.text
            self.error = result.error or "content unavailable"
        return result

    async def retry(self) -> Optional[ResolvedContent]:
        """Re-resolve the current tutorial (the retry affordance)."""
        if self.tutorial is None:
            return None
        return await self.open(self.tutorial)

    def close(self) -> None:
        """Return to the catalog; any in-flight result will be ignored."""
        self._current_token = next(self._tokens)
        self.tutorial = None
        self.status = "idle"
        self.content = ""
        self.error = None
        self.result = None

    @property
    def is_loaded(self) -> bool:
        return self.status == "loaded"
