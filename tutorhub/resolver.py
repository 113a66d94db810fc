"""
Layered content resolution.

A tutorial body is obtained by trying an explicit, ordered list of tiers
and stopping at the first one that yields text of at least
``min_length`` characters:

    user-authored tutorials:  user store (terminal on failure)
    built-in tutorials:       network -> embedded table -> runtime overrides

Tiers are tried strictly one after another; a slow network tier delays
the fallbacks rather than racing them. Individual tier failures are
logged and swallowed, unexpected exceptions from a tier included. Only
total exhaustion is reported, as a ``ResolvedContent`` with
``status == "unavailable"``.
"""

import asyncio
import logging
from typing import Callable, List, Mapping, Optional, Sequence, Union

from tutorhub.config import MIN_CONTENT_LENGTH, Settings
from tutorhub.embedded_content import EMBEDDED_CONTENT
from tutorhub.errors import ContentTooShortError, TransportError, TutorHubError
from tutorhub.fetchers.http_fetcher import build_url, fetch_text
from tutorhub.models import ResolvedContent, TutorialMetadata
from tutorhub.store import UserTutorialStore
from tutorhub.utils import timed

logger = logging.getLogger(__name__)

OverrideSource = Union[Mapping[str, str], Callable[[], Optional[Mapping[str, str]]], None]


def validate_length(text: Optional[str], tier: str, minimum: int = MIN_CONTENT_LENGTH) -> str:
    """Return *text* if it is at least *minimum* characters, else raise."""
    length = len(text) if text else 0
    if length < minimum:
        raise ContentTooShortError(tier, length, minimum)
    return text  # type: ignore[return-value]


def placeholder_document(tutorial_id: str) -> str:
    """Informational body shown when no tier could supply content."""
    return f"""
# Tutorial content unavailable

The document for this tutorial could not be loaded.

## Tutorial id: {tutorial_id}

### How to add content

1. Serve a Markdown file at the tutorial's content locator.
2. Or add an entry for `{tutorial_id}` to `tutorhub.embedded_content.EMBEDDED_CONTENT`.
3. Or inject it at runtime through the resolver's override map
   (`tutorhub show {tutorial_id} --overrides content.json`).
"""


# =========================================================================
# Tiers
# =========================================================================


class ContentTier:
    """One candidate source of a tutorial body."""

    name = "tier"

    async def fetch(self, tutorial: TutorialMetadata) -> str:
        raise NotImplementedError


class UserStoreTier(ContentTier):
    name = "user_store"

    def __init__(self, store: Optional[UserTutorialStore]) -> None:
        self.store = store

    async def fetch(self, tutorial: TutorialMetadata) -> str:
        if self.store is None:
            raise TransportError("no user tutorial store configured", tier=self.name)
        record = await self.store.require(tutorial.id)
        return record.content


class NetworkTier(ContentTier):
    name = "network"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        fetcher: Callable[[str, float], str] = fetch_text,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.fetcher = fetcher

    async def fetch(self, tutorial: TutorialMetadata) -> str:
        if not tutorial.content_locator:
            raise TransportError(f"tutorial {tutorial.id} has no content locator", tier=self.name)
        url = build_url(tutorial.content_locator, self.base_url)
        logger.debug("Fetching %s from %s", tutorial.id, url)
        return await asyncio.to_thread(self.fetcher, url, self.timeout)


class MappingTier(ContentTier):
    """Looks the tutorial id up in a mapping supplied at resolution time."""

    def __init__(self, name: str, source: OverrideSource) -> None:
        self.name = name
        self.source = source

    def _current(self) -> Mapping[str, str]:
        source = self.source() if callable(self.source) else self.source
        return source or {}

    async def fetch(self, tutorial: TutorialMetadata) -> str:
        text = self._current().get(tutorial.id)
        if text is None:
            raise TransportError(f"no {self.name} content for {tutorial.id}", tier=self.name)
        return text


# =========================================================================
# Combinator
# =========================================================================


async def resolve_with(
    tiers: Sequence[ContentTier],
    tutorial: TutorialMetadata,
    min_length: int = MIN_CONTENT_LENGTH,
    placeholder: bool = True,
) -> ResolvedContent:
    """Try *tiers* in order; first body passing ``validate_length`` wins."""
    attempted: List[str] = []
    last_error: Optional[Exception] = None

    for tier in tiers:
        attempted.append(tier.name)
        try:
            text = validate_length(await tier.fetch(tutorial), tier.name, min_length)
        except TutorHubError as exc:
            logger.warning("Tier %s failed for %s: %s", tier.name, tutorial.id, exc)
            last_error = exc
            continue
        except Exception as exc:
            logger.warning(
                "Tier %s raised unexpectedly for %s: %s", tier.name, tutorial.id, exc, exc_info=True
            )
            last_error = exc
            continue
        logger.info("Resolved %s from %s (%d chars).", tutorial.id, tier.name, len(text))
        return ResolvedContent(
            tutorial_id=tutorial.id,
            status="ok",
            source=tier.name,
            text=text,
            attempted=attempted,
        )

    logger.error("All content tiers failed for %s (%s).", tutorial.id, ", ".join(attempted))
    return ResolvedContent(
        tutorial_id=tutorial.id,
        status="unavailable",
        source="placeholder" if placeholder or not attempted else attempted[-1],
        text=placeholder_document(tutorial.id) if placeholder else "",
        error=str(last_error) if last_error else "no content tiers configured",
        attempted=attempted,
    )


class ContentResolver:
    """Resolves tutorial bodies through the tier chain."""

    def __init__(
        self,
        store: Optional[UserTutorialStore] = None,
        base_url: Optional[str] = None,
        overrides: OverrideSource = None,
        embedded: Optional[Mapping[str, str]] = None,
        timeout: float = 10.0,
        min_length: int = MIN_CONTENT_LENGTH,
        fetcher: Callable[[str, float], str] = fetch_text,
    ) -> None:
        self.min_length = min_length
        self.user_tier = UserStoreTier(store)
        self.builtin_tiers: List[ContentTier] = [
            NetworkTier(base_url, timeout, fetcher),
            MappingTier("embedded", EMBEDDED_CONTENT if embedded is None else embedded),
            MappingTier("override", overrides),
        ]

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Optional[UserTutorialStore] = None,
        overrides: OverrideSource = None,
    ) -> "ContentResolver":
        return cls(
            store=store,
            base_url=settings.docs_base_url,
            overrides=overrides,
            timeout=settings.request_timeout,
            min_length=settings.min_content_length,
        )

    def tiers_for(self, tutorial: TutorialMetadata) -> List[ContentTier]:
        if tutorial.is_user_authored:
            return [self.user_tier]
        return list(self.builtin_tiers)

    async def resolve(self, tutorial: TutorialMetadata) -> ResolvedContent:
        """Resolve *tutorial*'s body; never raises for tier failures."""
        with timed(f"resolve {tutorial.id}", logger):
            return await resolve_with(
                self.tiers_for(tutorial),
                tutorial,
                self.min_length,
                placeholder=not tutorial.is_user_authored,
            )
