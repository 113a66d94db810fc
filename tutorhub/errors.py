"""
Exception hierarchy for TutorHub.

Content tiers raise ``TransportError`` (or its ``ContentTooShortError``
subclass) and the resolver recovers from them locally. Store failures
raise ``StoreUnavailableError`` (or its ``RecordCorruptError`` subclass) /
``RecordNotFoundError`` and reach the caller.
"""

from typing import Optional


class TutorHubError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# Content tier errors
# ---------------------------------------------------------------------------


class TransportError(TutorHubError):
    """A content tier could not produce a body.

    Attributes:
        tier: Name of the failing tier (``'network'``, ``'embedded'``, ...).
        status_code: HTTP status when the failure was a non-success response.
        original: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        tier: str = "network",
        status_code: Optional[int] = None,
        original: Optional[Exception] = None,
    ) -> None:
        self.tier = tier
        self.status_code = status_code
        self.original = original
        super().__init__(message)


class ContentTooShortError(TransportError):
    """A body was obtained but is shorter than the minimum length."""

    def __init__(self, tier: str, length: int, minimum: int) -> None:
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"{tier} content too short ({length} < {minimum} chars)", tier=tier
        )


# ---------------------------------------------------------------------------
# Store errors
# ---------------------------------------------------------------------------


class StoreUnavailableError(TutorHubError):
    """The durable store could not be opened or a transaction failed."""

    def __init__(self, operation: str, original: Optional[Exception] = None) -> None:
        self.operation = operation
        self.original = original
        super().__init__(f"store operation '{operation}' failed: {original}")


class RecordNotFoundError(TutorHubError):
    """The requested user tutorial id is absent from the store."""

    def __init__(self, tutorial_id: str) -> None:
        self.tutorial_id = tutorial_id
        super().__init__(f"user tutorial '{tutorial_id}' not found")


class RecordCorruptError(StoreUnavailableError):
    """A stored row exists but cannot be decoded into a valid record."""

    def __init__(self, operation: str, record_id: str, original: Optional[Exception] = None) -> None:
        self.operation = operation
        self.record_id = record_id
        self.original = original
        TutorHubError.__init__(self, f"stored record '{record_id}' is corrupt: {original}")


# ---------------------------------------------------------------------------
# Data transfer errors
# ---------------------------------------------------------------------------


class DataImportError(TutorHubError):
    """An import payload is not a recognisable learning-data export."""
