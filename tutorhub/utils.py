"""
Utility helpers for TutorHub.

Provides:
- Structured logging configuration with timestamps.
- Retry with exponential back-off.
- Wall-clock timing of labelled blocks.
- Content-locator classification.
"""

import contextlib
import logging
import time
from typing import Any, Callable, Generator, Optional, TypeVar
from urllib.parse import urlparse

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(
    level: int = logging.INFO,
    fmt: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt: str = "%Y-%m-%dT%H:%M:%S%z",
) -> None:
    """Configure the root logger with timestamped structured output."""
    logging.basicConfig(level=level, format=fmt, datefmt=datefmt, force=True)


@contextlib.contextmanager
def timed(label: str, logger: Optional[logging.Logger] = None) -> Generator[None, None, None]:
    """Context manager that logs elapsed wall-clock time for *label*."""
    if logger is None:
        logger = logging.getLogger(__name__)
    t0 = time.monotonic()
    yield
    logger.debug("%s completed in %.3fs.", label, time.monotonic() - t0)


# ---------------------------------------------------------------------------
# Retry with exponential back-off
# ---------------------------------------------------------------------------


def retry_with_backoff(
    fn: Callable[..., T],
    *args: Any,
    max_retries: int = 3,
    base_delay: float = 0.5,
    retry_on: tuple = (Exception,),
    logger: Optional[logging.Logger] = None,
    **kwargs: Any,
) -> T:
    """Call *fn* with retry and exponential back-off on *retry_on* exceptions."""
    if logger is None:
        logger = logging.getLogger(__name__)

    last_exc: BaseException = RuntimeError("unreachable")
    for attempt in range(1, max_retries + 1):
        try:
            return fn(*args, **kwargs)
        except retry_on as exc:
            last_exc = exc
            if attempt == max_retries:
                break
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "Attempt %d/%d failed for %s: %s; retrying in %.1fs",
                attempt,
                max_retries,
                getattr(fn, "__name__", repr(fn)),
                exc,
                delay,
            )
            time.sleep(delay)

    raise last_exc


# ---------------------------------------------------------------------------
# Locator helpers
# ---------------------------------------------------------------------------


def is_http_url(locator: str) -> bool:
    """Return ``True`` if *locator* is an absolute http(s) URL."""
    parsed = urlparse(locator)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def looks_like_html(text: str) -> bool:
    """Heuristic: does *text* start like an HTML document rather than Markdown?"""
    head = text.lstrip()[:512].lower()
    return head.startswith("<!doctype html") or head.startswith("<html") or "<body" in head
