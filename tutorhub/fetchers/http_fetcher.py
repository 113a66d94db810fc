"""
Plain-text HTTP transport for the network content tier.

``fetch_text`` performs one GET and either returns the decoded body or
raises ``TransportError`` carrying the status code / original exception.
Length validation is the caller's job.
"""

import logging
from typing import Optional
from urllib.parse import quote, urljoin

import requests

from tutorhub.errors import TransportError
from tutorhub.utils import is_http_url

logger = logging.getLogger(__name__)

HEADERS = {"Accept": "text/markdown, text/plain;q=0.9, */*;q=0.5"}


def build_url(locator: str, base_url: Optional[str]) -> str:
    """Turn a content locator into an absolute URL.

    Absolute http(s) locators are used as-is; anything else is treated as a
    path under *base_url*.

    Raises:
        TransportError: The locator is relative and no base URL is configured.
    """
    if is_http_url(locator):
        return locator
    if not base_url:
        raise TransportError(f"no base URL configured for relative locator {locator!r}")
    return urljoin(base_url.rstrip("/") + "/", quote(locator.lstrip("/")))


def fetch_text(url: str, timeout: float = 10.0) -> str:
    """GET *url* and return its text body.

    Raises:
        TransportError: Connection failure, timeout or non-success status.
    """
    try:
        resp = requests.get(url, headers=HEADERS, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("GET %s failed: %s", url, exc)
        raise TransportError(f"request to {url} failed: {exc}", original=exc) from exc

    if not resp.ok:
        logger.warning("GET %s returned HTTP %d", url, resp.status_code)
        raise TransportError(
            f"HTTP {resp.status_code}: {resp.reason}", status_code=resp.status_code
        )
    if resp.encoding is None:
        resp.encoding = "utf-8"
    return resp.text
