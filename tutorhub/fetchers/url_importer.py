"""
Import a tutorial body from an arbitrary URL.

Markdown and plain-text responses are kept verbatim. HTML pages are
reduced to their main content and converted to Markdown with
``trafilatura.extract``.
"""

import logging
from typing import Optional, Tuple

import trafilatura

from tutorhub.errors import TransportError
from tutorhub.fetchers.http_fetcher import fetch_text
from tutorhub.utils import is_http_url, looks_like_html, retry_with_backoff

logger = logging.getLogger(__name__)


def html_to_markdown(html: str) -> Tuple[Optional[str], Optional[str]]:
    """Extract ``(markdown, title)`` from an HTML document."""
    text = trafilatura.extract(
        html,
        include_comments=False,
        include_formatting=True,
        favor_precision=True,
        output_format="markdown",
    )
    title: Optional[str] = None
    metadata = trafilatura.extract_metadata(html)
    if metadata is not None and metadata.title:
        title = metadata.title
    return text, title


def import_from_url(url: str, timeout: float = 10.0, max_retries: int = 3) -> Tuple[str, Optional[str]]:
    """Fetch *url* and return ``(markdown, title_hint)``.

    Raises:
        ValueError: *url* is not an absolute http(s) URL.
        TransportError: The download failed or produced no usable text.
    """
    if not is_http_url(url):
        raise ValueError(f"not a valid http(s) URL: {url!r}")

    body = retry_with_backoff(
        fetch_text,
        url,
        timeout=timeout,
        max_retries=max_retries,
        base_delay=0.5,
        retry_on=(TransportError,),
        logger=logger,
    )

    title: Optional[str] = None
    if looks_like_html(body):
        logger.info("Converting HTML from %s to Markdown.", url)
        extracted, title = html_to_markdown(body)
        if not extracted:
            raise TransportError(f"no extractable content at {url}", tier="import")
        body = extracted
        if title and not body.lstrip().startswith("#"):
            body = f"# {title}\n\n{body}"

    if not body.strip():
        raise TransportError(f"empty document at {url}", tier="import")
    return body, title
