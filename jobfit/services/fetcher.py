"""Content fetchers that turn a job posting URL into plain text."""

import logging
import re
from typing import Any, Optional, Protocol

import httpx
from bs4 import BeautifulSoup
from firecrawl import AsyncFirecrawlApp

from jobfit.utils.errors import ContentUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONTENT_LENGTH = 50
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; JobFitBot/1.0)"

# Elements that never hold the posting itself
BOILERPLATE_TAGS = ["script", "style", "noscript", "iframe", "header", "footer", "nav", "aside"]

_WHITESPACE = re.compile(r"\s+")


class ContentFetcher(Protocol):
    """Anything that can retrieve a posting's text."""

    async def fetch_job_content(self, url: str) -> str:
        """Return cleaned text or raise ContentUnavailableError."""


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return _WHITESPACE.sub(" ", text).strip()


def clean_html(html: str) -> str:
    """
    Strip boilerplate elements from an HTML page and return its text.

    Args:
        html: Raw HTML document

    Returns:
        Visible body text with whitespace collapsed
    """
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.find_all(BOILERPLATE_TAGS):
        element.decompose()

    root = soup.body or soup
    return collapse_whitespace(root.get_text(" "))


def require_content(text: str, url: str, min_length: int) -> str:
    """Reject text too short to be a real posting (usually a blocked scrape)."""
    if len(text) < min_length:
        logger.warning(f"Content from {url} too short ({len(text)} chars), likely blocked")
        raise ContentUnavailableError()
    return text


class HttpContentFetcher:
    """Fetches a posting directly over HTTP and extracts its text."""

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        min_content_length: int = DEFAULT_MIN_CONTENT_LENGTH,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the HttpContentFetcher.

        Args:
            timeout_seconds: Per-request timeout
            min_content_length: Shortest text accepted as a posting
            transport: Optional httpx transport (used by tests)
        """
        self.timeout_seconds = timeout_seconds
        self.min_content_length = min_content_length
        self.transport = transport

    async def fetch_job_content(self, url: str) -> str:
        """
        Download ``url`` and return its cleaned text.

        Raises:
            ContentUnavailableError: Request failed, page empty, or text too short
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                follow_redirects=True,
                headers={"User-Agent": DEFAULT_USER_AGENT},
                transport=self.transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error fetching {url}: {e}")
            raise ContentUnavailableError() from e

        if response.status_code >= 400:
            logger.warning(f"HTTP {response.status_code} fetching {url}")
            raise ContentUnavailableError()

        if not response.text.strip():
            logger.warning(f"Empty response from URL: {url}")
            raise ContentUnavailableError()

        return require_content(clean_html(response.text), url, self.min_content_length)


class FirecrawlContentFetcher:
    """Fetches a posting through Firecrawl's scrape endpoint as markdown."""

    def __init__(
        self,
        firecrawl_api_key: str,
        min_content_length: int = DEFAULT_MIN_CONTENT_LENGTH,
    ) -> None:
        self.firecrawl = AsyncFirecrawlApp(api_key=firecrawl_api_key)
        self.min_content_length = min_content_length

    async def fetch_job_content(self, url: str) -> str:
        """
        Scrape ``url`` and return its markdown as plain text.

        Raises:
            ContentUnavailableError: Scrape failed or returned too little text
        """
        try:
            response = await self.firecrawl.scrape(url=url, formats=["markdown"])
        except Exception as e:
            logger.warning(f"Firecrawl failed for {url}: {e}")
            raise ContentUnavailableError() from e

        markdown = self._extract_markdown(response)
        if not markdown.strip():
            logger.warning(f"Empty response from URL: {url}")
            raise ContentUnavailableError()

        return require_content(collapse_whitespace(markdown), url, self.min_content_length)

    def _extract_markdown(self, response: Any) -> str:
        """Handle both the ScrapeResponse object and a plain dict."""
        if not response:
            return ""
        if hasattr(response, "markdown"):
            return response.markdown or ""
        if isinstance(response, dict):
            return response.get("markdown") or ""
        return ""


# Factory function for creating the configured fetcher
def create_content_fetcher() -> ContentFetcher:
    """
    Create a content fetcher using application settings.

    Firecrawl is used when an API key is configured, direct HTTP otherwise.
    """
    from jobfit.config import get_settings

    settings = get_settings()
    if settings.firecrawl_api_key:
        return FirecrawlContentFetcher(
            firecrawl_api_key=settings.firecrawl_api_key,
            min_content_length=settings.min_content_length,
        )
    return HttpContentFetcher(
        timeout_seconds=settings.fetch_timeout_seconds,
        min_content_length=settings.min_content_length,
    )
