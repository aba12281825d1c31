"""Tests for content fetching and HTML cleaning.

Feature: jobfit
Boilerplate stripped, whitespace collapsed, short content rejected.
"""

from types import SimpleNamespace

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from jobfit.services.fetcher import (
    FirecrawlContentFetcher,
    HttpContentFetcher,
    clean_html,
    collapse_whitespace,
)
from jobfit.utils.errors import ContentUnavailableError

POSTING_HTML = """
<html>
  <head><style>body { color: red; }</style><script>track()</script></head>
  <body>
    <header>Acme Careers</header>
    <nav><a href="/">Home</a> <a href="/jobs">Jobs</a></nav>
    <main>
      <h1>Senior Backend Engineer</h1>
      <p>Build   billing
         services in Python and PostgreSQL for a fast-growing fintech team.</p>
    </main>
    <aside>Related jobs</aside>
    <noscript>Enable JavaScript</noscript>
    <iframe src="https://ads.example.com"></iframe>
    <footer>© Acme</footer>
  </body>
</html>
"""


def mock_transport(status_code: int = 200, text: str = POSTING_HTML) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=text)

    return httpx.MockTransport(handler)


class TestCleanHtml:
    def test_strips_boilerplate_elements(self) -> None:
        text = clean_html(POSTING_HTML)
        assert text.startswith("Senior Backend Engineer")
        for noise in ("Acme Careers", "Home", "Related jobs", "Enable JavaScript", "© Acme", "track()", "color"):
            assert noise not in text

    def test_collapses_whitespace(self) -> None:
        assert "Build billing services in Python" in clean_html(POSTING_HTML)

    @settings(max_examples=100)
    @given(text=st.text(max_size=200))
    def test_collapse_whitespace_leaves_single_spaces(self, text: str) -> None:
        collapsed = collapse_whitespace(text)
        assert "  " not in collapsed
        assert collapsed == collapsed.strip()
        assert collapsed.split() == text.split()


class TestHttpContentFetcher:
    @pytest.mark.asyncio
    async def test_returns_cleaned_text(self) -> None:
        fetcher = HttpContentFetcher(transport=mock_transport())
        text = await fetcher.fetch_job_content("https://jobs.example.com/1")
        assert "Senior Backend Engineer" in text
        assert "Acme Careers" not in text

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code, body",
        [
            (200, ""),
            (200, "   \n  "),
            (200, "<html><body><nav>Only navigation here</nav><p>Too short</p></body></html>"),
            (403, POSTING_HTML),
            (500, POSTING_HTML),
        ],
    )
    async def test_unusable_pages_raise(self, status_code: int, body: str) -> None:
        fetcher = HttpContentFetcher(transport=mock_transport(status_code, body))
        with pytest.raises(ContentUnavailableError) as exc_info:
            await fetcher.fetch_job_content("https://jobs.example.com/1")
        assert "paste" in exc_info.value.user_message

    @pytest.mark.asyncio
    async def test_network_error_raises_content_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = HttpContentFetcher(transport=httpx.MockTransport(handler))
        with pytest.raises(ContentUnavailableError):
            await fetcher.fetch_job_content("https://jobs.example.com/1")

    @pytest.mark.asyncio
    async def test_min_length_is_configurable(self) -> None:
        page = "<html><body><p>Short posting</p></body></html>"
        fetcher = HttpContentFetcher(min_content_length=5, transport=mock_transport(text=page))
        assert await fetcher.fetch_job_content("https://jobs.example.com/1") == "Short posting"


class FakeFirecrawl:
    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error

    async def scrape(self, url: str, formats=None):
        if self.error:
            raise self.error
        return self.response


class TestFirecrawlContentFetcher:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            SimpleNamespace(markdown="# Senior Backend Engineer\n\nBuild billing services in Python."),
            {"markdown": "# Senior Backend Engineer\n\nBuild billing services in Python."},
        ],
    )
    async def test_extracts_markdown(self, response) -> None:
        fetcher = FirecrawlContentFetcher(firecrawl_api_key="test-key")
        fetcher.firecrawl = FakeFirecrawl(response)
        text = await fetcher.fetch_job_content("https://jobs.example.com/1")
        assert text == "# Senior Backend Engineer Build billing services in Python."

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fake",
        [
            FakeFirecrawl(response=None),
            FakeFirecrawl(response={"markdown": "tiny"}),
            FakeFirecrawl(error=RuntimeError("blocked")),
        ],
    )
    async def test_failures_raise_content_unavailable(self, fake) -> None:
        fetcher = FirecrawlContentFetcher(firecrawl_api_key="test-key")
        fetcher.firecrawl = fake
        with pytest.raises(ContentUnavailableError):
            await fetcher.fetch_job_content("https://jobs.example.com/1")
