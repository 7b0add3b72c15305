"""
Tests for the page fetchers used by the job page extractor.
"""

import json

import httpx
import pytest

from core.config import ExtractionConfig
from core.errors import FetchTimeoutError, FetchValidationError, TransientNetworkError
from core.net import RetryPolicy
from core.page_fetch import (
    DirectPageFetcher,
    FetchedPage,
    ProxyPageFetcher,
    get_default_fetcher,
)

URL = "https://jobs.example.com/postings/42"
PROXY_URL = "https://app.example.com/api/fetch-job"
FAST_POLICY = RetryPolicy(max_retries=2, initial_delay=0.01, max_delay=0.01, timeout=5.0, jitter=0.0)


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFetchedPage:

    @pytest.mark.parametrize("status,ok", [(200, True), (204, True), (301, False), (404, False), (500, False)])
    def test_ok(self, status, ok):
        assert FetchedPage(status=status).ok is ok


class TestDirectPageFetcher:
    """Test direct GETs through Backoff Fetch."""

    @pytest.mark.asyncio
    async def test_sends_browser_headers(self, config):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["url"] = str(request.url)
            return httpx.Response(200, html="<html><body>Job</body></html>")

        async with client_for(handler) as client:
            page = await DirectPageFetcher(config=config, policy=FAST_POLICY, client=client)(URL)

        assert page == FetchedPage(status=200, html="<html><body>Job</body></html>")
        assert seen["url"] == URL
        assert seen["headers"]["User-Agent"] == config.user_agent
        assert seen["headers"]["Accept"] == config.accept
        assert seen["headers"]["Accept-Language"] == "en-US,en;q=0.5"

    @pytest.mark.asyncio
    async def test_json_content_type_still_returns_html_text(self, config):
        def handler(request):
            return httpx.Response(200, json={"not": "html"})

        async with client_for(handler) as client:
            page = await DirectPageFetcher(config=config, policy=FAST_POLICY, client=client)(URL)

        assert isinstance(page.html, str)
        assert json.loads(page.html) == {"not": "html"}

    @pytest.mark.asyncio
    async def test_error_status_becomes_page(self, config):
        async with client_for(lambda request: httpx.Response(404)) as client:
            page = await DirectPageFetcher(config=config, policy=FAST_POLICY, client=client)(URL)

        assert page.status == 404
        assert page.ok is False
        assert page.message == "Failed to fetch: Not Found"
        assert page.html == ""

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, config):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(502)
            return httpx.Response(200, html="<p>ok</p>")

        async with client_for(handler) as client:
            page = await DirectPageFetcher(config=config, policy=FAST_POLICY, client=client)(URL)

        assert page.html == "<p>ok</p>"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_exhausted_server_errors_become_page(self, config):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        async with client_for(handler) as client:
            page = await DirectPageFetcher(config=config, policy=FAST_POLICY, client=client)(URL)

        assert page.status == 500
        assert len(calls) == FAST_POLICY.max_retries + 1

    @pytest.mark.asyncio
    async def test_url_required(self, config):
        with pytest.raises(FetchValidationError, match="URL is required"):
            await DirectPageFetcher(config=config, policy=FAST_POLICY)("")

    def test_policy_from_config(self, config):
        fetcher = DirectPageFetcher(config=config)
        assert fetcher.policy == config.retry_policy()


class TestProxyPageFetcher:
    """Test fetching through the proxy endpoint."""

    @pytest.mark.asyncio
    async def test_posts_url_and_returns_html(self, config):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"html": "<p>Job</p>"})

        async with client_for(handler) as client:
            page = await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

        assert page == FetchedPage(status=200, html="<p>Job</p>")
        assert seen == {"method": "POST", "url": PROXY_URL, "body": {"url": URL}}

    @pytest.mark.asyncio
    async def test_error_body_message(self, config):
        def handler(request):
            return httpx.Response(404, json={"error": "Failed to fetch: Not Found"})

        async with client_for(handler) as client:
            page = await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

        assert page.status == 404
        assert page.message == "Failed to fetch: Not Found"

    @pytest.mark.asyncio
    async def test_message_preferred_over_error(self, config):
        def handler(request):
            return httpx.Response(418, json={"message": "Blocked by site", "error": "teapot"})

        async with client_for(handler) as client:
            page = await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

        assert page.message == "Blocked by site"

    @pytest.mark.asyncio
    async def test_error_without_json_body(self, config):
        async with client_for(lambda request: httpx.Response(502, text="Bad gateway")) as client:
            page = await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

        assert page.status == 502
        assert page.message is None

    @pytest.mark.asyncio
    async def test_missing_html_raises(self, config):
        async with client_for(lambda request: httpx.Response(200, json={"ok": True})) as client:
            with pytest.raises(TransientNetworkError, match="Proxy returned no HTML"):
                await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

    @pytest.mark.asyncio
    async def test_unreachable_proxy(self, config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as client:
            with pytest.raises(TransientNetworkError):
                await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

    @pytest.mark.asyncio
    async def test_post_has_no_client_timeout(self, config):
        seen = {}

        def handler(request):
            seen["timeout"] = request.extensions["timeout"]
            return httpx.Response(200, json={"html": "<p>Job</p>"})

        async with client_for(handler) as client:
            await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

        assert set(seen["timeout"].values()) == {None}

    @pytest.mark.asyncio
    async def test_read_timeout_is_fetch_timeout(self, config):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with client_for(handler) as client:
            with pytest.raises(FetchTimeoutError):
                await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

    @pytest.mark.asyncio
    async def test_connect_timeout_is_transient(self, config):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with client_for(handler) as client:
            with pytest.raises(TransientNetworkError) as exc_info:
                await ProxyPageFetcher(PROXY_URL, config=config, client=client)(URL)

        assert exc_info.value.code == "ETIMEDOUT"
        assert not isinstance(exc_info.value, FetchTimeoutError)


class TestDefaultFetcher:

    def test_direct_without_proxy(self, monkeypatch):
        monkeypatch.delenv("EXTRACTION_PROXY_URL", raising=False)
        config = ExtractionConfig()
        assert isinstance(get_default_fetcher(config), DirectPageFetcher)

    def test_proxy_when_configured(self, monkeypatch):
        monkeypatch.setenv("EXTRACTION_PROXY_URL", PROXY_URL)
        fetcher = get_default_fetcher(ExtractionConfig())

        assert isinstance(fetcher, ProxyPageFetcher)
        assert fetcher.proxy_url == PROXY_URL
