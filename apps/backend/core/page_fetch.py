"""
Page fetch boundary for the job-page extractor.

The extractor never talks to job sites itself. It asks a PageFetcher for the
raw HTML: either a server-side proxy endpoint (ProxyPageFetcher) or a direct
GET carrying the proxy's fixed headers (DirectPageFetcher).
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from core.config import ExtractionConfig, get_extraction_config
from core.errors import FetchTimeoutError, FetchValidationError, HTTPStatusError, TransientNetworkError
from core.net import RetryPolicy, backoff_fetch

logger = logging.getLogger(__name__)


@dataclass
class FetchedPage:
    """Outcome of one page fetch: HTTP status plus HTML (or an error message)."""
    status: int
    html: str = ""
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class PageFetcher(Protocol):
    async def __call__(self, url: str) -> FetchedPage:
        ...


class DirectPageFetcher:
    """GETs the page with fixed User-Agent/Accept headers, retrying transient failures."""

    def __init__(self, config: Optional[ExtractionConfig] = None,
                 policy: Optional[RetryPolicy] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.config = config or get_extraction_config()
        self.policy = policy or self.config.retry_policy()
        self.client = client

    def _get_headers(self):
        return {
            "User-Agent": self.config.user_agent,
            "Accept": self.config.accept,
            "Accept-Language": "en-US,en;q=0.5",
        }

    async def __call__(self, url: str) -> FetchedPage:
        if not url:
            raise FetchValidationError("URL is required")

        try:
            html = await backoff_fetch(
                url,
                headers=self._get_headers(),
                response_type="html",
                policy=self.policy,
                client=self.client,
            )
        except HTTPStatusError as e:
            logger.warning(f"[page_fetch] {url} answered {e.status}")
            return FetchedPage(status=e.status, message=f"Failed to fetch: {e.reason}")

        return FetchedPage(status=200, html=html)


class ProxyPageFetcher:
    """
    POSTs {"url": ...} to the proxy endpoint, which answers {"html": ...} or {"error": ...}.

    One request per call: the proxy runs DirectPageFetcher server-side and does
    the retrying there.
    """

    def __init__(self, proxy_url: str, config: Optional[ExtractionConfig] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.proxy_url = proxy_url
        self.config = config or get_extraction_config()
        self.client = client

    async def _post(self, http: httpx.AsyncClient, url: str) -> httpx.Response:
        # No httpx timeout: the proxy retries upstream for longer than httpx's
        # default, and the extractor's page deadline bounds the whole call
        try:
            return await http.post(self.proxy_url, json={"url": url}, timeout=None)
        except httpx.ConnectTimeout as e:
            logger.error(f"[page_fetch] Proxy connection timed out at {self.proxy_url}: {e!r}")
            raise TransientNetworkError(str(e) or "Failed to fetch", url=self.proxy_url, code='ETIMEDOUT') from e
        except httpx.TimeoutException as e:
            logger.error(f"[page_fetch] Proxy timed out at {self.proxy_url}: {e!r}")
            raise FetchTimeoutError("Proxy request timed out", url=self.proxy_url) from e
        except httpx.TransportError as e:
            logger.error(f"[page_fetch] Proxy unreachable at {self.proxy_url}: {e!r}")
            raise TransientNetworkError(str(e) or "Failed to fetch", url=self.proxy_url) from e

    async def __call__(self, url: str) -> FetchedPage:
        if not url:
            raise FetchValidationError("URL is required")

        if self.client is not None:
            response = await self._post(self.client, url)
        else:
            async with httpx.AsyncClient(timeout=None) as http:
                response = await self._post(http, url)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not response.is_success:
            message = body.get("message") or body.get("error")
            logger.warning(f"[page_fetch] Proxy answered {response.status_code} for {url}")
            return FetchedPage(status=response.status_code, message=message)

        html = body.get("html")
        if not isinstance(html, str):
            logger.error(f"[page_fetch] Proxy returned no html for {url}")
            raise TransientNetworkError("Proxy returned no HTML", url=self.proxy_url, status=response.status_code)
        return FetchedPage(status=response.status_code, html=html)


def get_default_fetcher(config: Optional[ExtractionConfig] = None) -> PageFetcher:
    """Proxy fetcher when EXTRACTION_PROXY_URL is set, direct fetcher otherwise."""
    config = config or get_extraction_config()
    if config.proxy_url:
        return ProxyPageFetcher(config.proxy_url, config=config)
    return DirectPageFetcher(config=config)
