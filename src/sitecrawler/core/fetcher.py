"""HTTP fetcher implementation using httpx."""

import asyncio
import logging
import time

import httpx

from .protocols import CrawlResult

DEFAULT_USER_AGENT = "Mozilla/5.0 SiteCrawler/1.0"

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.perf_counter() - started) * 1000))


def _error_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class HttpFetcher:
    """Async HTTP fetcher using httpx with connection reuse."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        max_connections: int = 100,
        max_keepalive_connections: int = 20,
        follow_redirects: bool = True,
    ):
        self.timeout = httpx.Timeout(timeout)
        self.user_agent = user_agent
        self.follow_redirects = follow_redirects
        self.limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive_connections,
        )
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with double-checked locking."""
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        timeout=self.timeout,
                        limits=self.limits,
                        headers={"User-Agent": self.user_agent},
                        follow_redirects=self.follow_redirects,
                    )
        return self._client

    async def fetch(self, url: str) -> CrawlResult:
        """Fetch a URL reading only the status line and headers."""
        started = time.perf_counter()
        try:
            client = await self._get_client()
            async with client.stream("GET", url) as resp:
                status = resp.status_code
            elapsed = _elapsed_ms(started)
            logger.info("Fetched %s - Status: %d, Time: %dms", url, status, elapsed)
            return CrawlResult(url=url, status_code=status, response_time_ms=elapsed)
        except Exception as e:
            return self._failure(url, started, e)

    async def fetch_with_content(self, url: str) -> tuple[CrawlResult, str | None]:
        """Fetch a URL and return the body of successful responses."""
        started = time.perf_counter()
        try:
            client = await self._get_client()
            resp = await client.get(url)
            content = resp.text if resp.is_success else None
            elapsed = _elapsed_ms(started)
            logger.info(
                "Fetched %s with content - Status: %d, Size: %d chars, Time: %dms",
                url, resp.status_code, len(content or ""), elapsed,
            )
            return CrawlResult(url=url, status_code=resp.status_code, response_time_ms=elapsed), content
        except Exception as e:
            return self._failure(url, started, e), None

    def _failure(self, url: str, started: float, exc: Exception) -> CrawlResult:
        elapsed = _elapsed_ms(started)

        if isinstance(exc, httpx.TimeoutException):
            message = "Request timed out"
            logger.warning("Timeout fetching %s after %dms", url, elapsed)
        elif isinstance(exc, (httpx.HTTPError, httpx.InvalidURL)):
            message = _error_message(exc)
            logger.warning("Error fetching %s after %dms: %s", url, elapsed, message)
        else:
            message = _error_message(exc)
            logger.exception("Unexpected error fetching %s after %dms", url, elapsed)

        return CrawlResult(url=url, status_code=0, error_message=message, response_time_ms=elapsed)

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
