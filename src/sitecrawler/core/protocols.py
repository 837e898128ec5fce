"""Protocol definitions for crawler components."""

from dataclasses import asdict, dataclass
from typing import Protocol


@dataclass(frozen=True)
class CrawlResult:
    """Outcome of fetching a single URL."""

    url: str
    status_code: int
    error_message: str | None = None
    response_time_ms: int = 0
    depth: int = 0

    @property
    def is_success(self) -> bool:
        """True for 2xx status codes."""
        return 200 <= self.status_code < 300

    def to_dict(self) -> dict:
        data = asdict(self)
        data["is_success"] = self.is_success
        return data


class Fetcher(Protocol):
    """Protocol for URL fetchers.

    Implementations never raise: failures are reported with
    ``status_code=0`` and an ``error_message``.
    """

    async def fetch(self, url: str) -> CrawlResult:
        """Fetch status and timing only."""
        ...

    async def fetch_with_content(self, url: str) -> tuple[CrawlResult, str | None]:
        """Fetch status, timing and the body of successful responses."""
        ...


class LinkExtractor(Protocol):
    """Protocol for turning an HTML page into crawlable links."""

    def extract_links(self, html: str, base_url: str) -> list[str]:
        """Return absolute http(s) URLs found in ``html``."""
        ...

    def is_related(self, url: str, reference_url: str) -> bool:
        """Check whether ``url`` is in the same crawl scope as ``reference_url``."""
        ...
