"""Depth-bounded website crawler with latency statistics."""

from .core import CrawlResult, Fetcher, HttpFetcher, LinkExtractor
from .crawl import CrawlEngine, CrawlState
from .extract import HtmlLinkExtractor
from .frontier import CrawlTask, Frontier, VisitedSet, normalize_url
from .relatedness import is_related
from .stats import CrawlStatistics, StatisticsAggregator, percentile

__version__ = "0.1.0"

__all__ = [
    "CrawlEngine",
    "CrawlResult",
    "CrawlState",
    "CrawlStatistics",
    "CrawlTask",
    "Fetcher",
    "Frontier",
    "HtmlLinkExtractor",
    "HttpFetcher",
    "LinkExtractor",
    "StatisticsAggregator",
    "VisitedSet",
    "is_related",
    "normalize_url",
    "percentile",
]
