"""Core crawler components."""

from .fetcher import HttpFetcher
from .protocols import CrawlResult, Fetcher, LinkExtractor

__all__ = ["CrawlResult", "Fetcher", "LinkExtractor", "HttpFetcher"]
