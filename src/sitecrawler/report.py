"""Queries over a finished set of crawl results."""

from collections import defaultdict
from typing import Iterable

from .core.protocols import CrawlResult


def non_successful_urls(results: Iterable[CrawlResult]) -> list[str]:
    """URLs whose status was not 2xx, sorted alphabetically."""
    return sorted(r.url for r in results if not r.is_success)


def results_in_status_range(
    results: Iterable[CrawlResult],
    min_status: int,
    max_status: int,
) -> list[CrawlResult]:
    """Results with ``min_status <= status_code < max_status``, ordered by status then URL."""
    selected = [r for r in results if min_status <= r.status_code < max_status]
    return sorted(selected, key=lambda r: (r.status_code, r.url))


def group_by_status(results: Iterable[CrawlResult]) -> dict[int, list[str]]:
    """Map each status code to the URLs that returned it."""
    groups: dict[int, list[str]] = defaultdict(list)
    for result in results:
        groups[result.status_code].append(result.url)
    return dict(groups)
