"""Streaming statistics over crawl results."""

import math
import threading
from dataclasses import asdict, dataclass, field

from .core.protocols import CrawlResult

# Upper bounds (exclusive, ms) of the latency histogram buckets; the last is open.
LATENCY_BUCKETS: list[tuple[str, float]] = [
    ("<100ms", 100),
    ("100-500ms", 500),
    ("500ms-1s", 1000),
    ("1s-3s", 3000),
    (">3s", math.inf),
]


def _empty_histogram() -> dict[str, int]:
    return {label: 0 for label, _ in LATENCY_BUCKETS}


def latency_bucket(response_time_ms: float) -> str:
    """Return the histogram label for a response time."""
    for label, upper in LATENCY_BUCKETS:
        if response_time_ms < upper:
            return label
    return LATENCY_BUCKETS[-1][0]


def percentile(sorted_values: list[float], p: float) -> float:
    """Percentile of an ascending list by linear interpolation between ranks.

    The fractional rank is ``p/100 * (n-1)``. An empty list gives 0 and a
    single value is returned for every percentile.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    if n == 1:
        return float(sorted_values[0])

    rank = (p / 100.0) * (n - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return float(sorted_values[lower])

    weight = rank - lower
    return sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight


@dataclass
class CrawlStatistics:
    """Aggregate counters and latency figures for one crawl."""

    visited_count: int = 0
    success_count: int = 0
    redirect_count: int = 0
    client_error_count: int = 0
    server_error_count: int = 0
    other_error_count: int = 0
    total_response_time_ms: int = 0
    min_response_time_ms: int = 0
    max_response_time_ms: int = 0
    median_response_time_ms: float = 0.0
    p90_response_time_ms: float = 0.0
    p95_response_time_ms: float = 0.0
    p99_response_time_ms: float = 0.0
    latency_histogram: dict[str, int] = field(default_factory=_empty_histogram)
    total_time_ms: int = 0

    @property
    def average_response_time_ms(self) -> float:
        if self.visited_count == 0:
            return 0.0
        return self.total_response_time_ms / self.visited_count

    @property
    def non_success_count(self) -> int:
        return self.visited_count - self.success_count

    def to_dict(self) -> dict:
        data = asdict(self)
        data["average_response_time_ms"] = self.average_response_time_ms
        data["non_success_count"] = self.non_success_count
        return data


class StatisticsAggregator:
    """Accumulates crawl results one at a time.

    ``record`` is O(1) and safe under concurrent callers. Samples are only
    sorted when statistics are built, once by ``finalize`` at the end of a
    crawl or on a copy by ``snapshot`` while it is still running.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self):
        with self._lock:
            self._counts = {
                "visited_count": 0,
                "success_count": 0,
                "redirect_count": 0,
                "client_error_count": 0,
                "server_error_count": 0,
                "other_error_count": 0,
            }
            self._total_ms = 0
            self._min_ms: int | None = None
            self._max_ms = 0
            self._histogram = _empty_histogram()
            self._samples: list[int] = []

    @staticmethod
    def _status_class(status_code: int) -> str:
        if 200 <= status_code < 300:
            return "success_count"
        if 300 <= status_code < 400:
            return "redirect_count"
        if 400 <= status_code < 500:
            return "client_error_count"
        if 500 <= status_code < 600:
            return "server_error_count"
        return "other_error_count"

    def record(self, result: CrawlResult):
        """Fold one result into the running totals."""
        elapsed = max(0, result.response_time_ms)
        with self._lock:
            self._counts["visited_count"] += 1
            self._counts[self._status_class(result.status_code)] += 1
            self._total_ms += elapsed
            if self._min_ms is None or elapsed < self._min_ms:
                self._min_ms = elapsed
            if elapsed > self._max_ms:
                self._max_ms = elapsed
            self._histogram[latency_bucket(elapsed)] += 1
            self._samples.append(elapsed)

    @property
    def sample_count(self) -> int:
        with self._lock:
            return len(self._samples)

    def finalize(self, total_time_ms: int = 0) -> CrawlStatistics:
        """Sort the samples once and build the final statistics."""
        with self._lock:
            self._samples.sort()
            return self._build(self._samples, total_time_ms)

    def snapshot(self, total_time_ms: int = 0) -> CrawlStatistics:
        """Build statistics from the samples so far without modifying them."""
        with self._lock:
            return self._build(sorted(self._samples), total_time_ms)

    def _build(self, ordered: list[int], total_time_ms: int) -> CrawlStatistics:
        return CrawlStatistics(
            **self._counts,
            total_response_time_ms=self._total_ms,
            min_response_time_ms=self._min_ms or 0,
            max_response_time_ms=self._max_ms,
            median_response_time_ms=percentile(ordered, 50),
            p90_response_time_ms=percentile(ordered, 90),
            p95_response_time_ms=percentile(ordered, 95),
            p99_response_time_ms=percentile(ordered, 99),
            latency_histogram=dict(self._histogram),
            total_time_ms=total_time_ms,
        )
