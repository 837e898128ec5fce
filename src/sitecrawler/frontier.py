"""URL frontier (FIFO work queue) and visited-set deduplication."""

import threading
from collections import deque
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pybloom_live import ScalableBloomFilter


def normalize_url(url: str) -> str:
    """Normalize URL for deduplication (remove fragment, sort query params).

    URLs that cannot be parsed are returned unchanged.
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url

    # Sort query parameters
    query_params = parse_qsl(parsed.query, keep_blank_values=True)
    sorted_query = urlencode(sorted(query_params))

    # Normalize path (remove trailing slash except for root)
    path = parsed.path.rstrip('/') or '/'

    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        path,
        parsed.params,
        sorted_query,
        ''  # Remove fragment
    ))


@dataclass(frozen=True)
class CrawlTask:
    """A URL to crawl and its distance in link hops from the root."""
    url: str
    depth: int
    source_url: str | None = None

    def __post_init__(self):
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")


class Frontier:
    """Thread-safe FIFO queue of crawl tasks.

    FIFO order gives breadth-first traversal: children are always added
    after their parent was taken, so every depth-N task comes out before
    any depth-(N+1) task. The queue never looks at depth itself.
    """

    def __init__(self):
        self._queue: deque[CrawlTask] = deque()
        self._lock = threading.Lock()

    def add(self, task: CrawlTask):
        """Append a task to the tail."""
        with self._lock:
            self._queue.append(task)

    def add_many(self, tasks: Iterable[CrawlTask]) -> int:
        """Append several tasks. Returns the number added."""
        tasks = list(tasks)
        with self._lock:
            self._queue.extend(tasks)
        return len(tasks)

    def get_next(self) -> CrawlTask | None:
        """Remove and return the head task, or None when empty."""
        with self._lock:
            if not self._queue:
                return None
            return self._queue.popleft()

    def pending_count(self) -> int:
        """Number of queued tasks."""
        with self._lock:
            return len(self._queue)

    def is_empty(self) -> bool:
        return self.pending_count() == 0

    def clear(self):
        with self._lock:
            self._queue.clear()

    def __len__(self) -> int:
        return self.pending_count()


class VisitedSet:
    """Set of canonical URLs claimed for fetching.

    ``try_claim`` is the single authority on who fetches a URL. A Bloom
    filter sits in front of the exact set so that ``is_seen`` can answer
    "definitely not seen" without taking the lock.
    """

    def __init__(self, capacity: int = 100000):
        self.capacity = capacity
        self._urls: set[str] = set()
        self._bloom = ScalableBloomFilter(initial_capacity=capacity, error_rate=0.001)
        self._lock = threading.Lock()

    def try_claim(self, url: str) -> bool:
        """Record ``url`` if absent. Returns False if it was already claimed."""
        key = normalize_url(url)
        with self._lock:
            if key in self._urls:
                return False
            self._urls.add(key)
            self._bloom.add(key)
            return True

    def is_seen(self, url: str) -> bool:
        """Check if URL was already claimed."""
        key = normalize_url(url)
        if key not in self._bloom:
            return False
        with self._lock:
            return key in self._urls

    def clear(self):
        with self._lock:
            self._urls.clear()
            self._bloom = ScalableBloomFilter(initial_capacity=self.capacity, error_rate=0.001)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._urls)

    def __contains__(self, url: str) -> bool:
        return self.is_seen(url)

    def __len__(self) -> int:
        return self.count
