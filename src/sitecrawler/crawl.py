"""Crawler engine with async concurrency."""

import asyncio
import enum
import logging
import time
from dataclasses import replace

from .core.protocols import CrawlResult, Fetcher, LinkExtractor
from .frontier import CrawlTask, Frontier, VisitedSet
from .stats import CrawlStatistics, StatisticsAggregator

logger = logging.getLogger(__name__)

RELATE_TO_CHOICES = ("parent", "root")


class CrawlState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CrawlEngine:
    """Breadth-first crawler over an injected fetcher and link extractor.

    Each URL is claimed in the visited set before it is fetched, so it is
    fetched and recorded exactly once even with several workers. Links are
    only followed from pages shallower than ``max_depth``.
    """

    idle_poll_interval = 0.01

    def __init__(
        self,
        fetcher: Fetcher,
        link_extractor: LinkExtractor,
        max_depth: int = 1,
        concurrency: int = 1,
        relate_to: str = "parent",
        progress_interval: int = 10,
    ):
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        if relate_to not in RELATE_TO_CHOICES:
            raise ValueError(f"relate_to must be one of {RELATE_TO_CHOICES}, got {relate_to!r}")

        self.fetcher = fetcher
        self.link_extractor = link_extractor
        self.max_depth = max_depth
        self.concurrency = concurrency
        self.relate_to = relate_to
        self.progress_interval = progress_interval

        self.frontier = Frontier()
        self.visited = VisitedSet()
        self.aggregator = StatisticsAggregator()
        self.results: list[CrawlResult] = []
        self.state = CrawlState.IDLE
        self.error: BaseException | None = None
        self.root_url: str | None = None

        self._stop_requested = False
        self._in_flight = 0
        self._started_at: float | None = None
        self._finished_at: float | None = None
        self._final_stats: CrawlStatistics | None = None

    def _reset(self, root_url: str):
        self.frontier.clear()
        self.visited.clear()
        self.aggregator.reset()
        self.results = []
        self.error = None
        self.root_url = root_url
        self._stop_requested = False
        self._in_flight = 0
        self._started_at = time.perf_counter()
        self._finished_at = None
        self._final_stats = None

    def _elapsed_ms(self) -> int:
        if self._started_at is None:
            return 0
        end = self._finished_at if self._finished_at is not None else time.perf_counter()
        return int((end - self._started_at) * 1000)

    def _enqueue_links(self, content: str, task: CrawlTask) -> int:
        """Queue related, unseen links found on a page. Returns count queued."""
        try:
            links = self.link_extractor.extract_links(content, task.url)
        except Exception:
            logger.exception("Error extracting links from URL: %s", task.url)
            return 0

        reference = task.url if self.relate_to == "parent" else self.root_url
        child_depth = task.depth + 1
        new_tasks = []
        for link in links:
            if self.visited.is_seen(link):
                continue
            if not self.link_extractor.is_related(link, reference):
                logger.debug("Skipping external URL: %s", link)
                continue
            new_tasks.append(CrawlTask(url=link, depth=child_depth, source_url=task.url))

        added = self.frontier.add_many(new_tasks)
        if added:
            logger.debug("Enqueued %d URLs at depth %d from %s", added, child_depth, task.url)
        return added

    async def _process_url(self, task: CrawlTask) -> CrawlResult:
        """Fetch one URL and, when it can be expanded, queue its links."""
        started = time.perf_counter()
        content = None
        try:
            if task.depth >= self.max_depth:
                # Leaf pages are never expanded, so skip the body
                result = await self.fetcher.fetch(task.url)
            else:
                result, content = await self.fetcher.fetch_with_content(task.url)
        except Exception as e:
            logger.error("Error processing URL %s: %s", task.url, e)
            result = CrawlResult(
                url=task.url,
                status_code=0,
                error_message=str(e) or type(e).__name__,
                response_time_ms=int((time.perf_counter() - started) * 1000),
            )

        if result.is_success and content and content.strip() and task.depth < self.max_depth:
            self._enqueue_links(content, task)

        return replace(result, depth=task.depth)

    def _record(self, result: CrawlResult):
        self.results.append(result)
        self.aggregator.record(result)

        count = len(self.results)
        logger.info(
            "Processed URL %d: %s, Status: %d, Depth: %d",
            count, result.url, result.status_code, result.depth,
        )
        if self.progress_interval and count % self.progress_interval == 0:
            self._log_progress()

    async def _worker(self, worker_id: int):
        """Worker coroutine that processes URLs from the frontier."""
        while not self._stop_requested:
            task = self.frontier.get_next()
            if task is None:
                # Another worker may still add links from the page it is fetching
                if self._in_flight == 0:
                    break
                await asyncio.sleep(self.idle_poll_interval)
                continue

            if not self.visited.try_claim(task.url):
                logger.debug("Skipping already visited URL: %s", task.url)
                continue

            self._in_flight += 1
            try:
                result = await self._process_url(task)
            finally:
                self._in_flight -= 1
            self._record(result)

        logger.debug("Worker %d exiting", worker_id)

    async def crawl(self, root_url: str) -> list[CrawlResult]:
        """Crawl from ``root_url`` and return results in completion order."""
        if self.state is CrawlState.RUNNING:
            raise RuntimeError("A crawl is already running on this engine")

        self._reset(root_url)
        self.state = CrawlState.RUNNING
        logger.info("Starting crawl from root URL: %s with max depth: %d", root_url, self.max_depth)

        self.frontier.add(CrawlTask(url=root_url, depth=0))
        workers = [
            asyncio.create_task(self._worker(i))
            for i in range(self.concurrency)
        ]

        try:
            await asyncio.gather(*workers)
        except asyncio.CancelledError:
            self.state = CrawlState.CANCELLED
            raise
        except Exception as e:
            self.error = e
            self.state = CrawlState.FAILED
            logger.exception("Error during crawl after %d URLs", len(self.results))
        else:
            if self._stop_requested:
                self.state = CrawlState.CANCELLED
                logger.warning("Crawl was cancelled after processing %d URLs", len(self.results))
            else:
                self.state = CrawlState.COMPLETED
                logger.info("Crawl completed, processed %d URLs", len(self.results))
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            self._finished_at = time.perf_counter()
            self._final_stats = self.aggregator.finalize(total_time_ms=self._elapsed_ms())
            self._log_progress()

        return list(self.results)

    def stop(self):
        """Stop the crawler. In-flight fetches finish; no new fetch starts."""
        self._stop_requested = True

    def get_statistics(self) -> CrawlStatistics:
        """Statistics so far while running, final statistics afterwards."""
        if self._final_stats is not None:
            return self._final_stats
        return self.aggregator.snapshot(total_time_ms=self._elapsed_ms())

    def _log_progress(self):
        stats = self.get_statistics()
        elapsed_seconds = stats.total_time_ms / 1000.0
        rate = stats.visited_count / elapsed_seconds if elapsed_seconds > 0 else 0.0
        logger.info(
            "Crawl progress: Processed=%d URLs, Queue=%d URLs, Rate=%.2f URLs/sec, "
            "Success=%d, Non-Success=%d, AvgResponseTime=%.2fms, TotalTime=%.2fs",
            stats.visited_count,
            self.frontier.pending_count(),
            rate,
            stats.success_count,
            stats.non_success_count,
            stats.average_response_time_ms,
            elapsed_seconds,
        )
