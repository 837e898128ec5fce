"""Writers for crawl results and statistics."""

import csv
import json
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, TextIO

from .core.protocols import CrawlResult
from .relatedness import host_of
from .stats import CrawlStatistics

CSV_FIELDS = ["url", "status_code", "response_time_ms", "error_message"]
OUTPUT_FORMATS = ("jsonl", "csv")
DEFAULT_STEM = "crawl_results"
MAX_STEM_HOST_LENGTH = 30

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def output_stem(start_url: str, now: datetime | None = None) -> str:
    """Return a `<host>_<YYYYmmdd_HHMMSS>` file stem for a crawl of start_url."""
    host = host_of(start_url)
    safe_host = _UNSAFE_FILENAME_CHARS.sub("_", host).strip("_")[:MAX_STEM_HOST_LENGTH] if host else ""
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{safe_host or DEFAULT_STEM}_{timestamp}"


class StreamingOutputWriter:
    """Writes crawl results to JSONL format one at a time."""

    def __init__(self, output_path: str | Path):
        self.output_path = Path(output_path)
        self._file: TextIO | None = None
        self._count = 0

    def __enter__(self) -> "StreamingOutputWriter":
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.output_path, "w", encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._file is not None:
            self._file.close()
            self._file = None

    def write_one(self, result: CrawlResult | dict):
        """Write a single result to the output file."""
        if self._file is None:
            raise RuntimeError("StreamingOutputWriter must be used as context manager")

        output = result.to_dict() if isinstance(result, CrawlResult) else dict(result)
        self._file.write(json.dumps(output, ensure_ascii=False) + "\n")
        self._file.flush()
        self._count += 1

    @property
    def count(self) -> int:
        """Number of results written."""
        return self._count


def write_jsonl(results: Iterable[CrawlResult], output_path: str | Path) -> Path:
    with StreamingOutputWriter(output_path) as writer:
        for result in results:
            writer.write_one(result)
    return writer.output_path


def write_csv(results: Iterable[CrawlResult], output_path: str | Path) -> Path:
    """Write results as CSV with one row per URL."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_FIELDS)
        for result in results:
            writer.writerow([
                result.url,
                result.status_code,
                result.response_time_ms,
                result.error_message or "",
            ])
    return output_path


def write_summary(stats: CrawlStatistics, output_path: str | Path) -> Path:
    """Write crawl statistics as indented JSON."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(stats.to_dict(), f, indent=2, ensure_ascii=False)
    return output_path
