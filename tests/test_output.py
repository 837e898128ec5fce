"""Tests for output module."""

import csv
import json
from datetime import datetime

import pytest

from sitecrawler.core import CrawlResult
from sitecrawler.output import StreamingOutputWriter, output_stem, write_csv, write_jsonl, write_summary
from sitecrawler.stats import CrawlStatistics

RESULTS = [
    CrawlResult(url="http://example.com/", status_code=200, response_time_ms=120),
    CrawlResult(url="http://example.com/gone", status_code=0, error_message="Request timed out, twice", response_time_ms=30000, depth=1),
]


class TestStreamingOutputWriter:
    def test_creates_file_and_directory(self, tmp_path):
        """Should create output file and parent directories."""
        output_file = tmp_path / "subdir" / "output.jsonl"
        with StreamingOutputWriter(output_file) as writer:
            writer.write_one({"url": "http://example.com"})

        assert output_file.exists()

    def test_writes_crawl_results(self, tmp_path):
        """CrawlResults are written as one JSON object per line."""
        output_file = tmp_path / "output.jsonl"
        with StreamingOutputWriter(output_file) as writer:
            for result in RESULTS:
                writer.write_one(result)

        lines = output_file.read_text().strip().split("\n")
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["url"] == "http://example.com/"
        assert first["is_success"] is True
        second = json.loads(lines[1])
        assert second["error_message"] == "Request timed out, twice"
        assert second["depth"] == 1

    def test_count_property(self, tmp_path):
        """count property should return number of written results."""
        output_file = tmp_path / "output.jsonl"
        with StreamingOutputWriter(output_file) as writer:
            assert writer.count == 0
            writer.write_one({"url": "http://example.com/1"})
            assert writer.count == 1

    def test_write_without_context_manager_raises(self, tmp_path):
        """Should raise RuntimeError if used without context manager."""
        writer = StreamingOutputWriter(tmp_path / "output.jsonl")
        with pytest.raises(RuntimeError):
            writer.write_one({"url": "http://example.com"})

    def test_flushes_after_each_write(self, tmp_path):
        """Should flush after each write for real-time updates."""
        output_file = tmp_path / "output.jsonl"
        with StreamingOutputWriter(output_file) as writer:
            writer.write_one({"url": "http://example.com/1"})
            assert "example.com/1" in output_file.read_text()

    def test_write_jsonl_helper(self, tmp_path):
        """write_jsonl writes every result and returns the path."""
        path = write_jsonl(RESULTS, tmp_path / "results.jsonl")
        assert len(path.read_text().strip().split("\n")) == 2


class TestWriteCsv:
    def test_header_and_rows(self, tmp_path):
        """CSV has a header and quotes fields containing commas."""
        path = write_csv(RESULTS, tmp_path / "out" / "results.csv")

        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))

        assert rows[0] == ["url", "status_code", "response_time_ms", "error_message"]
        assert rows[1] == ["http://example.com/", "200", "120", ""]
        assert rows[2] == ["http://example.com/gone", "0", "30000", "Request timed out, twice"]


class TestWriteSummary:
    def test_writes_statistics(self, tmp_path):
        """Summary JSON holds counters and derived fields."""
        stats = CrawlStatistics(visited_count=2, success_count=1, total_response_time_ms=400)
        path = write_summary(stats, tmp_path / "statistics.json")

        data = json.loads(path.read_text())
        assert data["visited_count"] == 2
        assert data["average_response_time_ms"] == 200
        assert data["latency_histogram"][">3s"] == 0


class TestOutputStem:
    NOW = datetime(2024, 3, 5, 14, 7, 9)

    def test_host_and_timestamp(self):
        """The stem is the lowercased host followed by the run timestamp."""
        assert output_stem("https://Docs.Example.com:8443/guide?x=1", now=self.NOW) == "docs.example.com_20240305_140709"

    def test_runs_get_distinct_names(self):
        """Crawls started at different times do not share file names."""
        later = datetime(2024, 3, 5, 14, 7, 10)
        assert output_stem("https://example.com", now=self.NOW) != output_stem("https://example.com", now=later)

    def test_long_host_is_truncated(self):
        """Hosts longer than thirty characters are cut to thirty."""
        stem = output_stem("https://" + "a" * 50 + ".test/", now=self.NOW)
        assert stem == "a" * 30 + "_20240305_140709"

    def test_unparseable_url_falls_back(self):
        """URLs without a host use a generic stem."""
        assert output_stem("not a url", now=self.NOW) == "crawl_results_20240305_140709"
        assert output_stem("http://[::1/", now=self.NOW) == "crawl_results_20240305_140709"

    def test_defaults_to_current_time(self):
        """Without an explicit time the stem still carries a timestamp."""
        host, date, time = output_stem("https://example.com").rsplit("_", 2)
        assert host == "example.com"
        assert len(date) == 8 and len(time) == 6
