"""CLI interface using typer."""

import asyncio
import signal
from pathlib import Path
from typing import Sequence

import typer

from .config import settings
from .core import CrawlResult, HttpFetcher
from .crawl import RELATE_TO_CHOICES, CrawlEngine
from .extract import HtmlLinkExtractor
from .log import configure_logging
from .output import OUTPUT_FORMATS, output_stem, write_csv, write_jsonl, write_summary
from .report import group_by_status, non_successful_urls, results_in_status_range
from .stats import CrawlStatistics

app = typer.Typer(
    name="site-crawler",
    help="Depth-bounded website crawler with latency statistics",
    no_args_is_help=True,
)


def _install_stop_handler(engine: CrawlEngine) -> bool:
    """Make Ctrl+C stop the crawl gracefully where the event loop allows it."""
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, engine.stop)
    except (NotImplementedError, RuntimeError, ValueError):
        return False
    return True


def _remove_stop_handler():
    try:
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    except (NotImplementedError, RuntimeError, ValueError):
        pass


def echo_statistics(stats: CrawlStatistics):
    typer.echo(f"Visited: {stats.visited_count}")
    typer.echo(f"  Success (2xx): {stats.success_count}")
    typer.echo(f"  Redirect (3xx): {stats.redirect_count}")
    typer.echo(f"  Client error (4xx): {stats.client_error_count}")
    typer.echo(f"  Server error (5xx): {stats.server_error_count}")
    typer.echo(f"  Other error: {stats.other_error_count}")
    typer.echo(
        f"Response time: avg {stats.average_response_time_ms:.1f}ms, "
        f"min {stats.min_response_time_ms}ms, max {stats.max_response_time_ms}ms"
    )
    typer.echo(
        f"  p50 {stats.median_response_time_ms:.1f}ms, p90 {stats.p90_response_time_ms:.1f}ms, "
        f"p95 {stats.p95_response_time_ms:.1f}ms, p99 {stats.p99_response_time_ms:.1f}ms"
    )
    for label, count in stats.latency_histogram.items():
        typer.echo(f"  {label:>10}: {count}")


def echo_status_breakdown(results: Sequence[CrawlResult]):
    """Print URL counts per status code, then every redirected URL."""
    groups = group_by_status(results)
    if not groups:
        return

    typer.echo("Status codes:")
    for status_code in sorted(groups):
        label = status_code if status_code else "no response"
        typer.echo(f"  {label}: {len(groups[status_code])}")

    redirects = results_in_status_range(results, 300, 400)
    if redirects:
        typer.echo(f"\nRedirected URLs ({len(redirects)}):")
        for result in redirects:
            typer.echo(f"  [{result.status_code}] {result.url}")


async def run_crawl(
    start_url: str,
    max_depth: int = 1,
    concurrency: int = 1,
    output_dir: str = "crawl_results",
    output_format: str = "jsonl",
    relate_to: str = "parent",
    errors_only: bool = False,
) -> CrawlEngine:
    """Run a crawl and save results."""
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}, got {output_format!r}")

    typer.echo(f"Starting crawl from {start_url}")
    typer.echo(f"Max depth: {max_depth}, Concurrency: {concurrency}")

    fetcher = HttpFetcher(
        timeout=settings.timeout,
        user_agent=settings.user_agent,
        max_connections=settings.max_connections,
        max_keepalive_connections=settings.max_keepalive_connections,
        follow_redirects=settings.follow_redirects,
    )
    engine = CrawlEngine(
        fetcher=fetcher,
        link_extractor=HtmlLinkExtractor(),
        max_depth=max_depth,
        concurrency=concurrency,
        relate_to=relate_to,
        progress_interval=settings.progress_interval,
    )

    handler_installed = _install_stop_handler(engine)
    try:
        results = await engine.crawl(start_url)
    finally:
        if handler_installed:
            _remove_stop_handler()
        await fetcher.close()

    stats = engine.get_statistics()
    typer.echo(f"\nCrawl {engine.state.value}: {len(results)} URLs in {stats.total_time_ms / 1000.0:.1f}s")
    echo_statistics(stats)
    echo_status_breakdown(results)

    if errors_only:
        results = [r for r in results if not r.is_success]

    output_path = Path(output_dir)
    stem = output_stem(start_url)
    if output_format == "csv":
        saved = write_csv(results, output_path / f"{stem}.csv")
    else:
        saved = write_jsonl(results, output_path / f"{stem}.jsonl")
    typer.echo(f"Results saved to {saved}")
    typer.echo(f"Statistics saved to {write_summary(stats, output_path / f'{stem}_statistics.json')}")

    failed = non_successful_urls(results)
    if failed:
        typer.echo(f"\nNon-successful URLs ({len(failed)}):")
        for url in failed:
            typer.echo(f"  {url}")

    return engine


def _check_choice(value: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise typer.BadParameter(f"must be one of: {', '.join(choices)}")
    return value


@app.command()
def crawl(
    start_url: str = typer.Argument(..., help="Root URL to crawl"),
    max_depth: int = typer.Option(settings.max_depth, "--max-depth", "-d", min=0, help="Maximum link depth (0 = root only)"),
    concurrency: int = typer.Option(settings.concurrency, "--concurrency", "-c", min=1, help="Concurrent fetch workers"),
    output: str = typer.Option("crawl_results", "-o", "--output", help="Output directory"),
    output_format: str = typer.Option("jsonl", "--format", "-f", help="Output format: jsonl, csv"),
    relate_to: str = typer.Option(settings.relate_to, "--relate-to", help="Relatedness anchor: parent, root"),
    errors_only: bool = typer.Option(False, "--errors-only", help="Only save non-successful results"),
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level"),
):
    """Crawl a website starting from a URL."""
    _check_choice(output_format, OUTPUT_FORMATS)
    _check_choice(relate_to, RELATE_TO_CHOICES)
    configure_logging(log_level)

    asyncio.run(run_crawl(
        start_url=start_url,
        max_depth=max_depth,
        concurrency=concurrency,
        output_dir=output,
        output_format=output_format,
        relate_to=relate_to,
        errors_only=errors_only,
    ))


@app.command()
def version():
    """Show version."""
    from . import __version__

    typer.echo(f"site-crawler {__version__}")


if __name__ == "__main__":
    app()
