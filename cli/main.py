"""newsgrab CLI: entry-point for batch article scraping.

Usage:
    python cli/main.py --help

Commands:
    scrape        fetch URLs and save each article as a text file
    check-robots  report whether robots.txt allows a URL
    proxies       list the proxy pool loaded from PROXY_LIST_FILE
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from newsgrab.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from dataclasses import replace
from typing import List, Optional

import typer

from newsgrab.config import Settings, settings
from newsgrab.logging_config import configure_logging
from newsgrab.scraper.fetcher import pick_user_agent
from newsgrab.scraper.models import BatchOutcome
from newsgrab.scraper.pipeline import Pipeline
from newsgrab.scraper.proxy import ProxyPool, load_proxy_list, mask_proxy_uri
from newsgrab.scraper.robots import RobotsChecker
from newsgrab.sources import collect_urls

app = typer.Typer(
    name="newsgrab",
    help="Fetch web articles and save their readable text.",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging(settings.log_level, json_output=settings.log_format == "json")


# ---------------------------------------------------------------------------
# Reporting helpers
# ---------------------------------------------------------------------------

def _describe_proxy(cfg: Settings, pool: Optional[ProxyPool]) -> str:
    if cfg.proxy_type == "proxy_list":
        count = len(pool) if pool is not None else 0
        return f"Using proxy list from {cfg.proxy_list_file} ({count} proxies)"
    if cfg.proxy_type == "smartproxy":
        return f"Using SmartProxy: {cfg.smartproxy_host}:{cfg.smartproxy_port}"
    if cfg.proxy_type != "none":
        return f"Using {cfg.proxy_type} proxy"
    return "Not using a proxy"


def _print_banner(cfg: Settings, pool: Optional[ProxyPool]) -> None:
    typer.echo("News Article Scraper")
    typer.echo("===================")
    typer.echo(_describe_proxy(cfg, pool))
    typer.echo(f"Request delay: {cfg.request_delay_ms}ms")
    typer.echo(f"Random user agent: {'Enabled' if cfg.use_random_user_agent else 'Disabled'}")
    typer.echo(f"Respect robots.txt: {'Enabled' if cfg.respect_robots_txt else 'Disabled'}")
    if cfg.workers > 1:
        typer.echo(f"Workers: {cfg.workers}")
    typer.echo("===================\n")


def _print_summary(outcome: BatchOutcome) -> None:
    typer.echo("\nScraping completed!")
    typer.echo(f"Successfully scraped {len(outcome.successful)} articles.")
    if outcome.failures:
        typer.echo(f"Failed to scrape {len(outcome.failures)} articles:")
        for failure in outcome.failures:
            typer.echo(f"- {failure.url}: {failure.error}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command("scrape")
def scrape(
    targets: Optional[List[str]] = typer.Argument(
        None, help="URLs to scrape, or a .txt file with one URL per line."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory for the article files."
    ),
    delay: Optional[int] = typer.Option(
        None, "--delay", help="Delay between requests in milliseconds (0 disables)."
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", min=1, help="Concurrent workers (1 = strictly sequential)."
    ),
    respect_robots: Optional[bool] = typer.Option(
        None, "--respect-robots/--ignore-robots", help="Honour robots.txt disallow rules."
    ),
    random_ua: Optional[bool] = typer.Option(
        None, "--random-ua/--fixed-ua", help="Pick a random browser user agent per request."
    ),
) -> None:
    """Scrape articles and save each one as a text file."""
    overrides = {
        "output_dir": output_dir,
        "request_delay_ms": delay,
        "workers": workers,
        "respect_robots_txt": respect_robots,
        "use_random_user_agent": random_ua,
    }
    cfg = replace(settings, **{k: v for k, v in overrides.items() if v is not None})

    pool = ProxyPool.from_file(cfg.proxy_list_file) if cfg.pool_enabled else None
    _print_banner(cfg, pool)

    urls = collect_urls(list(targets or []), read_line=input, echo=typer.echo)
    if not urls:
        typer.echo("No valid URLs provided. Exiting.")
        return

    typer.echo(f"\nFound {len(urls)} URLs to process.")
    typer.echo(f"Articles will be saved to: {cfg.output_dir.resolve()}\n")

    outcome = BatchOutcome()
    try:
        Pipeline(cfg, pool=pool).run(urls, outcome=outcome)
    except KeyboardInterrupt:
        typer.echo("\nInterrupted.")
        _print_summary(outcome)
        raise typer.Exit(130)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"An unexpected error occurred: {exc}", err=True)
        raise typer.Exit(1)

    _print_summary(outcome)


@app.command("check-robots")
def check_robots(
    url: str = typer.Argument(..., help="URL to check."),
) -> None:
    """Report whether robots.txt allows scraping URL."""
    checker = RobotsChecker(
        user_agent=pick_user_agent(settings.use_random_user_agent),
        timeout=settings.robots_timeout,
    )
    if checker.is_allowed(url, enabled=True):
        typer.echo(f"[check-robots] Allowed: {url}")
    else:
        typer.echo(f"[check-robots] Blocked by robots.txt: {url}")


@app.command("proxies")
def proxies() -> None:
    """List the proxies loaded from PROXY_LIST_FILE (credentials masked)."""
    pool = load_proxy_list(settings.proxy_list_file)
    if not pool:
        typer.echo(f"[proxies] No proxies loaded from {settings.proxy_list_file}.")
        return
    for index, uri in enumerate(pool, start=1):
        typer.echo(f"  {index:>3}  {mask_proxy_uri(uri)}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
