"""Batch orchestration: robots check, fetch, extract and save, per URL.

A :class:`Pipeline` owns the mutable state shared between requests (the proxy
pool cursor and the robots.txt cache), so two pipelines never interfere.

With one worker (the default) URLs are processed strictly in input order and
the inter-request delay is a barrier between consecutive attempts.  With
``workers > 1`` a bounded thread pool processes URLs concurrently and the
delay paces each worker separately.  Either way the :class:`BatchOutcome`
lists results in input order.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Sequence, Tuple

from newsgrab.config import Settings
from newsgrab.exceptions import NetworkError, PersistenceError, PolicyDenied
from newsgrab.scraper.extractor import extract_article
from newsgrab.scraper.fetcher import fetch_url, pick_user_agent
from newsgrab.scraper.models import BatchOutcome
from newsgrab.scraper.proxy import ProxyPool, resolve_proxy
from newsgrab.scraper.robots import RobotsChecker
from newsgrab.storage import save_article

logger = logging.getLogger(__name__)

ROBOTS_BLOCKED = PolicyDenied.message

# (filename, error): exactly one is set.
UrlResult = Tuple[Optional[str], Optional[str]]


class Pipeline:
    """Runs batches of URLs through the fetch-and-extract pipeline.

    Args:
        settings: Runtime configuration.
        pool: Proxy rotation state.  Loaded from ``settings.proxy_list_file``
            when omitted and the pool is enabled.
        robots: robots.txt cache.  A fresh one is created when omitted.
        output_dir: Where articles are written (defaults to
            ``settings.output_dir``).
        workers: Number of concurrent workers (defaults to
            ``settings.workers``).
    """

    def __init__(
        self,
        settings: Settings,
        pool: ProxyPool | None = None,
        robots: RobotsChecker | None = None,
        output_dir: Path | None = None,
        workers: int | None = None,
    ) -> None:
        self.settings = settings
        if pool is None and settings.pool_enabled:
            pool = ProxyPool.from_file(settings.proxy_list_file)
        self.pool = pool
        self.robots = robots or RobotsChecker(
            user_agent=pick_user_agent(settings.use_random_user_agent),
            timeout=settings.robots_timeout,
        )
        self.output_dir = output_dir if output_dir is not None else settings.output_dir
        self.workers = max(1, workers if workers is not None else settings.workers)
        self._worker_state = threading.local()

    # ------------------------------------------------------------------
    # Single URL
    # ------------------------------------------------------------------

    def _scrape(self, url: str) -> str:
        """Run *url* through robots, fetch, extract and save; return the filename.

        Raises:
            PolicyDenied: robots.txt disallows *url*.
            NetworkError: The fetch failed.
            PersistenceError: The article could not be written.
        """
        if not self.robots.is_allowed(url, self.settings.respect_robots_txt):
            raise PolicyDenied(url)

        logger.info("Scraping: %s", url)
        proxy = resolve_proxy(self.settings.proxy_type, pool=self.pool, settings=self.settings)
        result = fetch_url(
            url,
            proxy=proxy,
            user_agent=pick_user_agent(self.settings.use_random_user_agent),
            timeout=self.settings.request_timeout,
        )
        result.raise_for_error()

        article = extract_article(result.html or "", url)
        return save_article(article, self.output_dir)

    def process_url(self, url: str) -> UrlResult:
        """Run one URL through the pipeline, returning ``(filename, error)``.

        Every exception becomes the URL's error so the batch continues.
        """
        try:
            return self._scrape(url), None
        except PolicyDenied as exc:
            logger.info("URL not allowed by robots.txt: %s", url)
            return None, str(exc)
        except NetworkError as exc:
            return None, exc.reason
        except PersistenceError as exc:
            logger.error("Could not save article from %s: %s", url, exc)
            return None, str(exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error scraping %s", url)
            return None, str(exc) or exc.__class__.__name__

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def _pause(self) -> None:
        delay = self.settings.request_delay
        if delay > 0:
            logger.info("Waiting %dms before next request...", self.settings.request_delay_ms)
            time.sleep(delay)

    def _paced(self, url: str) -> UrlResult:
        """Worker-pool task: wait the delay if this worker already ran a URL."""
        if getattr(self._worker_state, "started", False):
            self._pause()
        self._worker_state.started = True
        return self.process_url(url)

    @staticmethod
    def _record(outcome: BatchOutcome, url: str, result: UrlResult) -> None:
        filename, error = result
        if filename is not None:
            outcome.add_success(filename)
        else:
            outcome.add_failure(url, error or "unknown error")

    def run(self, urls: Sequence[str], outcome: BatchOutcome | None = None) -> BatchOutcome:
        """Process *urls* and return the aggregated :class:`BatchOutcome`.

        Results are appended to *outcome* when given, so a caller that is
        interrupted part-way still holds everything recorded so far.
        """
        urls = list(urls)
        if outcome is None:
            outcome = BatchOutcome()

        if self.workers == 1 or len(urls) <= 1:
            for index, url in enumerate(urls):
                if index > 0:
                    self._pause()
                self._record(outcome, url, self.process_url(url))
            return outcome

        self._worker_state = threading.local()
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            # map() yields in submission order, not completion order.
            for url, result in zip(urls, executor.map(self._paced, urls)):
                self._record(outcome, url, result)
        return outcome


def run_batch(urls: Sequence[str], settings: Settings) -> BatchOutcome:
    """Convenience wrapper: build a :class:`Pipeline` and run *urls* once."""
    return Pipeline(settings).run(urls)
