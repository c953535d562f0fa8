"""Tests for the batch pipeline.

Mocking strategy:
- ``respx`` serves article pages and robots.txt for end-to-end runs; files
  are written under ``tmp_path``.
- ``time.sleep`` is patched so inter-request delays are counted, not waited.
- ``newsgrab.scraper.pipeline.fetch_url`` / ``save_article`` /
  ``extract_article`` are patched where a test targets orchestration only.
"""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx

from newsgrab.config import Settings
from newsgrab.exceptions import NetworkError, PersistenceError, PolicyDenied
from newsgrab.scraper.models import BatchOutcome, FailedUrl, FetchResult
from newsgrab.scraper.pipeline import ROBOTS_BLOCKED, Pipeline, run_batch
from newsgrab.scraper.proxy import ProxyPool


def _article(title: str, text: str = "Body text.") -> str:
    return (
        f"<html><head><title>{title} | Site</title></head>"
        f"<body><article><h1>{title}</h1><p>{text}</p></article></body></html>"
    )


@pytest.fixture
def cfg(tmp_path) -> Settings:
    return Settings(
        proxy_type="none",
        use_proxy_list=False,
        request_delay_ms=1000,
        respect_robots_txt=False,
        use_random_user_agent=False,
        workers=1,
        output_dir=tmp_path / "articles",
    )


def _with(cfg: Settings, **changes) -> Settings:
    for key, value in changes.items():
        setattr(cfg, key, value)
    return cfg


# ---------------------------------------------------------------------------
# End-to-end (respx)
# ---------------------------------------------------------------------------

class TestEndToEnd:
    def test_robots_blocked_url_and_single_delay(self, cfg: Settings) -> None:
        _with(cfg, respect_robots_txt=True)
        with respx.mock(assert_all_called=False) as respx_mock:
            robots = respx_mock.get("http://example.com/robots.txt").mock(
                return_value=httpx.Response(200, text="User-agent: *\nDisallow: /b\n")
            )
            page_a = respx_mock.get("http://example.com/a").mock(
                return_value=httpx.Response(200, text=_article("Article A"))
            )
            page_b = respx_mock.get("http://example.com/b").mock(
                return_value=httpx.Response(200, text=_article("Article B"))
            )
            with patch("newsgrab.scraper.pipeline.time.sleep") as mock_sleep:
                outcome = Pipeline(cfg).run(["http://example.com/a", "http://example.com/b"])

        assert outcome.successful == ["Article-A.txt"]
        assert outcome.failures == [FailedUrl("http://example.com/b", ROBOTS_BLOCKED)]
        assert outcome.failures[0].error == "blocked by robots.txt"
        mock_sleep.assert_called_once_with(1.0)
        assert robots.call_count == 1
        assert page_a.call_count == 1
        assert page_b.call_count == 0

        saved = (cfg.output_dir / "Article-A.txt").read_text(encoding="utf-8")
        assert saved == "URL: http://example.com/a\nTitle: Article A\n\nBody text."

    def test_timeout_does_not_stop_batch(self, cfg: Settings) -> None:
        with respx.mock:
            respx.get("http://example.com/slow").mock(side_effect=httpx.ReadTimeout("timed out"))
            respx.get("http://example.com/ok").mock(
                return_value=httpx.Response(200, text=_article("Still Works"))
            )
            with patch("newsgrab.scraper.pipeline.time.sleep"):
                outcome = Pipeline(cfg).run(["http://example.com/slow", "http://example.com/ok"])

        assert outcome.failures == [FailedUrl("http://example.com/slow", "timeout")]
        assert outcome.successful == ["Still-Works.txt"]

    def test_non_2xx_is_recorded(self, cfg: Settings) -> None:
        with respx.mock:
            respx.get("http://example.com/gone").mock(return_value=httpx.Response(410))
            with patch("newsgrab.scraper.pipeline.time.sleep") as mock_sleep:
                outcome = Pipeline(cfg).run(["http://example.com/gone"])

        assert outcome.failures == [FailedUrl("http://example.com/gone", "HTTP 410")]
        mock_sleep.assert_not_called()

    def test_robots_not_fetched_when_disabled(self, cfg: Settings) -> None:
        with respx.mock(assert_all_called=False) as respx_mock:
            robots = respx_mock.get("http://example.com/robots.txt").mock(
                return_value=httpx.Response(200, text="User-agent: *\nDisallow: /\n")
            )
            respx_mock.get("http://example.com/a").mock(
                return_value=httpx.Response(200, text=_article("Open"))
            )
            outcome = Pipeline(_with(cfg, request_delay_ms=0)).run(["http://example.com/a"])

        assert robots.call_count == 0
        assert outcome.successful == ["Open.txt"]


# ---------------------------------------------------------------------------
# Orchestration (collaborators patched)
# ---------------------------------------------------------------------------

_OK = "<html><body><article><h1>T</h1><p>x</p></article></body></html>"


class TestOrchestration:
    def test_counts_match_attempted(self, cfg: Settings) -> None:
        urls = [f"http://example.com/{i}" for i in range(5)]

        def fake_fetch(url, **_kwargs):
            if url.endswith(("1", "3")):
                return FetchResult(url=url, error="HTTP 500", status_code=500)
            return FetchResult(url=url, html=_OK, status_code=200)

        with patch("newsgrab.scraper.pipeline.fetch_url", side_effect=fake_fetch), \
                patch("newsgrab.scraper.pipeline.save_article", side_effect=lambda a, d: f"{a.source_url[-1]}.txt"), \
                patch("newsgrab.scraper.pipeline.time.sleep") as mock_sleep:
            outcome = Pipeline(cfg).run(urls)

        assert outcome.attempted == len(urls)
        assert outcome.successful == ["0.txt", "2.txt", "4.txt"]
        assert [f.url for f in outcome.failures] == [urls[1], urls[3]]
        assert mock_sleep.call_count == len(urls) - 1

    def test_zero_delay_never_sleeps(self, cfg: Settings) -> None:
        _with(cfg, request_delay_ms=0)
        with patch("newsgrab.scraper.pipeline.fetch_url",
                   return_value=FetchResult(url="u", error="timeout")), \
                patch("newsgrab.scraper.pipeline.time.sleep") as mock_sleep:
            Pipeline(cfg).run(["http://a/1", "http://a/2", "http://a/3"])

        mock_sleep.assert_not_called()

    def test_persistence_error_recorded(self, cfg: Settings) -> None:
        with patch("newsgrab.scraper.pipeline.fetch_url",
                   return_value=FetchResult(url="http://a/1", html=_OK)), \
                patch("newsgrab.scraper.pipeline.save_article",
                      side_effect=PersistenceError("disk full")):
            outcome = Pipeline(_with(cfg, request_delay_ms=0)).run(["http://a/1"])

        assert outcome.failures == [FailedUrl("http://a/1", "disk full")]

    def test_unexpected_error_is_per_url(self, cfg: Settings) -> None:
        with patch("newsgrab.scraper.pipeline.fetch_url",
                   return_value=FetchResult(url="x", html=_OK)), \
                patch("newsgrab.scraper.pipeline.extract_article",
                      side_effect=[RuntimeError("boom"), _real_extract("http://a/2")]), \
                patch("newsgrab.scraper.pipeline.save_article", return_value="T.txt"):
            outcome = Pipeline(_with(cfg, request_delay_ms=0)).run(["http://a/1", "http://a/2"])

        assert outcome.failures == [FailedUrl("http://a/1", "boom")]
        assert outcome.successful == ["T.txt"]

    def test_results_appended_to_given_outcome(self, cfg: Settings) -> None:
        outcome = BatchOutcome()
        outcome.add_success("earlier.txt")
        with patch("newsgrab.scraper.pipeline.fetch_url",
                   return_value=FetchResult(url="x", error="timeout")):
            returned = Pipeline(_with(cfg, request_delay_ms=0)).run(["http://a/1"], outcome=outcome)

        assert returned is outcome
        assert outcome.successful == ["earlier.txt"]
        assert outcome.failures == [FailedUrl("http://a/1", "timeout")]

    def test_blocked_url_raises_policy_denied_internally(self, cfg: Settings) -> None:
        robots = MagicMock()
        robots.is_allowed.return_value = False
        pipeline = Pipeline(cfg, robots=robots)

        with patch("newsgrab.scraper.pipeline.fetch_url") as mock_fetch:
            with pytest.raises(PolicyDenied) as excinfo:
                pipeline._scrape("http://a/private")
            assert pipeline.process_url("http://a/private") == (None, ROBOTS_BLOCKED)

        assert excinfo.value.url == "http://a/private"
        mock_fetch.assert_not_called()

    def test_failed_fetch_raises_network_error_internally(self, cfg: Settings) -> None:
        pipeline = Pipeline(cfg)
        failed = FetchResult(url="http://a/1", error="HTTP 503", status_code=503)

        with patch("newsgrab.scraper.pipeline.fetch_url", return_value=failed), \
                patch("newsgrab.scraper.pipeline.extract_article") as mock_extract:
            with pytest.raises(NetworkError) as excinfo:
                pipeline._scrape("http://a/1")
            assert pipeline.process_url("http://a/1") == (None, "HTTP 503")

        assert excinfo.value.status_code == 503
        mock_extract.assert_not_called()

    def test_empty_batch(self, cfg: Settings) -> None:
        outcome = Pipeline(cfg).run([])
        assert outcome.attempted == 0


def _real_extract(url: str):
    from newsgrab.scraper.extractor import extract_article

    return extract_article(_OK, url)


# ---------------------------------------------------------------------------
# Proxy rotation through the pipeline
# ---------------------------------------------------------------------------

class TestPipelineProxies:
    def test_pool_rotates_once_per_request_regardless_of_outcome(self, cfg: Settings) -> None:
        pool = ProxyPool(["http://p0:8080", "http://p1:8080"])
        _with(cfg, proxy_type="proxy_list", request_delay_ms=0)
        with patch("newsgrab.scraper.pipeline.fetch_url",
                   return_value=FetchResult(url="x", error="HTTP 503", status_code=503)) as mock_fetch:
            Pipeline(cfg, pool=pool).run(["http://a/1", "http://a/2", "http://a/3"])

        used = [c.kwargs["proxy"].uri for c in mock_fetch.call_args_list]
        assert used == ["http://p0:8080", "http://p1:8080", "http://p0:8080"]
        assert pool.cursor == 1

    def test_pool_loaded_from_settings_file(self, cfg: Settings, tmp_path) -> None:
        path = tmp_path / "proxies.txt"
        path.write_text("http://p0:8080\n# off\nsocks5://p1:1080\n", encoding="utf-8")
        pipeline = Pipeline(_with(cfg, proxy_type="proxy_list", proxy_list_file=path))
        assert pipeline.pool is not None
        assert pipeline.pool.uris == ["http://p0:8080", "socks5://p1:1080"]

    def test_empty_pool_proceeds_without_proxy(self, cfg: Settings) -> None:
        _with(cfg, proxy_type="proxy_list", request_delay_ms=0)
        with patch("newsgrab.scraper.pipeline.fetch_url",
                   return_value=FetchResult(url="x", error="timeout")) as mock_fetch:
            Pipeline(cfg, pool=ProxyPool([])).run(["http://a/1"])

        assert mock_fetch.call_args.kwargs["proxy"].is_direct

    def test_no_pool_when_disabled(self, cfg: Settings) -> None:
        assert Pipeline(cfg).pool is None


# ---------------------------------------------------------------------------
# Worker pool variant
# ---------------------------------------------------------------------------

class TestWorkerPool:
    def test_outcome_in_input_order(self, cfg: Settings) -> None:
        urls = [f"http://example.com/{i}" for i in range(6)]
        first_started = threading.Event()

        def fake_fetch(url, **_kwargs):
            if url.endswith("/0"):
                first_started.set()
                time.sleep(0.05)
            return FetchResult(url=url, html=_OK)

        _with(cfg, request_delay_ms=0, workers=3)
        with patch("newsgrab.scraper.pipeline.fetch_url", side_effect=fake_fetch), \
                patch("newsgrab.scraper.pipeline.save_article",
                      side_effect=lambda a, d: a.source_url.rsplit("/", 1)[-1] + ".txt"):
            outcome = Pipeline(cfg).run(urls)

        assert first_started.is_set()
        assert outcome.successful == [f"{i}.txt" for i in range(6)]

    def test_delay_paces_each_worker(self, cfg: Settings) -> None:
        urls = [f"http://example.com/{i}" for i in range(4)]
        with patch("newsgrab.scraper.pipeline.fetch_url",
                   return_value=FetchResult(url="x", error="timeout")), \
                patch("newsgrab.scraper.pipeline.time.sleep") as mock_sleep:
            outcome = Pipeline(cfg, workers=2).run(urls)

        assert outcome.attempted == 4
        # Every URL after a worker's first one is preceded by one pause.
        assert 2 <= mock_sleep.call_count <= 3

    def test_shared_pool_is_rotated_exactly_once_per_url(self, cfg: Settings) -> None:
        pool = ProxyPool(["http://p0:1", "http://p1:1", "http://p2:1"])
        _with(cfg, proxy_type="proxy_list", request_delay_ms=0)
        with patch("newsgrab.scraper.pipeline.fetch_url",
                   return_value=FetchResult(url="x", error="timeout")) as mock_fetch:
            Pipeline(cfg, pool=pool, workers=4).run([f"http://a/{i}" for i in range(9)])

        used = sorted(c.kwargs["proxy"].uri for c in mock_fetch.call_args_list)
        assert used == sorted(["http://p0:1", "http://p1:1", "http://p2:1"] * 3)
        assert pool.cursor == 0


def test_run_batch_helper(cfg: Settings) -> None:
    with patch("newsgrab.scraper.pipeline.fetch_url",
               return_value=FetchResult(url="x", error="timeout")):
        outcome = run_batch(["http://a/1"], _with(cfg, request_delay_ms=0))
    assert outcome.failures[0].error == "timeout"
