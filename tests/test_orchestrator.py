"""Tests for the crawl orchestrator.

The relevance filter runs for real on a ``ScriptedClient``; the download
engine is a ``MagicMock`` returning canned outcomes.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import respx

from harvester.ai.rate_limit import RateLimiter
from harvester.ai.relevance import FilterConfig, RelevanceFilter
from harvester.crawl import CrawlOrchestrator
from harvester.download.engine import DownloadEngine
from harvester.models import DownloadOutcome, LinkContext, PageLinks

from conftest import ScriptedClient


def _reply(request):
    url = request.payload["url"]
    approved = not url.endswith("contact")
    return {"shouldDownload": approved, "confidence": 0.9 if approved else 0.2, "reasoning": url}


def _relevance(sleeps, clock) -> RelevanceFilter:
    return RelevanceFilter(
        ScriptedClient(default=_reply),
        FilterConfig(min_confidence=0.6),
        limiter=RateLimiter(max_requests=100, clock=clock, sleep=clock.sleep),
        known_extensions=["pdf"],
        sleep=sleeps.append,
    )


def _engine(tmp_path: Path) -> MagicMock:
    outcomes = {
        "https://e.com/new.pdf": lambda: DownloadOutcome.success(
            "https://e.com/new.pdf", tmp_path / "finished" / "new.pdf"
        ),
        "https://e.com/dup.pdf": lambda: DownloadOutcome.skipped("https://e.com/dup.pdf", "dup.pdf"),
        "https://e.com/broken.pdf": lambda: DownloadOutcome.failed("https://e.com/broken.pdf", "404"),
    }
    engine = MagicMock()
    engine.acquire.side_effect = lambda url, target: outcomes[url]()
    return engine


def _page(*urls: str) -> PageLinks:
    return PageLinks(
        page_url="https://e.com/resources",
        page_title="Resources",
        links=[LinkContext(url=u, link_text=u.rsplit("/", 1)[-1]) for u in urls],
    )


class TestHandlePage:
    def test_events_reach_the_aggregator(self, tmp_path, stats, sleeps, clock) -> None:
        engine = _engine(tmp_path)
        orchestrator = CrawlOrchestrator(
            _relevance(sleeps, clock), engine, stats, download_dir=tmp_path / "finished"
        )

        report = orchestrator.handle_page(
            _page(
                "https://e.com/new.pdf",
                "https://e.com/dup.pdf",
                "https://e.com/broken.pdf",
                "https://e.com/contact",
            )
        )

        assert report.analyzed == 4
        assert report.approved == 3
        assert report.downloaded == [str(tmp_path / "finished" / "new.pdf")]
        assert report.skipped == 1
        assert report.failed == 1

        snap = stats.snapshot()
        assert snap["urls_processed"] == 1
        assert snap["urls_failed"] == 0
        assert snap["total_downloaded"] == 1
        assert snap["total_errors"] == 1
        assert snap["total_filtered"] == 1
        assert snap["ai_filter_stats"]["total_analyzed"] == 4
        assert snap["ai_filter_stats"]["rejected"] == 1
        assert snap["filter_rate"] == 25.0

    def test_rejected_links_are_never_downloaded(self, tmp_path, stats, sleeps, clock) -> None:
        engine = _engine(tmp_path)
        orchestrator = CrawlOrchestrator(_relevance(sleeps, clock), engine, stats)

        orchestrator.handle_page(_page("https://e.com/contact"))

        engine.acquire.assert_not_called()

    def test_downloads_go_to_configured_folder(self, tmp_path, stats, sleeps, clock) -> None:
        engine = _engine(tmp_path)
        target = tmp_path / "finished"
        CrawlOrchestrator(
            _relevance(sleeps, clock), engine, stats, download_dir=target
        ).handle_page(_page("https://e.com/new.pdf"))

        engine.acquire.assert_called_once_with("https://e.com/new.pdf", target)

    def test_handler_failure_counts_page_as_failed(self, tmp_path, stats) -> None:
        relevance = MagicMock()
        relevance.decide_batch.side_effect = RuntimeError("browser crashed")
        orchestrator = CrawlOrchestrator(relevance, _engine(tmp_path), stats)

        report = orchestrator.handle_page(_page("https://e.com/new.pdf"))

        assert report.error == "browser crashed"
        snap = stats.snapshot()
        assert snap["urls_processed"] == 1
        assert snap["urls_failed"] == 1
        assert snap["success_rate"] == 0.0


    def test_malformed_link_fails_alone(self, tmp_path, stats, sleeps, clock) -> None:
        target = tmp_path / "finished"
        with DownloadEngine(archive_root=tmp_path) as engine:
            orchestrator = CrawlOrchestrator(
                _relevance(sleeps, clock), engine, stats, download_dir=target
            )
            with respx.mock:
                respx.get("https://e.com/good.pdf").mock(
                    return_value=httpx.Response(200, content=b"%PDF-1.4 body")
                )
                report = orchestrator.handle_page(
                    _page("https://e.com/good.pdf", "http://[::1/notes.pdf")
                )

        assert [p.name for p in target.iterdir()] == ["good.pdf"]
        assert report.downloaded == [str(target / "good.pdf")]
        assert report.failed == 1
        assert report.error is None
        snap = stats.snapshot()
        assert snap["total_downloaded"] == 1
        assert snap["total_errors"] == 1
        assert snap["urls_failed"] == 0

    def test_unexpected_engine_error_is_counted_per_link(
        self, tmp_path, stats, sleeps, clock
    ) -> None:
        engine = _engine(tmp_path)
        fallback = engine.acquire.side_effect

        def acquire(url, target):
            if url.endswith("odd.pdf"):
                raise RuntimeError("disk vanished")
            return fallback(url, target)

        engine.acquire.side_effect = acquire
        orchestrator = CrawlOrchestrator(_relevance(sleeps, clock), engine, stats)

        report = orchestrator.handle_page(_page("https://e.com/new.pdf", "https://e.com/odd.pdf"))

        assert len(report.downloaded) == 1
        assert report.failed == 1
        snap = stats.snapshot()
        assert snap["total_downloaded"] == 1
        assert snap["total_errors"] == 1
        assert snap["urls_failed"] == 0


class TestStop:
    def test_stop_reaches_filter_and_engine(self, tmp_path, stats) -> None:
        relevance = MagicMock()
        engine = MagicMock()
        orchestrator = CrawlOrchestrator(relevance, engine, stats)

        orchestrator.stop()

        relevance.stop.assert_called_once_with()
        engine.stop.assert_called_once_with()

    def test_page_after_stop_spends_no_quota(self, tmp_path, stats) -> None:
        relevance = MagicMock()
        orchestrator = CrawlOrchestrator(relevance, _engine(tmp_path), stats)
        orchestrator.stop()

        report = orchestrator.handle_page(_page("https://e.com/new.pdf"))

        relevance.decide_batch.assert_not_called()
        assert report.error == "stopped"
        assert stats.snapshot()["urls_processed"] == 0

    def test_stop_cuts_rate_limit_wait_short(self, tmp_path, stats) -> None:
        limiter = RateLimiter(max_requests=1, window=4.0)
        relevance = RelevanceFilter(
            ScriptedClient(default=_reply),
            FilterConfig(min_confidence=0.6),
            limiter=limiter,
            known_extensions=["pdf"],
        )
        orchestrator = CrawlOrchestrator(relevance, _engine(tmp_path), stats)
        assert limiter.acquire() is True

        worker = threading.Thread(
            target=orchestrator.handle_page, args=(_page("https://e.com/contact"),)
        )
        started = time.monotonic()
        worker.start()
        threading.Timer(0.3, orchestrator.stop).start()
        worker.join(timeout=10.0)
        elapsed = time.monotonic() - started

        assert not worker.is_alive()
        assert elapsed < 2.0


class TestRun:
    def test_run_handles_every_page_and_clears_running_flag(
        self, tmp_path, stats, sleeps, clock
    ) -> None:
        orchestrator = CrawlOrchestrator(
            _relevance(sleeps, clock), _engine(tmp_path), stats, max_concurrency=2
        )
        pages = [_page("https://e.com/dup.pdf") for _ in range(5)]

        reports = orchestrator.run(pages)

        assert len(reports) == 5
        snap = stats.snapshot()
        assert snap["urls_processed"] == 5
        assert snap["is_running"] is False
        assert snap["active_threads"] == 0
        assert snap["max_concurrency"] == 2

    def test_stopped_orchestrator_schedules_nothing(self, tmp_path, stats, sleeps, clock) -> None:
        engine = _engine(tmp_path)
        orchestrator = CrawlOrchestrator(_relevance(sleeps, clock), engine, stats)
        orchestrator.stop()

        assert orchestrator.run([_page("https://e.com/new.pdf")]) == []
        assert orchestrator.stopped
        engine.acquire.assert_not_called()

    def test_stop_skips_pending_downloads(self, tmp_path, stats, sleeps, clock) -> None:
        engine = _engine(tmp_path)
        orchestrator = CrawlOrchestrator(_relevance(sleeps, clock), engine, stats)
        orchestrator.stop()

        report = orchestrator.handle_page(_page("https://e.com/new.pdf"))

        engine.acquire.assert_not_called()
        assert report.downloaded == []
