"""Crawl route handler: discovered links → relevance filter → downloads → stats.

The external crawler calls :meth:`CrawlOrchestrator.handle_page` once per
visited page (or hands a page iterable to :meth:`CrawlOrchestrator.run`, which
drives a bounded worker pool).  Every pipeline event is reported straight to
the :class:`~harvester.stats.aggregator.StatsAggregator`.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from harvester.ai.relevance import RelevanceFilter
from harvester.config import settings
from harvester.download.engine import DownloadEngine
from harvester.models import DownloadOutcome, DownloadStatus, LinkContext, PageLinks
from harvester.stats.aggregator import StatsAggregator

_DOWNLOAD_WORKERS = 5


@dataclass
class PageReport:
    page_url: str
    analyzed: int = 0
    approved: int = 0
    downloaded: list[str] = field(default_factory=list)
    skipped: int = 0
    failed: int = 0
    error: Optional[str] = None


class CrawlOrchestrator:
    def __init__(
        self,
        relevance_filter: RelevanceFilter,
        engine: DownloadEngine,
        stats: StatsAggregator,
        download_dir: Path | None = None,
        max_concurrency: int | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.relevance_filter = relevance_filter
        self.engine = engine
        self.stats = stats
        self.download_dir = Path(download_dir or settings.finished_dir)
        self.max_concurrency = max_concurrency or settings.max_concurrency
        self._stop = stop_event or threading.Event()
        self._active_lock = threading.Lock()
        self._active = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Stop scheduling work and wake every blocked stage.

        The signal is forwarded to the relevance filter (rate-limit and
        backoff waits) and the download engine (body writes).
        """
        print("[CRAWL] Stop requested.")
        self._stop.set()
        self.relevance_filter.stop()
        self.engine.stop()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    # ------------------------------------------------------------------
    # Per-page handling
    # ------------------------------------------------------------------

    def handle_page(self, page: PageLinks) -> PageReport:
        print(f"[CRAWL] Processing: {page.page_url} ({len(page.links)} link(s))")
        report = PageReport(page_url=page.page_url)
        if self._stop.is_set():
            report.error = "stopped"
            return report

        try:
            approved = self._filter_links(page.links, report)
            if approved:
                workers = min(_DOWNLOAD_WORKERS, len(approved))
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    outcomes = list(pool.map(self._acquire, approved))
                for outcome in outcomes:
                    self._record_outcome(outcome, report)
        except Exception as exc:
            print(f"[CRAWL] ✗ Handler failed for {page.page_url!r}: {exc}")
            report.error = str(exc)
            self.stats.increment_urls_processed(success=False)
            return report

        self.stats.increment_urls_processed(success=True)
        if page.page_title:
            print(f"[CRAWL] ✓ {page.page_title}: {len(report.downloaded)} new file(s)")
        return report

    def _filter_links(self, links: list[LinkContext], report: PageReport) -> list[LinkContext]:
        decisions = self.relevance_filter.decide_batch(links)
        approved: list[LinkContext] = []
        for link, decision in zip(links, decisions):
            report.analyzed += 1
            self.stats.update_ai_filter_stats(decision.should_download, decision.confidence)
            tag = "✓" if decision.should_download else "✗"
            print(
                f"[AI FILTER] {tag} [{decision.confidence:.0%}] {link.url} — {decision.reasoning}"
            )
            if decision.should_download:
                approved.append(link)
            else:
                self.stats.increment_filtered()
        report.approved = len(approved)
        return approved

    def _acquire(self, link: LinkContext) -> Optional[DownloadOutcome]:
        if self._stop.is_set():
            return None
        try:
            return self.engine.acquire(link.url, self.download_dir)
        except Exception as exc:
            print(f"[CRAWL] ✗ Download of {link.url!r} failed: {exc}")
            return DownloadOutcome.failed(link.url, str(exc))

    def _record_outcome(self, outcome: Optional[DownloadOutcome], report: PageReport) -> None:
        if outcome is None:
            return
        if outcome.status is DownloadStatus.SUCCESS:
            report.downloaded.append(str(outcome.path))
            self.stats.increment_downloaded()
        elif outcome.status is DownloadStatus.SKIPPED:
            report.skipped += 1
        else:
            report.failed += 1
            self.stats.increment_errors()

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self, pages: Iterable[PageLinks]) -> list[PageReport]:
        """Handle *pages* on a pool of ``max_concurrency`` workers.

        Pages are pulled from *pages* lazily, one free slot at a time, so a
        stop request takes effect before the next page is scheduled.
        """
        self.stats.set_running(True, self.max_concurrency)
        slots = threading.BoundedSemaphore(self.max_concurrency)
        futures: list[Future[PageReport]] = []

        try:
            with ThreadPoolExecutor(max_workers=self.max_concurrency) as pool:
                for page in pages:
                    slots.acquire()
                    if self._stop.is_set():
                        slots.release()
                        print("[CRAWL] Stopped; no further pages scheduled.")
                        break
                    future = pool.submit(self._tracked_handle, page)
                    future.add_done_callback(lambda _f: slots.release())
                    futures.append(future)
            return [f.result() for f in futures]
        finally:
            self.stats.set_running(False)

    def _tracked_handle(self, page: PageLinks) -> PageReport:
        self._adjust_active(+1)
        try:
            return self.handle_page(page)
        finally:
            self._adjust_active(-1)

    def _adjust_active(self, delta: int) -> None:
        with self._active_lock:
            self._active += delta
            active = self._active
        self.stats.set_active_threads(active)
