"""Process-wide scraper statistics.

One :class:`StatsAggregator` is created per process and handed to every
pipeline stage.  Each mutation runs under a single lock together with the
persist that follows it, so concurrent increments never lose updates and a
crash loses at most the in-flight event.

Derived metrics (``success_rate``, ``download_speed``, ``filter_rate``) are
computed in :meth:`StatsAggregator.snapshot` only; they are never stored.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from harvester.files import count_files
from harvester.stats.store import MemoryStatsStore, StatsStore


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


@dataclass
class AIFilterStats:
    total_analyzed: int = 0
    approved: int = 0
    rejected: int = 0
    average_confidence: float = 0.0


@dataclass
class ScraperStats:
    is_running: bool = False
    file_count: int = 0
    active_threads: int = 0
    max_concurrency: int = 5
    urls_processed: int = 0
    urls_failed: int = 0
    total_downloaded: int = 0
    total_errors: int = 0
    total_filtered: int = 0
    ai_filter_stats: AIFilterStats = field(default_factory=AIFilterStats)
    start_time: Optional[datetime] = None
    last_activity: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["start_time"] = self.start_time.isoformat() if self.start_time else None
        data["last_activity"] = self.last_activity.isoformat() if self.last_activity else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScraperStats:
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        ai = values.pop("ai_filter_stats", None) or {}
        ai_known = {f.name for f in fields(AIFilterStats)}
        values["start_time"] = _parse_time(values.get("start_time"))
        values["last_activity"] = _parse_time(values.get("last_activity"))
        return cls(
            ai_filter_stats=AIFilterStats(**{k: v for k, v in ai.items() if k in ai_known}),
            **values,
        )


class StatsAggregator:
    def __init__(
        self,
        store: StatsStore | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store or MemoryStatsStore()
        self._clock = clock
        self._lock = threading.Lock()
        self._stats = self._load()

    def _load(self) -> ScraperStats:
        data = self._store.load()
        if not data:
            return ScraperStats()
        try:
            return ScraperStats.from_dict(data)
        except (TypeError, ValueError) as exc:
            print(f"[STATS] Ignoring unreadable stats document: {exc}")
            return ScraperStats()

    def _touch_and_persist(self) -> None:
        # Caller holds self._lock.
        self._stats.last_activity = self._clock()
        self._store.save(self._stats.to_dict())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_running(self, running: bool, max_concurrency: int | None = None) -> None:
        with self._lock:
            self._stats.is_running = running
            if max_concurrency is not None:
                self._stats.max_concurrency = max_concurrency
            if running:
                self._stats.start_time = self._clock()
            else:
                self._stats.active_threads = 0
            self._touch_and_persist()

    def set_active_threads(self, count: int) -> None:
        with self._lock:
            self._stats.active_threads = max(0, count)
            self._touch_and_persist()

    def increment_urls_processed(self, success: bool = True) -> None:
        with self._lock:
            self._stats.urls_processed += 1
            if not success:
                self._stats.urls_failed += 1
            self._touch_and_persist()

    def increment_downloaded(self) -> None:
        with self._lock:
            self._stats.total_downloaded += 1
            self._touch_and_persist()

    def increment_errors(self) -> None:
        with self._lock:
            self._stats.total_errors += 1
            self._touch_and_persist()

    def increment_filtered(self) -> None:
        with self._lock:
            self._stats.total_filtered += 1
            self._touch_and_persist()

    def update_ai_filter_stats(self, approved: bool, confidence: float) -> None:
        """Record one filter decision and fold *confidence* into the running mean."""
        with self._lock:
            ai = self._stats.ai_filter_stats
            ai.total_analyzed += 1
            if approved:
                ai.approved += 1
            else:
                ai.rejected += 1
            ai.average_confidence += (confidence - ai.average_confidence) / ai.total_analyzed
            self._touch_and_persist()

    def update_file_count(self, root: Path) -> int:
        count = count_files(root)
        with self._lock:
            self._stats.file_count = count
            self._touch_and_persist()
        return count

    def reset(self) -> None:
        with self._lock:
            self._stats = ScraperStats()
            self._store.save(self._stats.to_dict())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Return the raw counters plus the derived metrics."""
        with self._lock:
            stats = self._stats
            data = stats.to_dict()
            now = self._clock()

            if stats.urls_processed > 0:
                success_rate = (
                    (stats.urls_processed - stats.urls_failed) / stats.urls_processed * 100
                )
            else:
                success_rate = 100.0

            download_speed = 0.0
            if stats.start_time and stats.total_downloaded > 0:
                elapsed_minutes = (now - stats.start_time).total_seconds() / 60
                if elapsed_minutes > 0:
                    download_speed = stats.total_downloaded / elapsed_minutes

            analyzed = stats.ai_filter_stats.total_analyzed
            filter_rate = stats.total_filtered / analyzed * 100 if analyzed else 0.0

        data["success_rate"] = success_rate
        data["download_speed"] = download_speed
        data["filter_rate"] = filter_rate
        return data
