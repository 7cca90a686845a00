"""Throttling and memoisation for calls to the shared model quota.

Both objects here are shared by every concurrent page handler, so each one
guards its state with a single lock.
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import Callable, Optional

from harvester.models import FilterDecision, LinkContext

_CACHE_SURROUNDING_CHARS = 50


class RateLimiter:
    """Fixed-window request limiter.

    At most ``max_requests`` slots are handed out per ``window`` seconds.  A
    caller asking for a slot in a full window blocks until the window rolls
    over.  Blocking goes through *sleep*, which defaults to
    ``stop_event.wait`` so a stop signal cuts the wait short.
    """

    def __init__(
        self,
        max_requests: int = 15,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], object]] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._stop = stop_event or threading.Event()
        self._sleep = sleep or self._stop.wait
        self._lock = threading.Lock()
        self._count = 0
        self._window_start = clock()

    @property
    def request_count(self) -> int:
        return self._count

    def acquire(self) -> bool:
        """Take one slot.  Returns ``False`` if stopped while waiting."""
        with self._lock:
            if self._stop.is_set():
                return False

            now = self._clock()
            if now - self._window_start >= self.window:
                self._count = 0
                self._window_start = now

            if self._count >= self.max_requests:
                wait_time = self.window - (now - self._window_start)
                if wait_time > 0:
                    print(f"[AI FILTER] Rate limit reached. Waiting {wait_time:.1f}s …")
                    self._sleep(wait_time)
                    if self._stop.is_set():
                        return False
                self._count = 0
                self._window_start = self._clock()

            self._count += 1
            return True

    def stop(self) -> None:
        """Wake any caller blocked on a full window; later calls get no slot."""
        self._stop.set()

    def reset(self) -> None:
        with self._lock:
            self._count = 0
            self._window_start = self._clock()


class DecisionCache:
    """Thread-safe memo of filter decisions keyed by link context."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, FilterDecision] = {}

    @staticmethod
    def key_for(context: LinkContext) -> str:
        surrounding = (context.surrounding_text or "")[:_CACHE_SURROUNDING_CHARS]
        return f"{context.url}|{context.link_text}|{surrounding}"

    def get(self, context: LinkContext) -> FilterDecision | None:
        with self._lock:
            decision = self._entries.get(self.key_for(context))
        return replace(decision) if decision is not None else None

    def put(self, context: LinkContext, decision: FilterDecision) -> None:
        with self._lock:
            self._entries[self.key_for(context)] = replace(decision)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
