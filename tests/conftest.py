"""Shared fakes for the pipeline tests.

No test reaches a real model, Google Drive or the network: the model is a
``ScriptedClient``, the object store is a ``FakeObjectStore`` and HTTP is
mocked with ``respx`` where needed.
"""

from __future__ import annotations

import itertools
import threading
from pathlib import Path
from typing import Any, Optional

import pytest

from harvester.ai.client import ClassificationRequest
from harvester.models import FOLDER_MIME_TYPE, StorageItem
from harvester.stats import MemoryStatsStore, StatsAggregator
from harvester.storage.base import StorageError


class ScriptedClient:
    """Replays canned replies in order.

    A reply may be a dict (returned), an exception (raised) or a callable
    taking the request.  When the script runs out, *default* is used; if
    that is ``None`` the call fails the test.
    """

    def __init__(self, *replies: Any, default: Any = None) -> None:
        self._replies = list(replies)
        self._default = default
        self._lock = threading.Lock()
        self.requests: list[ClassificationRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def classify(self, request: ClassificationRequest) -> dict[str, Any]:
        with self._lock:
            self.requests.append(request)
            reply = self._replies.pop(0) if self._replies else self._default
        if reply is None:
            raise AssertionError(f"Unexpected classification call: {request.task}")
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(request)
        return dict(reply)


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instead of blocking."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeObjectStore:
    """In-memory :class:`~harvester.storage.base.ObjectStore`."""

    def __init__(self) -> None:
        self.items: dict[str, StorageItem] = {}
        self.uploads: list[str] = []
        self.deleted: list[str] = []
        self.fail_on: set[str] = set()
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed")

    def _new_id(self) -> str:
        return f"id-{next(self._ids)}"

    def add_folder(self, name: str, parent_id: Optional[str]) -> StorageItem:
        item = StorageItem(self._new_id(), name, FOLDER_MIME_TYPE, parent_id)
        self.items[item.id] = item
        return item

    def add_file(self, name: str, parent_id: Optional[str]) -> StorageItem:
        item = StorageItem(self._new_id(), name, "application/pdf", parent_id)
        self.items[item.id] = item
        return item

    def children(self, parent_id: str) -> list[StorageItem]:
        return [i for i in self.items.values() if i.parent_id == parent_id]

    # ObjectStore protocol ------------------------------------------------

    def find(self, name: str, parent_id: str, mime_type: Optional[str] = None) -> list[StorageItem]:
        self._check("find")
        return [
            i for i in self.items.values()
            if i.name == name
            and i.parent_id == parent_id
            and (mime_type is None or i.mime_type == mime_type)
        ]

    def list_children(self, parent_id: str) -> list[StorageItem]:
        self._check("list_children")
        return self.children(parent_id)

    def create_folder(self, name: str, parent_id: str) -> StorageItem:
        self._check("create_folder")
        with self._lock:
            return self.add_folder(name, parent_id)

    def upload_file(self, path: Path, parent_id: str, mime_type: str) -> StorageItem:
        self._check("upload_file")
        with self._lock:
            item = StorageItem(self._new_id(), Path(path).name, mime_type, parent_id)
            self.items[item.id] = item
            self.uploads.append(Path(path).name)
            return item

    def move(self, item_id: str, from_parent_id: str, to_parent_id: str) -> None:
        self._check("move")
        item = self.items[item_id]
        assert item.parent_id == from_parent_id
        item.parent_id = to_parent_id

    def delete(self, item_id: str) -> None:
        self._check("delete")
        self.items.pop(item_id)
        self.deleted.append(item_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sleeps() -> list[float]:
    """Recorder used as a non-blocking ``sleep`` callable via ``sleeps.append``."""
    return []


@pytest.fixture()
def stats_store() -> MemoryStatsStore:
    return MemoryStatsStore()


@pytest.fixture()
def stats(stats_store: MemoryStatsStore) -> StatsAggregator:
    return StatsAggregator(stats_store)


@pytest.fixture()
def object_store() -> FakeObjectStore:
    return FakeObjectStore()
