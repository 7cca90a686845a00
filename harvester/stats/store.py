"""Persistence ports for the statistics aggregator."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional, Protocol


class StatsStore(Protocol):
    def load(self) -> Optional[dict[str, Any]]:
        ...

    def save(self, data: dict[str, Any]) -> None:
        ...


class JsonFileStatsStore:
    """Overwrites a single JSON document on every save.

    The document is written to a sibling temp file and swapped in with
    ``os.replace`` so a crash never leaves a truncated file behind.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            print(f"[STATS] Error loading {self.path}: {exc}")
            return None
        return data if isinstance(data, dict) else None

    def save(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            print(f"[STATS] Error saving {self.path}: {exc}")


class MemoryStatsStore:
    """Keeps the last saved document in memory; counts saves."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self.data = initial
        self.saves = 0

    def load(self) -> Optional[dict[str, Any]]:
        return json.loads(json.dumps(self.data)) if self.data is not None else None

    def save(self, data: dict[str, Any]) -> None:
        self.data = json.loads(json.dumps(data))
        self.saves += 1
