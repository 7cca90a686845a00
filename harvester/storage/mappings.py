"""File → curriculum-node mappings persisted as a JSON array keyed by path."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional


@dataclass
class FileMapping:
    file_path: str
    curriculum_node_id: str


class MappingStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._mappings = self._load()

    def _load(self) -> list[FileMapping]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return [FileMapping(**entry) for entry in raw]
        except (OSError, json.JSONDecodeError, TypeError) as exc:
            print(f"[MAPPINGS] Failed to load {self.path}: {exc}")
            return []

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(
            json.dumps([asdict(m) for m in self._mappings], indent=2), encoding="utf-8"
        )
        os.replace(tmp, self.path)

    def all(self) -> list[FileMapping]:
        with self._lock:
            return list(self._mappings)

    def get(self, file_path: str) -> Optional[FileMapping]:
        with self._lock:
            return next((m for m in self._mappings if m.file_path == file_path), None)

    def add(self, file_path: str, curriculum_node_id: str) -> FileMapping:
        """Insert or update the mapping for *file_path*."""
        with self._lock:
            for mapping in self._mappings:
                if mapping.file_path == file_path:
                    mapping.curriculum_node_id = curriculum_node_id
                    break
            else:
                mapping = FileMapping(file_path, curriculum_node_id)
                self._mappings.append(mapping)
            self._save()
            return mapping

    def remove(self, file_path: str) -> bool:
        with self._lock:
            before = len(self._mappings)
            self._mappings = [m for m in self._mappings if m.file_path != file_path]
            removed = len(self._mappings) != before
            if removed:
                self._save()
            return removed
