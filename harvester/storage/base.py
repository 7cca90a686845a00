"""Object-store port used by the archival layer.

Any backend (Google Drive in production, an in-memory fake in tests) only
needs to satisfy :class:`ObjectStore`.  Backends raise :class:`StorageError`
for every remote failure so callers handle a single exception type.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol

from harvester.models import StorageItem


class StorageError(RuntimeError):
    """A remote object-store operation failed."""


class ObjectStore(Protocol):
    def find(
        self, name: str, parent_id: str, mime_type: Optional[str] = None
    ) -> list[StorageItem]:
        """Return non-trashed items called *name* directly under *parent_id*."""
        ...

    def list_children(self, parent_id: str) -> list[StorageItem]:
        ...

    def create_folder(self, name: str, parent_id: str) -> StorageItem:
        ...

    def upload_file(self, path: Path, parent_id: str, mime_type: str) -> StorageItem:
        ...

    def move(self, item_id: str, from_parent_id: str, to_parent_id: str) -> None:
        ...

    def delete(self, item_id: str) -> None:
        ...
