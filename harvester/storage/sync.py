"""Idempotent mirroring of the local archive to a remote object store.

Every operation is safe to repeat:

* folders are looked up by ``(name, parent)`` before being created;
* files are looked up by name under the target parent before any bytes are
  transferred, and an existing item's id is returned as-is;
* local copies are deleted (auto-cleanup) only after a confirmed upload.

The staging directory (``incoming/``) is never mirrored.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from harvester.models import FOLDER_MIME_TYPE, StorageItem
from harvester.storage.base import ObjectStore, StorageError

STAGING_DIR_NAME = "incoming"


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def is_syncable_file(path: Path) -> bool:
    return path.is_file() and not path.name.startswith(".")


@dataclass
class MirrorReport:
    folders: int = 0
    uploaded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    cleaned: list[str] = field(default_factory=list)


class ArchivalSync:
    def __init__(self, store: ObjectStore, auto_cleanup: bool = False) -> None:
        self.store = store
        self.auto_cleanup = auto_cleanup

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def find_folder(self, name: str, parent_id: str) -> Optional[str]:
        try:
            matches = self.store.find(name, parent_id, mime_type=FOLDER_MIME_TYPE)
        except StorageError as exc:
            print(f"[DRIVE] Folder lookup failed for {name}: {exc}")
            return None
        return matches[0].id if matches else None

    def get_or_create_folder(self, name: str, parent_id: str) -> Optional[str]:
        """Return the id of folder *name* under *parent_id*, creating it on miss."""
        try:
            matches = self.store.find(name, parent_id, mime_type=FOLDER_MIME_TYPE)
            if matches:
                return matches[0].id
            created = self.store.create_folder(name, parent_id)
        except StorageError as exc:
            print(f"[DRIVE] Folder creation/retrieval failed for {name}: {exc}")
            return None
        print(f"[DRIVE] Created folder: {name}")
        return created.id

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def upload(self, local_path: Path, parent_id: str) -> Optional[str]:
        """Upload *local_path* under *parent_id* unless a same-named item exists.

        Returns the remote item id (new or pre-existing), or ``None`` on
        failure.
        """
        local_path = Path(local_path)
        try:
            existing = self.store.find(local_path.name, parent_id)
            if existing:
                print(f"[DRIVE] File already exists (skipping): {local_path.name} ({existing[0].id})")
                return existing[0].id
            print(f"[DRIVE] Starting upload: {local_path.name} …")
            item = self.store.upload_file(local_path, parent_id, guess_mime_type(local_path))
        except (StorageError, OSError) as exc:
            print(f"[DRIVE] Upload failed for {local_path}: {exc}")
            return None
        print(f"[DRIVE] Uploaded successfully. File ID: {item.id}")
        return item.id

    def list_files(self, parent_id: str) -> list[StorageItem]:
        try:
            return [i for i in self.store.list_children(parent_id) if not i.is_folder]
        except StorageError as exc:
            print(f"[DRIVE] Failed to list files in {parent_id}: {exc}")
            return []

    def move(self, item_id: str, from_parent_id: str, to_parent_id: str) -> bool:
        try:
            self.store.move(item_id, from_parent_id, to_parent_id)
        except StorageError as exc:
            print(f"[DRIVE] Move failed for {item_id}: {exc}")
            return False
        return True

    def cleanup_local(self, local_path: Path) -> bool:
        try:
            Path(local_path).unlink()
        except OSError as exc:
            print(f"[CLEANUP] Failed to delete {local_path}: {exc}")
            return False
        print(f"[CLEANUP] Deleted local: {Path(local_path).name}")
        return True

    # ------------------------------------------------------------------
    # Tree operations
    # ------------------------------------------------------------------

    def mirror(self, local_root: Path, remote_parent_id: str) -> MirrorReport:
        """Recursively mirror *local_root* under *remote_parent_id*.

        Sub-folders of a directory are resolved first, then each is recursed
        into, and the directory's own files are uploaded last, so uploads
        happen leaf-first.
        """
        report = MirrorReport()
        self._mirror_dir(Path(local_root), remote_parent_id, report)
        return report

    def _mirror_dir(self, local_dir: Path, remote_id: str, report: MirrorReport) -> None:
        if not local_dir.is_dir() or local_dir.name == STAGING_DIR_NAME:
            return

        entries = sorted(local_dir.iterdir(), key=lambda p: p.name)
        subdirs = [p for p in entries if p.is_dir() and p.name != STAGING_DIR_NAME]
        files = [p for p in entries if is_syncable_file(p)]

        resolved: list[tuple[Path, str]] = []
        for sub in subdirs:
            print(f"[DRIVE] Mirroring folder: {sub.name}")
            folder_id = self.get_or_create_folder(sub.name, remote_id)
            if folder_id is None:
                print(f"[DRIVE] Skipping directory {sub.name} (folder unavailable).")
                continue
            report.folders += 1
            resolved.append((sub, folder_id))

        for sub, folder_id in resolved:
            self._mirror_dir(sub, folder_id, report)

        for path in files:
            item_id = self.upload(path, remote_id)
            if item_id is None:
                report.failed.append(str(path))
                continue
            report.uploaded.append(str(path))
            if self.auto_cleanup and self.cleanup_local(path):
                report.cleaned.append(str(path))

    def purge(self, parent_id: str) -> tuple[int, int]:
        """Delete every item directly under *parent_id*.

        Returns ``(deleted, failed)`` counts.
        """
        try:
            items = self.store.list_children(parent_id)
        except StorageError as exc:
            print(f"[DRIVE] Failed to list {parent_id}: {exc}")
            return 0, 0

        deleted = failed = 0
        for item in items:
            try:
                self.store.delete(item.id)
            except StorageError as exc:
                print(f"[DRIVE] Failed to delete {item.name} ({item.id}): {exc}")
                failed += 1
                continue
            print(f"[DRIVE] Deleted {item.name} ({item.id})")
            deleted += 1
        return deleted, failed
