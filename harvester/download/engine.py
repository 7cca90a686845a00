"""Deduplicating, race-safe file acquisition.

``DownloadEngine.acquire`` moves a file through three stages:

    FETCHED   body streamed into ``<archive_root>/incoming/`` under a
              unique temporary name
    VERIFIED  atomically renamed into the target folder once the write has
              completed
    ARCHIVED  (optional) uploaded through :class:`ArchivalSync`

Uniqueness is global: a case-insensitive filename match anywhere under the
archive root (the staging area excluded) means the file is skipped before
any body bytes are fetched.  Network errors are not retried here; retry
policy belongs to the crawl layer.
"""

from __future__ import annotations

import os
import threading
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

import httpx

from harvester.config import settings
from harvester.download.naming import (
    extension_for_content_type,
    filename_from_content_disposition,
    filename_from_url,
)
from harvester.models import DownloadOutcome, FileStage
from harvester.storage.sync import STAGING_DIR_NAME, ArchivalSync

_DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (compatible; EduHarvester/1.0; +https://github.com/edu-harvester)"
    )
}


class DownloadCancelled(Exception):
    """The stop signal was raised while a body was being written."""


# Malformed crawler URLs surface as ValueError (urlparse, IDNA's UnicodeError)
# or httpx.InvalidURL rather than as httpx.HTTPError.
_FETCH_ERRORS = (httpx.HTTPError, httpx.InvalidURL, ValueError, OSError)


class _NameLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class DownloadEngine:
    def __init__(
        self,
        archive_root: Path | None = None,
        client: httpx.Client | None = None,
        sync: ArchivalSync | None = None,
        remote_parent_id: str | None = None,
        auto_cleanup: bool | None = None,
        stop_event: threading.Event | None = None,
        clock: Callable[[], float] = time.time,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self.archive_root = Path(archive_root or settings.downloads_dir)
        self.staging_dir = self.archive_root / STAGING_DIR_NAME
        self._owns_client = client is None
        self._client = client or httpx.Client(
            headers=_DEFAULT_HEADERS,
            timeout=settings.request_timeout,
            follow_redirects=True,
        )
        self.sync = sync
        self.remote_parent_id = remote_parent_id
        self.auto_cleanup = settings.auto_cleanup if auto_cleanup is None else auto_cleanup
        self._stop = stop_event or threading.Event()
        self._clock = clock
        self.chunk_size = chunk_size

        self._locks_guard = threading.Lock()
        self._name_locks: dict[str, _NameLock] = {}
        self._finalize_lock = threading.Lock()

    def stop(self) -> None:
        """Abort in-flight body writes; their staged files are discarded."""
        self._stop.set()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> DownloadEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def find_existing(self, filename: str) -> Optional[Path]:
        """Return the first file under the archive root named *filename*.

        The comparison is case-insensitive and the staging directory is
        ignored, since nothing in it is complete.
        """
        if not self.archive_root.exists():
            return None
        wanted = filename.lower()
        for dirpath, dirnames, filenames in os.walk(self.archive_root):
            if Path(dirpath) == self.archive_root:
                dirnames[:] = [d for d in dirnames if d != STAGING_DIR_NAME]
            for name in filenames:
                if name.lower() == wanted:
                    return Path(dirpath) / name
        return None

    def acquire(self, url: str, target_folder: Path | str | None = None) -> DownloadOutcome:
        """Download *url* into *target_folder* unless it already exists."""
        target = Path(target_folder) if target_folder else self.archive_root / "finished"
        try:
            filename = filename_from_url(url, self._clock())
        except ValueError as exc:
            print(f"[DOWNLOAD] ✗ Malformed URL {url!r}: {exc}")
            return DownloadOutcome.failed(url, str(exc))

        with self._name_lock(filename):
            if self.find_existing(filename):
                print(f"[SKIP] Already exists: {filename}")
                return DownloadOutcome.skipped(url, filename)
            return self._fetch(url, filename, target)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _name_lock(self, filename: str) -> Iterator[None]:
        key = filename.lower()
        with self._locks_guard:
            entry = self._name_locks.get(key)
            if entry is None:
                entry = self._name_locks[key] = _NameLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._name_locks[key]

    def _stage_path(self, filename: str) -> Path:
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        return self.staging_dir / f"{filename}.{uuid.uuid4().hex[:12]}.part"

    @staticmethod
    def _discard(path: Optional[Path]) -> None:
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            print(f"[DOWNLOAD] Could not remove staged file {path}: {exc}")

    def _fetch(self, url: str, filename: str, target: Path) -> DownloadOutcome:
        staged: Optional[Path] = None
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()

                header_name = filename_from_content_disposition(
                    response.headers.get("content-disposition")
                )
                if header_name and header_name != filename:
                    if self.find_existing(header_name):
                        print(f"[SKIP] Already exists (header-name): {header_name}")
                        return DownloadOutcome.skipped(url, header_name)
                    filename = header_name

                if not Path(filename).suffix:
                    ext = extension_for_content_type(response.headers.get("content-type"))
                    if ext:
                        filename = f"{filename}{ext}"

                staged = self._stage_path(filename)
                with staged.open("wb") as fh:
                    for chunk in response.iter_bytes(self.chunk_size):
                        if self._stop.is_set():
                            raise DownloadCancelled(url)
                        fh.write(chunk)

            final_path = self._finalize(staged, target, filename)
        except DownloadCancelled:
            self._discard(staged)
            print(f"[DOWNLOAD] Cancelled: {url}")
            return DownloadOutcome.failed(url, "cancelled", filename)
        except _FETCH_ERRORS as exc:
            self._discard(staged)
            print(f"[DOWNLOAD] ✗ Failed {url!r}: {exc}")
            return DownloadOutcome.failed(url, str(exc), filename)

        if final_path is None:
            return DownloadOutcome.skipped(url, filename)

        print(f"[DOWNLOADED] {final_path.name}")
        return self._archive(url, final_path)

    def _finalize(self, staged: Path, target: Path, filename: str) -> Optional[Path]:
        """Rename *staged* into *target*; ``None`` if the name was taken meanwhile."""
        with self._finalize_lock:
            target.mkdir(parents=True, exist_ok=True)
            destination = target / filename
            if destination.exists() or self.find_existing(filename):
                print(f"[SKIP] Already exists at finalize: {filename}")
                self._discard(staged)
                return None
            os.replace(staged, destination)
            return destination

    def _archive(self, url: str, final_path: Path) -> DownloadOutcome:
        if self.sync is None or not self.remote_parent_id:
            return DownloadOutcome.success(url, final_path, FileStage.VERIFIED)

        remote_id = self.sync.upload(final_path, self.remote_parent_id)
        if remote_id is None:
            return DownloadOutcome.success(url, final_path, FileStage.VERIFIED)

        if self.auto_cleanup:
            self.sync.cleanup_local(final_path)
        return DownloadOutcome.success(url, final_path, FileStage.ARCHIVED, remote_id)
