"""Directory listing helpers for the local archive."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


@dataclass
class FileItem:
    name: str
    path: str
    size: int
    modified: datetime
    type: str  # "file" | "directory"
    children: Optional[list[FileItem]] = field(default=None)


def scan_directory(root: Path, relative: Path = Path("")) -> list[FileItem]:
    """Return a tree of :class:`FileItem` for everything under *root*.

    Entries that vanish or cannot be stat'ed mid-scan are left out.
    """
    root = Path(root)
    if not root.is_dir():
        return []

    items: list[FileItem] = []
    for entry in sorted(root.iterdir(), key=lambda p: p.name):
        rel = relative / entry.name
        try:
            stat = entry.stat()
        except OSError:
            continue
        modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        if entry.is_dir():
            items.append(
                FileItem(
                    name=entry.name,
                    path=rel.as_posix(),
                    size=0,
                    modified=modified,
                    type="directory",
                    children=scan_directory(entry, rel),
                )
            )
        else:
            items.append(
                FileItem(
                    name=entry.name,
                    path=rel.as_posix(),
                    size=stat.st_size,
                    modified=modified,
                    type="file",
                )
            )
    return items


def count_files(root: Path) -> int:
    """Return the number of regular files anywhere under *root*."""
    count = 0
    for _dirpath, _dirnames, filenames in os.walk(root):
        count += len(filenames)
    return count
