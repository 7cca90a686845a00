"""Remote archival: object-store port, idempotent sync and file mappings.

The Google Drive backend lives in :mod:`harvester.storage.drive` and is
imported explicitly where needed.
"""

from harvester.storage.base import ObjectStore, StorageError
from harvester.storage.mappings import FileMapping, MappingStore
from harvester.storage.sync import ArchivalSync, MirrorReport

__all__ = [
    "ObjectStore",
    "StorageError",
    "FileMapping",
    "MappingStore",
    "ArchivalSync",
    "MirrorReport",
]
