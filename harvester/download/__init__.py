"""Download package — deduplicating, staged file acquisition."""

from harvester.download.engine import DownloadEngine
from harvester.download.naming import (
    extension_for_content_type,
    filename_from_content_disposition,
    filename_from_url,
    sanitize_filename,
)

__all__ = [
    "DownloadEngine",
    "extension_for_content_type",
    "filename_from_content_disposition",
    "filename_from_url",
    "sanitize_filename",
]
