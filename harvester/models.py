"""Data models shared across the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


@dataclass(frozen=True)
class LinkContext:
    """A candidate link discovered on a crawled page, with its surroundings."""

    url: str
    link_text: str = ""
    surrounding_text: str = ""
    page_title: str = ""
    anchor_attributes: dict[str, str] = field(default_factory=dict, hash=False)


@dataclass
class FilterDecision:
    """Whether a candidate link is worth downloading."""

    should_download: bool
    confidence: float
    reasoning: str
    detected_subject: Optional[str] = None
    detected_grade: Optional[str] = None


@dataclass
class ClassificationResult:
    """Grade / subject placement for a single file."""

    grade: str
    subject: str
    confidence: float


@dataclass
class PageLinks:
    """Everything the crawler hands over for one visited page."""

    page_url: str
    page_title: str = ""
    links: list[LinkContext] = field(default_factory=list)


@dataclass
class StorageItem:
    """A file or folder on the remote object store."""

    id: str
    name: str
    mime_type: str
    parent_id: Optional[str] = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


# ---------------------------------------------------------------------------
# Download outcomes
# ---------------------------------------------------------------------------

class FileStage(str, Enum):
    """Lifecycle of an acquired file."""

    FETCHED = "fetched"    # bytes written to the staging area
    VERIFIED = "verified"  # finalized into the target folder
    ARCHIVED = "archived"  # confirmed on the remote store


class DownloadStatus(str, Enum):
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class DownloadOutcome:
    """Result of :meth:`~harvester.download.engine.DownloadEngine.acquire`."""

    status: DownloadStatus
    url: str
    filename: Optional[str] = None
    path: Optional[Path] = None
    stage: Optional[FileStage] = None
    remote_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def skipped(cls, url: str, filename: str) -> DownloadOutcome:
        return cls(status=DownloadStatus.SKIPPED, url=url, filename=filename)

    @classmethod
    def success(
        cls,
        url: str,
        path: Path,
        stage: FileStage = FileStage.VERIFIED,
        remote_id: Optional[str] = None,
    ) -> DownloadOutcome:
        return cls(
            status=DownloadStatus.SUCCESS,
            url=url,
            filename=path.name,
            path=path,
            stage=stage,
            remote_id=remote_id,
        )

    @classmethod
    def failed(cls, url: str, error: str, filename: Optional[str] = None) -> DownloadOutcome:
        return cls(status=DownloadStatus.FAILED, url=url, filename=filename, error=error)

    @property
    def ok(self) -> bool:
        return self.status is DownloadStatus.SUCCESS
