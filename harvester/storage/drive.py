"""Google Drive implementation of :class:`~harvester.storage.base.ObjectStore`.

Authentication uses an OAuth user token file (``DRIVE_TOKEN_PATH``) created
out-of-band.  Expired tokens with a refresh token are refreshed and written
back to disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from harvester.config import settings
from harvester.models import FOLDER_MIME_TYPE, StorageItem
from harvester.storage.base import StorageError

SCOPES = ["https://www.googleapis.com/auth/drive"]
_FIELDS = "files(id, name, mimeType, parents)"


def _load_credentials(token_path: Path) -> Credentials:
    if not token_path.exists():
        raise StorageError(
            f"Google Drive token not found at {token_path}. "
            "Run the OAuth authorization flow first."
        )

    creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
    if creds and creds.expired and creds.refresh_token:
        print("[DRIVE] Refreshing OAuth token …")
        creds.refresh(Request())
        token_path.write_text(creds.to_json())

    if not creds or not creds.valid:
        raise StorageError(f"Invalid Google Drive credentials at {token_path}")
    return creds


def _escape(value: str) -> str:
    """Escape a value for use inside a quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _to_item(raw: dict[str, Any], parent_id: Optional[str] = None) -> StorageItem:
    parents = raw.get("parents") or []
    return StorageItem(
        id=raw["id"],
        name=raw.get("name", ""),
        mime_type=raw.get("mimeType", ""),
        parent_id=parents[0] if parents else parent_id,
    )


class DriveObjectStore:
    """Thin, exception-normalising wrapper around the Drive v3 API."""

    def __init__(self, service: Any = None, token_path: Path | None = None) -> None:
        if service is None:
            creds = _load_credentials(token_path or settings.drive_token_path)
            service = build("drive", "v3", credentials=creds, cache_discovery=False)
        self._service = service

    def _list(self, query: str, parent_id: Optional[str] = None) -> list[StorageItem]:
        items: list[StorageItem] = []
        page_token: Optional[str] = None
        try:
            while True:
                response = (
                    self._service.files()
                    .list(
                        q=query,
                        fields=f"nextPageToken, {_FIELDS}",
                        spaces="drive",
                        pageToken=page_token,
                    )
                    .execute()
                )
                items.extend(_to_item(f, parent_id) for f in response.get("files", []))
                page_token = response.get("nextPageToken")
                if not page_token:
                    return items
        except HttpError as exc:
            raise StorageError(f"Drive listing failed: {exc}") from exc

    def find(
        self, name: str, parent_id: str, mime_type: Optional[str] = None
    ) -> list[StorageItem]:
        query = (
            f"name = '{_escape(name)}' and '{_escape(parent_id)}' in parents "
            "and trashed = false"
        )
        if mime_type:
            query += f" and mimeType = '{_escape(mime_type)}'"
        return self._list(query, parent_id)

    def list_children(self, parent_id: str) -> list[StorageItem]:
        return self._list(f"'{_escape(parent_id)}' in parents and trashed = false", parent_id)

    def create_folder(self, name: str, parent_id: str) -> StorageItem:
        body = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]}
        try:
            created = self._service.files().create(body=body, fields="id, name, mimeType").execute()
        except HttpError as exc:
            raise StorageError(f"Folder creation failed for {name!r}: {exc}") from exc
        return _to_item(created, parent_id)

    def upload_file(self, path: Path, parent_id: str, mime_type: str) -> StorageItem:
        media = MediaFileUpload(str(path), mimetype=mime_type, resumable=True)
        body = {"name": path.name, "parents": [parent_id]}
        try:
            created = (
                self._service.files()
                .create(body=body, media_body=media, fields="id, name, mimeType")
                .execute()
            )
        except HttpError as exc:
            raise StorageError(f"Upload failed for {path.name!r}: {exc}") from exc
        return _to_item(created, parent_id)

    def move(self, item_id: str, from_parent_id: str, to_parent_id: str) -> None:
        try:
            self._service.files().update(
                fileId=item_id,
                addParents=to_parent_id,
                removeParents=from_parent_id,
                fields="id, parents",
            ).execute()
        except HttpError as exc:
            raise StorageError(f"Move failed for {item_id}: {exc}") from exc

    def delete(self, item_id: str) -> None:
        try:
            self._service.files().delete(fileId=item_id).execute()
        except HttpError as exc:
            raise StorageError(f"Delete failed for {item_id}: {exc}") from exc
