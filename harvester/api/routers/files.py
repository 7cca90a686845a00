"""Archive listing endpoint.

Routes
------
GET /files    Recursive tree of the local archive
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from harvester.files import FileItem, scan_directory

router = APIRouter()


def _item_dict(item: FileItem) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": item.name,
        "path": item.path,
        "size": item.size,
        "modified": item.modified.isoformat(),
        "type": item.type,
    }
    if item.children is not None:
        data["children"] = [_item_dict(child) for child in item.children]
    return data


@router.get("", response_model=list[dict[str, Any]])
def list_files_endpoint(request: Request) -> list[dict[str, Any]]:
    return [_item_dict(item) for item in scan_directory(request.app.state.downloads_dir)]
