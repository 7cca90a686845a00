"""File → curriculum node mapping endpoints.

Routes
------
GET    /mappings                  All mappings
GET    /mappings?file_path=...    One mapping (404 when unknown)
PUT    /mappings                  Create or replace the mapping for a path
DELETE /mappings?file_path=...    Remove a mapping (404 when unknown)
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

router = APIRouter()


class MappingUpsert(BaseModel):
    file_path: str
    curriculum_node_id: str


@router.get("", response_model=None)
def get_mappings_endpoint(request: Request, file_path: Optional[str] = None) -> Any:
    store = request.app.state.mappings
    if file_path is None:
        return [asdict(m) for m in store.all()]
    mapping = store.get(file_path)
    if mapping is None:
        raise HTTPException(status_code=404, detail=f"No mapping for '{file_path}'.")
    return asdict(mapping)


@router.put("", response_model=dict[str, Any])
def put_mapping_endpoint(body: MappingUpsert, request: Request) -> dict[str, Any]:
    if not body.file_path.strip():
        raise HTTPException(status_code=422, detail="file_path must not be empty.")
    mapping = request.app.state.mappings.add(body.file_path, body.curriculum_node_id)
    return asdict(mapping)


@router.delete("", response_model=dict[str, Any])
def delete_mapping_endpoint(file_path: str, request: Request) -> dict[str, Any]:
    if not request.app.state.mappings.remove(file_path):
        raise HTTPException(status_code=404, detail=f"No mapping for '{file_path}'.")
    return {"success": True}
