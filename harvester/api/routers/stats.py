"""Statistics endpoints.

Routes
------
GET  /stats          Raw counters plus success_rate, download_speed, filter_rate
POST /stats/reset    Zero every counter
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("", response_model=dict[str, Any])
def get_stats_endpoint(request: Request) -> dict[str, Any]:
    stats = request.app.state.stats
    stats.update_file_count(request.app.state.downloads_dir)
    return stats.snapshot()


@router.post("/reset", response_model=dict[str, Any])
def reset_stats_endpoint(request: Request) -> dict[str, Any]:
    stats = request.app.state.stats
    stats.reset()
    return {"success": True, "stats": stats.snapshot()}
