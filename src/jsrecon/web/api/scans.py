"""REST API for passive scans and cached scan results."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from jsrecon.scanner.worker import handle_message
from jsrecon.storage.repos import PASSIVE_PREFIX, ScanCacheRepo

router = APIRouter(tags=["scans"])


@router.post("/scan")
async def scan(payload: Any = Body(...)):
    """Run a worker message (``ping`` or ``scanContent``)."""
    response = await handle_message(payload)
    status_code = 400 if response["status"] == "error" else 200
    return JSONResponse(status_code=status_code, content=response)


@router.get("/scans")
async def list_scans(request: Request, limit: int = 50, offset: int = 0):
    repo = ScanCacheRepo(request.app.state.db)
    return await repo.list_all(limit=limit, offset=offset)


@router.get("/scans/{key:path}")
async def get_scan(key: str, request: Request):
    config = request.app.state.config
    if key.startswith(PASSIVE_PREFIX):
        max_age = config.passive_cache_max_age
    else:
        max_age = config.cache_max_age
    repo = ScanCacheRepo(request.app.state.db)
    result = await repo.get(key, max_age=max_age)
    if result is None:
        return JSONResponse(
            status_code=404,
            content={"detail": "Scan not found"},
        )
    return result.to_cache_record()
