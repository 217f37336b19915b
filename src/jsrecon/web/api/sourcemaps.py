"""REST API for source map reconstruction."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from jsrecon.fetch.throttle import ThrottledFetcher
from jsrecon.sourcemap.reconstructor import (
    ERROR_LOG_KEY,
    SourceMapReconstructor,
    build_file_tree,
)

router = APIRouter(tags=["sourcemaps"])


class SourceMapRequest(BaseModel):
    url: str


@router.post("/sourcemap")
async def reconstruct(body: SourceMapRequest, request: Request):
    config = request.app.state.config
    async with ThrottledFetcher(
        max_concurrent=config.max_concurrent_fetches,
        request_delay_ms=config.request_delay_ms,
    ) as fetcher:
        files = await SourceMapReconstructor(fetcher).reconstruct(body.url)

    return {
        "url": body.url,
        "error": files.get(ERROR_LOG_KEY),
        "tree": build_file_tree(files),
        "files": files,
    }
