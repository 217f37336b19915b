"""FastAPI application factory for the jsrecon worker API."""

from __future__ import annotations

from fastapi import FastAPI

from jsrecon import __version__
from jsrecon.config import JsReconConfig
from jsrecon.storage.db import get_db


async def create_app(
    config: JsReconConfig | None = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    config = config or JsReconConfig.load()

    app = FastAPI(
        title="jsrecon",
        version=__version__,
        docs_url="/api/docs",
    )

    app.state.config = config
    app.state.db = await get_db(config.db_path)

    from jsrecon.web.api.scans import router as scans_router
    from jsrecon.web.api.sourcemaps import router as sourcemaps_router

    app.include_router(scans_router, prefix="/api")
    app.include_router(sourcemaps_router, prefix="/api")

    @app.on_event("shutdown")
    async def shutdown() -> None:
        if hasattr(app.state, "db"):
            await app.state.db.close()

    return app
