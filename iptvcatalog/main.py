"""
iptvcatalog Main Application

FastAPI application factory and the ``iptvcatalog`` server entry point.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from iptvcatalog import __version__
from iptvcatalog.config import load_config
from iptvcatalog.database.connection import close_db, init_sync_db
from iptvcatalog.fetch.downloader import PlaylistDownloader

logger = logging.getLogger(__name__)


def remove_stale_staging_files(downloader: PlaylistDownloader) -> int:
    """Delete staging files left behind by a process that died mid-refresh."""
    staging_dir = downloader.staging_path(0).parent
    removed = 0
    for path in staging_dir.glob("playlist_*.m3u"):
        path.unlink(missing_ok=True)
        removed += 1
    if removed:
        logger.info(f"Removed {removed} stale staging file(s) from {staging_dir}")
    return removed


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load config and open the database on startup; close it on shutdown."""
    config = load_config()
    logger.info(f"Starting iptvcatalog v{__version__} on port {config.server.port}")

    init_sync_db()
    remove_stale_staging_files(PlaylistDownloader(config.fetch))

    yield

    logger.info("Shutting down iptvcatalog")
    close_db()


def create_app() -> FastAPI:
    """Build the FastAPI application with the playlist API mounted under /api."""
    from iptvcatalog.api import api_router

    app = FastAPI(
        title="iptvcatalog",
        description="IPTV playlist ingestion service for M3U and Xtream Codes sources",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.include_router(api_router)

    @app.get("/api/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    from iptvcatalog.utils.logging_setup import setup_logging

    config = load_config()
    setup_logging(config.logging)

    uvicorn.run(
        "iptvcatalog.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.debug,
        log_level=config.server.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
