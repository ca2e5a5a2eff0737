"""Main entry point for the harvest statistics service."""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import FastAPI

from harvest_stats.api.v1 import harvest_router, system_router
from harvest_stats.core.settings import Settings, settings
from harvest_stats.services.harvest_manager import HarvestDataManager
from harvest_stats.storage import HarvestStorage, create_storage


def create_app(
    config: Settings = settings,
    *,
    storage_factory: Callable[[Settings], HarvestStorage] = create_storage,
) -> FastAPI:
    """Build the API with a harvest cache bound to the app lifecycle.

    Args:
        config: Settings handed to the cache manager
        storage_factory: Builds the storage backend from the settings

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Harvest Stats API",
        description="Per-player harvest statistics with write-behind persistence",
        version=config.app_version,
    )
    app.state.harvest_manager = HarvestDataManager(config, storage_factory=storage_factory)

    app.include_router(harvest_router, prefix="/api/v1")
    app.include_router(system_router, prefix="/api/v1")

    @app.on_event("startup")
    async def on_startup() -> None:
        await app.state.harvest_manager.start()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await app.state.harvest_manager.stop()

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint to verify the service is running."""
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("harvest_stats.main:app", host="0.0.0.0", port=8000)
