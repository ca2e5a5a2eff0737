"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from harvest_stats.services.harvest_manager import HarvestDataManager


def get_harvest_manager(request: Request) -> HarvestDataManager:
    """Return the cache manager owned by the running application."""
    return request.app.state.harvest_manager


ManagerDep = Annotated[HarvestDataManager, Depends(get_harvest_manager)]
