"""System and diagnostics endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from harvest_stats.api.v1.dependencies import ManagerDep
from harvest_stats.schemas import StorageStatus

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/storage")
async def get_storage_status(manager: ManagerDep) -> StorageStatus:
    """Report the active backend and cache occupancy.

    Args:
        manager: Harvest cache manager

    Returns:
        Backend kind, whether it persists data, and resident/dirty counts
    """
    return StorageStatus(
        kind=manager.storage_kind,
        available=manager.storage_available,
        running=manager.is_running,
        resident=manager.resident_count,
        dirty=manager.dirty_count,
    )


@router.post("/reload")
async def reload_storage(manager: ManagerDep) -> StorageStatus:
    """Flush everything, close storage and open it again."""
    await manager.reload()
    return await get_storage_status(manager)
