"""Harvest statistics endpoints.

Mutating routes are plain ``def`` handlers so a cache miss, which loads from
storage, runs on FastAPI's threadpool instead of the event loop.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from harvest_stats.api.v1.dependencies import ManagerDep
from harvest_stats.schemas import (
    CropDrop,
    HarvestIncrement,
    HarvestStats,
    PlaceholderValue,
    QualityItemIncrement,
)
from harvest_stats.services.harvest_tracker import DroppedItem, HarvestTracker
from harvest_stats.services.placeholders import resolve_placeholder

router = APIRouter(prefix="/harvest", tags=["harvest"])


def _stats(manager: ManagerDep, player_id: UUID) -> HarvestStats:
    record = manager.get_or_create(player_id)
    return HarvestStats.from_snapshot(record.snapshot())


@router.get("/{player_id}")
async def get_player_stats(player_id: UUID, manager: ManagerDep) -> HarvestStats:
    """Return a resident player's counters without loading from storage.

    Args:
        player_id: Player uuid
        manager: Harvest cache manager

    Returns:
        Snapshot of the player's counters
    """
    record = manager.get(player_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Player not loaded")
    return HarvestStats.from_snapshot(record.snapshot())


@router.get("/{player_id}/placeholders/{params}")
async def get_placeholder(player_id: UUID, params: str, manager: ManagerDep) -> PlaceholderValue:
    """Resolve a formatting placeholder such as ``crop_wheat`` for a player."""
    value = resolve_placeholder(manager, player_id, params)
    if value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown placeholder")
    return PlaceholderValue(params=params, value=value)


@router.post("/{player_id}/harvests", status_code=status.HTTP_202_ACCEPTED)
def record_harvest(player_id: UUID, payload: HarvestIncrement, manager: ManagerDep) -> HarvestStats:
    manager.record_harvest(player_id, payload.crop_id, payload.amount)
    return _stats(manager, player_id)


@router.post("/{player_id}/quality-items", status_code=status.HTTP_202_ACCEPTED)
def record_quality_item(
    player_id: UUID, payload: QualityItemIncrement, manager: ManagerDep
) -> HarvestStats:
    manager.record_quality_item(player_id, payload.item_id, payload.amount)
    return _stats(manager, player_id)


@router.post("/{player_id}/drops", status_code=status.HTTP_202_ACCEPTED)
def record_crop_drop(player_id: UUID, payload: CropDrop, manager: ManagerDep) -> dict[str, object]:
    """Record a raw crop drop event, normalising crop and item ids.

    Returns:
        Whether a harvest was counted and the player's updated counters
    """
    tracker = HarvestTracker(manager)
    counted = tracker.on_quality_crop_drop(
        player_id,
        payload.quality_crops,
        [DroppedItem(item.item_id, item.amount) for item in payload.items],
    )
    return {"counted": counted, "stats": _stats(manager, player_id)}


@router.post("/{player_id}/join")
async def player_join(player_id: UUID, manager: ManagerDep) -> HarvestStats:
    record = await manager.on_entity_join(player_id)
    return HarvestStats.from_snapshot(record.snapshot())


@router.post("/{player_id}/quit", status_code=status.HTTP_204_NO_CONTENT)
async def player_quit(player_id: UUID, manager: ManagerDep) -> None:
    await manager.on_entity_quit(player_id)
