"""Request and response models for harvest statistics."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from harvest_stats.models import HarvestSnapshot


class HarvestIncrement(BaseModel):
    """A counted harvest of an already normalised crop id."""

    crop_id: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(default=1, ge=1)


class QualityItemIncrement(BaseModel):
    """Quality items obtained by a player."""

    item_id: str = Field(..., min_length=1, max_length=128)
    amount: int = Field(default=1, ge=1)


class DroppedItemIn(BaseModel):
    item_id: str | None = Field(default=None, max_length=128)
    amount: int = Field(default=1, ge=0)


class CropDrop(BaseModel):
    """Raw crop drop event; ids are normalised server side."""

    quality_crops: list[str] = Field(default_factory=list)
    items: list[DroppedItemIn] = Field(default_factory=list)


class HarvestStats(BaseModel):
    """Current counters of a resident player."""

    player_id: UUID
    harvests: dict[str, int]
    quality_items: dict[str, int]
    total_harvests: int
    last_updated: int = Field(..., description="Milliseconds since the epoch.")

    @classmethod
    def from_snapshot(cls, snapshot: HarvestSnapshot) -> HarvestStats:
        return cls(
            player_id=snapshot.player_id,
            harvests=snapshot.harvests,
            quality_items=snapshot.quality_items,
            total_harvests=snapshot.total_harvests,
            last_updated=snapshot.last_updated,
        )


class PlaceholderValue(BaseModel):
    params: str
    value: str


class StorageStatus(BaseModel):
    """Diagnostics of the cache and its storage backend."""

    kind: str
    available: bool
    running: bool
    resident: int
    dirty: int
