"""Pydantic schemas for the harvest statistics API."""

from .harvest import (
    CropDrop,
    DroppedItemIn,
    HarvestIncrement,
    HarvestStats,
    PlaceholderValue,
    QualityItemIncrement,
    StorageStatus,
)

__all__ = [
    "CropDrop",
    "DroppedItemIn",
    "HarvestIncrement",
    "HarvestStats",
    "PlaceholderValue",
    "QualityItemIncrement",
    "StorageStatus",
]
