"""Harvest statistics services."""

from .harvest_manager import HarvestDataManager
from .harvest_tracker import DroppedItem, HarvestTracker, normalize_crop_id, normalize_item_id
from .placeholders import resolve_placeholder

__all__ = [
    "DroppedItem",
    "HarvestDataManager",
    "HarvestTracker",
    "normalize_crop_id",
    "normalize_item_id",
    "resolve_placeholder",
]
