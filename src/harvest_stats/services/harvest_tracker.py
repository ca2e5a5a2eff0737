"""Turns crop drop events into harvest and quality item counts.

Category normalisation happens here, before the cache sees an id:
``customcrops:strawberry_gold`` and ``strawberry_silver`` both count as a
``strawberry`` harvest, while dropped items keep their quality variant.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from harvest_stats.services.harvest_manager import HarvestDataManager

logger = logging.getLogger(__name__)

_QUALITY_SUFFIX = re.compile(r"_(gold|silver|normal)$")


@dataclass(frozen=True)
class DroppedItem:
    """An item stack produced by a harvest."""

    item_id: str | None
    amount: int = 1


def strip_namespace(raw_id: str) -> str:
    """Remove a ``namespace:`` prefix, e.g. ``customcrops:tomato`` -> ``tomato``."""
    _, sep, rest = raw_id.partition(":")
    return rest if sep else raw_id


def normalize_crop_id(raw_id: str | None) -> str | None:
    """Map a quality crop id to its base crop id, or None if it is empty.

    Only a trailing quality suffix is stripped, so names such as
    ``orange_bell_pepper`` stay intact.
    """
    if not raw_id:
        return None
    crop_id = _QUALITY_SUFFIX.sub("", strip_namespace(raw_id))
    return crop_id or None


def normalize_item_id(raw_id: str | None) -> str | None:
    if not raw_id:
        return None
    return strip_namespace(raw_id) or None


class HarvestTracker:
    """Records harvest statistics for crop drop events."""

    def __init__(self, manager: HarvestDataManager) -> None:
        self.manager = manager

    def on_quality_crop_drop(
        self,
        player_id: UUID,
        quality_crops: Sequence[str | None],
        items: Sequence[DroppedItem],
    ) -> bool:
        """Count a harvest and the quality items it dropped.

        Args:
            player_id: Player who broke the crop
            quality_crops: Quality variant ids of the crop; the first is the base crop
            items: Item stacks that dropped

        Returns:
            True if a harvest was counted
        """
        crop_id = normalize_crop_id(quality_crops[0]) if quality_crops else None

        counted = False
        if crop_id and items:
            self.manager.record_harvest(player_id, crop_id, 1)
            counted = True
            logger.debug(
                "Player %s harvested crop %s (total: %d, crop: %d)",
                player_id,
                crop_id,
                self.manager.total_harvests(player_id),
                self.manager.harvest_count(player_id, crop_id),
            )
        else:
            logger.debug(
                "Harvest not counted for player %s: crop=%r, items=%d",
                player_id,
                crop_id,
                len(items),
            )

        for item in items:
            item_id = normalize_item_id(item.item_id)
            if item_id is None or item.amount <= 0:
                continue
            self.manager.record_quality_item(player_id, item_id, item.amount)
            logger.debug("Player %s obtained quality item %s x%d", player_id, item_id, item.amount)

        return counted
