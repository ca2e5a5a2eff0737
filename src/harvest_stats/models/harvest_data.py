"""Per-player harvest statistics held in memory by the cache manager."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from threading import Lock
from uuid import UUID


def current_millis() -> int:
    """Return the wall clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class HarvestSnapshot:
    """Independent copy of a record, safe to hand out or persist."""

    player_id: UUID
    harvests: dict[str, int] = field(default_factory=dict)
    quality_items: dict[str, int] = field(default_factory=dict)
    total_harvests: int = 0
    last_updated: int = 0


class HarvestRecord:
    """Harvest counts and quality item counts for a single player.

    ``total_harvests`` always equals the sum of ``harvests``; it is kept in
    step by ``add_harvest`` and rebuilt by ``recalculate_total`` after a bulk
    load. Quality items never contribute to the total. Every mutating method
    holds the record lock, so concurrent writers never tear the counts.
    """

    __slots__ = ("_player_id", "_harvests", "_quality_items", "_total", "_last_updated", "_lock")

    def __init__(self, player_id: UUID) -> None:
        self._player_id = player_id
        self._harvests: dict[str, int] = {}
        self._quality_items: dict[str, int] = {}
        self._total = 0
        self._last_updated = current_millis()
        self._lock = Lock()

    def __repr__(self) -> str:
        return (
            f"HarvestRecord(player_id={self._player_id}, "
            f"total_harvests={self._total}, crops={len(self._harvests)})"
        )

    @property
    def player_id(self) -> UUID:
        return self._player_id

    @property
    def total_harvests(self) -> int:
        return self._total

    @property
    def last_updated(self) -> int:
        """Timestamp of the last mutation in milliseconds since the epoch."""
        return self._last_updated

    @property
    def harvests(self) -> dict[str, int]:
        """Return a copy of the crop id to harvest count mapping."""
        with self._lock:
            return dict(self._harvests)

    @property
    def quality_items(self) -> dict[str, int]:
        """Return a copy of the item id to obtained count mapping."""
        with self._lock:
            return dict(self._quality_items)

    # --- Harvests -----------------------------------------------------------------
    def add_harvest(self, crop_id: str, amount: int = 1) -> None:
        """Add ``amount`` harvests of ``crop_id``; non-positive amounts are ignored."""
        if amount <= 0:
            return
        with self._lock:
            self._harvests[crop_id] = self._harvests.get(crop_id, 0) + amount
            self._total += amount
            self._last_updated = current_millis()

    def harvest_count(self, crop_id: str) -> int:
        return self._harvests.get(crop_id, 0)

    def has_harvested(self, crop_id: str) -> bool:
        return crop_id in self._harvests

    def set_harvest_count(self, crop_id: str, count: int) -> None:
        """Set a crop count directly (load path). Does not touch the total."""
        if count > 0:
            with self._lock:
                self._harvests[crop_id] = count

    def recalculate_total(self) -> None:
        """Rebuild the total from the individual crop counts."""
        with self._lock:
            self._total = sum(self._harvests.values())

    # --- Quality items ------------------------------------------------------------
    def add_quality_item(self, item_id: str, amount: int = 1) -> None:
        """Add ``amount`` obtained ``item_id``; non-positive amounts are ignored."""
        if amount <= 0:
            return
        with self._lock:
            self._quality_items[item_id] = self._quality_items.get(item_id, 0) + amount
            self._last_updated = current_millis()

    def quality_item_count(self, item_id: str) -> int:
        return self._quality_items.get(item_id, 0)

    def has_quality_item(self, item_id: str) -> bool:
        return item_id in self._quality_items

    def set_quality_item_count(self, item_id: str, count: int) -> None:
        """Set a quality item count directly (load path)."""
        if count > 0:
            with self._lock:
                self._quality_items[item_id] = count

    # --- Whole record -------------------------------------------------------------
    def set_last_updated(self, timestamp: int) -> None:
        with self._lock:
            self._last_updated = timestamp

    def load_counts(
        self, harvests: Mapping[str, int], quality_items: Mapping[str, int]
    ) -> None:
        """Populate both mappings from stored data and rebuild the total."""
        for crop_id, count in harvests.items():
            self.set_harvest_count(crop_id, count)
        for item_id, count in quality_items.items():
            self.set_quality_item_count(item_id, count)
        self.recalculate_total()

    def merge_counts(
        self, harvests: Mapping[str, int], quality_items: Mapping[str, int]
    ) -> None:
        """Add stored counts on top of counts recorded before they were loaded."""
        with self._lock:
            for crop_id, count in harvests.items():
                if count > 0:
                    self._harvests[crop_id] = self._harvests.get(crop_id, 0) + count
            for item_id, count in quality_items.items():
                if count > 0:
                    self._quality_items[item_id] = self._quality_items.get(item_id, 0) + count
            self._total = sum(self._harvests.values())

    def snapshot(self) -> HarvestSnapshot:
        """Return a consistent copy of the record taken under its lock."""
        with self._lock:
            return HarvestSnapshot(
                player_id=self._player_id,
                harvests=dict(self._harvests),
                quality_items=dict(self._quality_items),
                total_harvests=self._total,
                last_updated=self._last_updated,
            )

    def clear(self) -> None:
        """Reset every count in place so existing references stay valid."""
        with self._lock:
            self._harvests.clear()
            self._quality_items.clear()
            self._total = 0
            self._last_updated = current_millis()
