"""Read-only placeholder values for chat and scoreboard formatting.

Supported parameters:

- ``total_harvests``: total harvest count
- ``unique_crops`` / ``unique_qualities``: distinct crops / quality items
- ``crop_<crop_id>``: harvest count of one crop
- ``quality_<item_id>``: obtained count of one quality item
- ``has_harvested_<crop_id>`` / ``has_quality_<item_id>``: ``true`` or ``false``

Only resident players are consulted; a player never loaded reads as zero.
"""

from __future__ import annotations

from uuid import UUID

from harvest_stats.services.harvest_manager import HarvestDataManager


def _flag(value: bool) -> str:
    return "true" if value else "false"


def resolve_placeholder(manager: HarvestDataManager, player_id: UUID, params: str) -> str | None:
    """Return the placeholder value for ``params``, or None if unknown."""
    if params == "total_harvests":
        return str(manager.total_harvests(player_id))
    if params == "unique_crops":
        return str(manager.unique_crops(player_id))
    if params == "unique_qualities":
        return str(manager.unique_quality_items(player_id))

    # has_* prefixes first: "has_quality_x" must not fall through to "quality_".
    if params.startswith("has_harvested_"):
        return _flag(manager.has_harvested(player_id, params.removeprefix("has_harvested_")))
    if params.startswith("has_quality_"):
        return _flag(manager.has_quality_item(player_id, params.removeprefix("has_quality_")))
    if params.startswith("crop_"):
        return str(manager.harvest_count(player_id, params.removeprefix("crop_")))
    if params.startswith("quality_"):
        return str(manager.quality_item_count(player_id, params.removeprefix("quality_")))
    return None
