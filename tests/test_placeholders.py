"""Tests for placeholder resolution."""

from __future__ import annotations

from uuid import UUID, uuid4

import pytest

from harvest_stats.services.harvest_manager import HarvestDataManager
from harvest_stats.services.placeholders import resolve_placeholder


@pytest.fixture()
def populated(manager: HarvestDataManager, player_id: UUID) -> HarvestDataManager:
    manager.record_harvest(player_id, "wheat", 3)
    manager.record_harvest(player_id, "carrot", 2)
    manager.record_quality_item(player_id, "wheat_gold", 4)
    return manager


@pytest.mark.parametrize(
    ("params", "expected"),
    [
        ("total_harvests", "5"),
        ("unique_crops", "2"),
        ("unique_qualities", "1"),
        ("crop_wheat", "3"),
        ("crop_melon", "0"),
        ("quality_wheat_gold", "4"),
        ("has_harvested_carrot", "true"),
        ("has_harvested_melon", "false"),
        ("has_quality_wheat_gold", "true"),
        ("has_quality_wheat_silver", "false"),
    ],
)
def test_resolves_known_params(
    populated: HarvestDataManager, player_id: UUID, params: str, expected: str
) -> None:
    assert resolve_placeholder(populated, player_id, params) == expected


def test_unknown_params(populated: HarvestDataManager, player_id: UUID) -> None:
    assert resolve_placeholder(populated, player_id, "level") is None
    assert resolve_placeholder(populated, player_id, "") is None


def test_player_never_loaded_reads_zero(manager: HarvestDataManager) -> None:
    stranger = uuid4()

    assert resolve_placeholder(manager, stranger, "total_harvests") == "0"
    assert resolve_placeholder(manager, stranger, "has_harvested_wheat") == "false"
    assert manager.get(stranger) is None
