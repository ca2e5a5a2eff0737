# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from threading import Lock
from uuid import UUID, uuid4

import pytest

from harvest_stats.core.settings import Settings
from harvest_stats.models import HarvestRecord
from harvest_stats.services.harvest_manager import HarvestDataManager
from harvest_stats.storage import HarvestStorage, SQLiteStorage, StorageError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStorage(HarvestStorage):
    """In-memory backend that keeps the snapshot of every save."""

    def __init__(self) -> None:
        self.rows: dict[UUID, HarvestRecord] = {}
        self.saves: list[UUID] = []
        self.fail_loads: set[UUID] = set()
        self.fail_saves: set[UUID] = set()
        self.initialized = 0
        self.closed = 0
        self._lock = Lock()

    def initialize(self) -> None:
        self.initialized += 1

    def load(self, player_id: UUID) -> HarvestRecord | None:
        if player_id in self.fail_loads:
            raise StorageError(f"cannot load {player_id}")
        stored = self.rows.get(player_id)
        if stored is None:
            return None
        record = HarvestRecord(player_id)
        record.load_counts(stored.harvests, stored.quality_items)
        return record

    def save(self, record: HarvestRecord) -> None:
        if record.player_id in self.fail_saves:
            raise StorageError(f"cannot save {record.player_id}")
        snapshot = record.snapshot()
        copy = HarvestRecord(snapshot.player_id)
        copy.load_counts(snapshot.harvests, snapshot.quality_items)
        with self._lock:
            self.rows[record.player_id] = copy
            self.saves.append(record.player_id)

    def close(self) -> None:
        self.closed += 1

    def kind(self) -> str:
        return "Recording"

    @property
    def available(self) -> bool:
        return True


@pytest.fixture()
def player_id() -> UUID:
    return uuid4()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing the embedded backend at a temporary directory."""
    return Settings(
        harvest_enabled=True,
        storage_type="sqlite",
        sqlite_path=str(tmp_path / "data" / "harvest-data.db"),
        flush_delay_seconds=3,
        keep_after_quit_seconds=0,
        flush_interval_seconds=60,
        save_workers=2,
        shutdown_timeout_seconds=2,
    )


@pytest.fixture()
def sqlite_storage(test_settings: Settings) -> Iterator[SQLiteStorage]:
    storage = SQLiteStorage(test_settings.sqlite_path)
    storage.initialize()
    try:
        yield storage
    finally:
        storage.close()


@pytest.fixture()
def recording_storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture()
def manager(
    test_settings: Settings, recording_storage: RecordingStorage, clock: FakeClock
) -> HarvestDataManager:
    """Manager over the recording backend, driven by the fake clock."""
    return HarvestDataManager(
        test_settings,
        storage_factory=lambda _config: recording_storage,
        clock=clock,
    )
