"""Tests for environment driven settings and the storage factory."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from harvest_stats.core.settings import Settings
from harvest_stats.storage import NullStorage, SQLiteStorage, create_storage


def test_defaults() -> None:
    config = Settings()

    assert config.harvest_enabled is True
    assert config.storage_type == "sqlite"
    assert config.flush_delay_seconds == 3
    assert config.keep_after_quit_seconds == 5
    assert config.pool_maximum_size == 10
    assert config.pool_minimum_idle == 2


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HARVEST_STORAGE_TYPE", "MySQL")
    monkeypatch.setenv("HARVEST_DB_HOST", "db.example")
    monkeypatch.setenv("HARVEST_DB_PASSWORD", "secret")
    monkeypatch.setenv("HARVEST_FLUSH_DELAY_SECONDS", "10")

    config = Settings()

    assert config.storage_type == "mysql"
    assert config.flush_delay_seconds == 10
    url = config.network_url
    assert url.drivername == "mysql+pymysql"
    assert url.host == "db.example"
    assert url.port == 3306
    assert url.password == "secret"
    assert url.query["charset"] == "utf8mb4"


def test_unknown_storage_type_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(storage_type="mongodb")


def test_pool_minimum_cannot_exceed_maximum() -> None:
    with pytest.raises(ValidationError):
        Settings(pool_maximum_size=2, pool_minimum_idle=5)


def test_disabled_tracking_uses_null_storage() -> None:
    storage = create_storage(Settings(harvest_enabled=False, storage_type="mysql"))

    assert isinstance(storage, NullStorage)
    storage.initialize()
    assert storage.load(uuid4()) is None
    assert storage.available is False
    assert storage.kind() == "None"


def test_sqlite_selected_by_default(tmp_path) -> None:
    storage = create_storage(Settings(sqlite_path=str(tmp_path / "h.db")))
    assert isinstance(storage, SQLiteStorage)
