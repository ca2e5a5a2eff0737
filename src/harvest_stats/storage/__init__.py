"""Harvest storage backends and the configuration-driven factory."""

from __future__ import annotations

import logging

from harvest_stats.core.settings import STORAGE_SQLITE, Settings

from .base import HarvestStorage, NullStorage, StorageError
from .network import NetworkStorage
from .sql import SQLAlchemyStorage
from .sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


def create_storage(config: Settings) -> HarvestStorage:
    """Return the backend selected by ``config``; it is not yet initialized."""
    if not config.harvest_enabled:
        logger.warning("Harvest data tracking is disabled in configuration")
        return NullStorage()

    if config.storage_type == STORAGE_SQLITE:
        return SQLiteStorage(config.sqlite_path, echo=config.sql_debug)

    return NetworkStorage(
        config.network_url,
        table_prefix=config.table_prefix,
        maximum_pool_size=config.pool_maximum_size,
        minimum_idle=config.pool_minimum_idle,
        connection_timeout_ms=config.pool_connection_timeout_ms,
        idle_timeout_ms=config.pool_idle_timeout_ms,
        max_lifetime_ms=config.pool_max_lifetime_ms,
        echo=config.sql_debug,
    )


__all__ = [
    "HarvestStorage",
    "NetworkStorage",
    "NullStorage",
    "SQLAlchemyStorage",
    "SQLiteStorage",
    "StorageError",
    "create_storage",
]
