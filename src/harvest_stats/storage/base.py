"""Storage backend contract for harvest data.

Every backend loads and saves one player record at a time. ``initialize``
never raises: if the database cannot be reached the failure is logged and
the backend stays in degraded mode, where ``load`` reports "not found" and
``save`` discards the record. ``available`` tells the two modes apart.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from uuid import UUID

from harvest_stats.models import HarvestRecord

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a single load or save fails at the database layer."""


class HarvestStorage(ABC):
    """Durable load/save of harvest records keyed by player uuid."""

    @abstractmethod
    def initialize(self) -> None:
        """Connect and make sure the harvest table exists. Idempotent."""

    @abstractmethod
    def load(self, player_id: UUID) -> HarvestRecord | None:
        """Load a player's record, or None when no row exists.

        Raises:
            StorageError: If the row could not be read
        """

    @abstractmethod
    def save(self, record: HarvestRecord) -> None:
        """Insert or overwrite the row for ``record``.

        Raises:
            StorageError: If the row could not be written
        """

    @abstractmethod
    def close(self) -> None:
        """Release connections. Safe to call more than once."""

    @abstractmethod
    def kind(self) -> str:
        """Return a stable name of the backend, for diagnostics."""

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether the backend is connected and persisting data."""


class NullStorage(HarvestStorage):
    """Backend used when harvest tracking is disabled; persists nothing."""

    def initialize(self) -> None:
        logger.info("Harvest data persistence is disabled; counters live in memory only")

    def load(self, player_id: UUID) -> HarvestRecord | None:
        return None

    def save(self, record: HarvestRecord) -> None:
        return None

    def close(self) -> None:
        return None

    def kind(self) -> str:
        return "None"

    @property
    def available(self) -> bool:
        return False
