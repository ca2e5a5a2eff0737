"""SQLAlchemy implementation shared by the embedded and networked backends."""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock
from uuid import UUID

from sqlalchemy import MetaData
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from harvest_stats.models import HarvestRecord
from harvest_stats.storage.base import HarvestStorage, StorageError
from harvest_stats.storage.schema import (
    build_harvest_table,
    row_to_record,
    select_by_player,
    snapshot_to_values,
    upsert_statement,
)

logger = logging.getLogger(__name__)


class SQLAlchemyStorage(HarvestStorage):
    """Harvest storage on top of a SQLAlchemy engine.

    Subclasses decide how the engine is built and may serialise connection
    use; the table layout, row codec and upsert are shared.
    """

    def __init__(self, table_prefix: str = "", *, echo: bool = False) -> None:
        self._metadata = MetaData()
        self._table = build_harvest_table(self._metadata, table_prefix)
        self._echo = echo
        self._engine: Engine | None = None
        self._state_lock = Lock()

    @property
    def table_name(self) -> str:
        return self._table.name

    @property
    def available(self) -> bool:
        return self._engine is not None

    @abstractmethod
    def _create_engine(self) -> Engine:
        """Build the engine for this backend."""

    def _prepare(self) -> None:
        """Hook run before the engine is created."""

    @contextmanager
    def _connection(self, engine: Engine, *, write: bool) -> Iterator[Connection]:
        if write:
            with engine.begin() as conn:
                yield conn
        else:
            with engine.connect() as conn:
                yield conn

    def initialize(self) -> None:
        with self._state_lock:
            if self._engine is not None:
                return

            engine: Engine | None = None
            try:
                self._prepare()
                engine = self._create_engine()
                with self._connection(engine, write=True) as conn:
                    self._metadata.create_all(conn, checkfirst=True)
            except (SQLAlchemyError, OSError, ImportError):
                logger.error(
                    "Failed to initialize %s storage; harvest data will not be persisted "
                    "until the next successful start",
                    self.kind(),
                    exc_info=True,
                )
                if engine is not None:
                    engine.dispose()
                return

            self._engine = engine
            logger.info("%s storage initialized successfully (table %s)", self.kind(), self.table_name)

    def load(self, player_id: UUID) -> HarvestRecord | None:
        engine = self._engine
        if engine is None:
            logger.debug("%s storage unavailable; no stored data for %s", self.kind(), player_id)
            return None

        try:
            with self._connection(engine, write=False) as conn:
                row = conn.execute(select_by_player(self._table, player_id)).first()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load harvest data for player {player_id}") from e

        if row is None:
            return None
        return row_to_record(player_id, row)

    def save(self, record: HarvestRecord) -> None:
        engine = self._engine
        if engine is None:
            logger.debug(
                "%s storage unavailable; discarding save for %s", self.kind(), record.player_id
            )
            return

        try:
            with self._connection(engine, write=True) as conn:
                # Snapshot after checkout: never older than the pool wait.
                values = snapshot_to_values(record.snapshot())
                conn.execute(upsert_statement(self._table, engine.dialect.name, values))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save harvest data for player {record.player_id}") from e

    def close(self) -> None:
        with self._state_lock:
            engine, self._engine = self._engine, None
        if engine is not None:
            engine.dispose()
            logger.info("%s storage closed", self.kind())
