"""Embedded SQLite harvest storage backed by a single local file."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from threading import Lock

from sqlalchemy.engine import Connection, Engine

from harvest_stats.db import create_sqlite_engine
from harvest_stats.storage.sql import SQLAlchemyStorage


class SQLiteStorage(SQLAlchemyStorage):
    """Harvest storage in a SQLite file through one exclusive connection."""

    def __init__(self, database_file: str | Path, *, echo: bool = False) -> None:
        super().__init__(table_prefix="", echo=echo)
        self.database_file = Path(database_file)
        self._connection_lock = Lock()

    def kind(self) -> str:
        return "SQLite"

    def _prepare(self) -> None:
        self.database_file.parent.mkdir(parents=True, exist_ok=True)

    def _create_engine(self) -> Engine:
        return create_sqlite_engine(self.database_file, echo=self._echo)

    @contextmanager
    def _connection(self, engine: Engine, *, write: bool) -> Iterator[Connection]:
        # The StaticPool hands every thread the same DBAPI connection.
        with self._connection_lock, super()._connection(engine, write=write) as conn:
            yield conn
