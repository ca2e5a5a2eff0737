"""Networked harvest storage (MySQL or PostgreSQL) over a bounded pool."""

from __future__ import annotations

from sqlalchemy.engine import URL, Engine

from harvest_stats.db import create_pooled_engine
from harvest_stats.storage.sql import SQLAlchemyStorage

_KIND_BY_BACKEND = {"mysql": "MySQL", "postgresql": "PostgreSQL"}


class NetworkStorage(SQLAlchemyStorage):
    """Harvest storage on a database server.

    Every load and save checks a connection out of the pool and returns it
    when the statement completes; no connection is held between calls.
    """

    def __init__(
        self,
        url: URL,
        *,
        table_prefix: str = "cc_",
        maximum_pool_size: int = 10,
        minimum_idle: int = 2,
        connection_timeout_ms: int = 30_000,
        idle_timeout_ms: int = 600_000,
        max_lifetime_ms: int = 1_800_000,
        echo: bool = False,
    ) -> None:
        super().__init__(table_prefix=table_prefix, echo=echo)
        self.url = url
        self.maximum_pool_size = maximum_pool_size
        self.minimum_idle = minimum_idle
        self.connection_timeout_ms = connection_timeout_ms
        self.idle_timeout_ms = idle_timeout_ms
        self.max_lifetime_ms = max_lifetime_ms

    def kind(self) -> str:
        backend = self.url.get_backend_name()
        return _KIND_BY_BACKEND.get(backend, backend)

    def _create_engine(self) -> Engine:
        return create_pooled_engine(
            self.url,
            maximum_size=self.maximum_pool_size,
            minimum_idle=self.minimum_idle,
            connection_timeout_ms=self.connection_timeout_ms,
            idle_timeout_ms=self.idle_timeout_ms,
            max_lifetime_ms=self.max_lifetime_ms,
            echo=self._echo,
        )
