"""SQLAlchemy engine factories for the embedded and networked backends."""

from __future__ import annotations

import math
import time
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, exc
from sqlalchemy.engine import URL, Engine
from sqlalchemy.pool import QueuePool, StaticPool

_CHECKED_IN_AT = "harvest_checked_in_at"


def create_sqlite_engine(path: str | Path, *, echo: bool = False) -> Engine:
    """Create an engine holding one exclusive connection to a SQLite file.

    The single connection is shared between worker threads, so callers must
    serialise access to it.
    """
    return create_engine(
        f"sqlite:///{Path(path).resolve()}",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=echo,
    )


def _pool_arguments(
    maximum_size: int,
    minimum_idle: int,
    connection_timeout_ms: int,
    max_lifetime_ms: int,
) -> dict[str, Any]:
    # QueuePool treats pool_size=0 as unbounded, so keep at least one resident.
    pool_size = max(1, min(minimum_idle, maximum_size))
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max(0, maximum_size - pool_size),
        "pool_timeout": connection_timeout_ms / 1000,
        "pool_recycle": max_lifetime_ms / 1000 if max_lifetime_ms > 0 else -1,
        "pool_pre_ping": True,
    }


def create_pooled_engine(
    url: URL,
    *,
    maximum_size: int,
    minimum_idle: int,
    connection_timeout_ms: int,
    idle_timeout_ms: int,
    max_lifetime_ms: int,
    echo: bool = False,
) -> Engine:
    """Create a bounded connection pool for a networked database.

    Args:
        url: SQLAlchemy URL including the DBAPI driver
        maximum_size: Upper bound of open connections
        minimum_idle: Connections kept open between uses
        connection_timeout_ms: Wait for a free connection and for the driver connect
        idle_timeout_ms: Connections idle longer than this are replaced on checkout
        max_lifetime_ms: Connections older than this are recycled
        echo: Log every statement

    Returns:
        Engine whose pool enforces the given sizing and timeouts
    """
    connect_timeout = max(1, math.ceil(connection_timeout_ms / 1000))
    engine = create_engine(
        url,
        connect_args={"connect_timeout": connect_timeout},
        echo=echo,
        **_pool_arguments(maximum_size, minimum_idle, connection_timeout_ms, max_lifetime_ms),
    )
    if idle_timeout_ms > 0:
        _install_idle_timeout(engine, idle_timeout_ms / 1000)
    return engine


def _install_idle_timeout(engine: Engine, idle_timeout: float) -> None:
    @event.listens_for(engine, "checkin")
    def _stamp_checkin(dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info[_CHECKED_IN_AT] = time.monotonic()

    @event.listens_for(engine, "checkout")
    def _expire_idle(dbapi_connection: Any, connection_record: Any, connection_proxy: Any) -> None:
        checked_in_at = connection_record.info.pop(_CHECKED_IN_AT, None)
        if checked_in_at is not None and time.monotonic() - checked_in_at > idle_timeout:
            # The pool discards this connection and retries with a fresh one.
            raise exc.DisconnectionError("connection exceeded idle timeout")
