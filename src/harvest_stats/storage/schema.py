"""Table layout and row codec shared by every harvest storage backend.

One row per player: the uuid primary key, the two count mappings serialised
as JSON text, an advisory total and the last update time in epoch
milliseconds. The stored total is never trusted on load; it is rebuilt from
the crop counts.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import BigInteger, Column, Integer, MetaData, String, Table, Text, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.sql import Executable

from harvest_stats.models import HarvestRecord, HarvestSnapshot, current_millis

logger = logging.getLogger(__name__)

TABLE_SUFFIX = "harvest_data"
UPDATE_COLUMNS = ("harvests", "quality_items", "total_harvests", "last_updated")


def build_harvest_table(metadata: MetaData, prefix: str = "") -> Table:
    """Declare the harvest table on ``metadata`` using the given name prefix."""
    return Table(
        f"{prefix}{TABLE_SUFFIX}",
        metadata,
        Column("uuid", String(36), primary_key=True),
        Column("harvests", Text, nullable=True),
        Column("quality_items", Text, nullable=True),
        Column("total_harvests", Integer, nullable=True),
        Column("last_updated", BigInteger, nullable=True),
    )


def encode_counts(counts: Mapping[str, int]) -> str:
    return json.dumps(dict(counts), sort_keys=True)


def decode_counts(raw: str | None, *, player_id: UUID, column: str) -> dict[str, int]:
    """Parse a stored JSON mapping, treating a malformed blob as empty.

    Entries whose count is not a positive integer are dropped.
    """
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        logger.warning(
            "Malformed %s data for player %s; treating it as empty", column, player_id
        )
        return {}
    if not isinstance(parsed, dict):
        logger.warning(
            "Unexpected %s payload type %s for player %s; treating it as empty",
            column,
            type(parsed).__name__,
            player_id,
        )
        return {}

    counts: dict[str, int] = {}
    for key, value in parsed.items():
        if isinstance(value, bool) or not isinstance(value, int):
            logger.debug("Dropping non-integer %s entry %r for player %s", column, key, player_id)
            continue
        if value > 0:
            counts[str(key)] = value
    return counts


def snapshot_to_values(snapshot: HarvestSnapshot) -> dict[str, Any]:
    """Map a record snapshot onto the table's column values."""
    return {
        "uuid": str(snapshot.player_id),
        "harvests": encode_counts(snapshot.harvests),
        "quality_items": encode_counts(snapshot.quality_items),
        "total_harvests": snapshot.total_harvests,
        "last_updated": snapshot.last_updated,
    }


def row_to_record(player_id: UUID, row: Any) -> HarvestRecord:
    """Rebuild a record from a stored row, recomputing the total."""
    record = HarvestRecord(player_id)
    record.load_counts(
        decode_counts(row.harvests, player_id=player_id, column="harvests"),
        decode_counts(row.quality_items, player_id=player_id, column="quality_items"),
    )
    record.set_last_updated(int(row.last_updated) if row.last_updated else current_millis())
    return record


def select_by_player(table: Table, player_id: UUID) -> Executable:
    return select(table).where(table.c.uuid == str(player_id))


def upsert_statement(table: Table, dialect_name: str, values: Mapping[str, Any]) -> Executable:
    """Build an insert-or-overwrite statement for the given SQL dialect.

    Raises:
        ValueError: If the dialect has no supported upsert form
    """
    if dialect_name == "mysql":
        stmt = mysql_insert(table).values(**values)
        return stmt.on_duplicate_key_update(
            {name: stmt.inserted[name] for name in UPDATE_COLUMNS}
        )

    if dialect_name == "sqlite":
        insert = sqlite_insert
    elif dialect_name == "postgresql":
        insert = postgresql_insert
    else:
        raise ValueError(f"No upsert statement for dialect {dialect_name!r}")

    stmt = insert(table).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[table.c.uuid],
        set_={name: stmt.excluded[name] for name in UPDATE_COLUMNS},
    )
