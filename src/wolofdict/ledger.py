"""Contribution ledger recording and querying for wolofdict.

The ledger is write-once: rows are only ever inserted (the table carries
triggers aborting UPDATE and DELETE). Every mutating service call appends
exactly one entry as its last step, inside the same transaction as the
mutation itself.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import sqlite3
from typing import Any

from wolofdict.exceptions import EntityNotFoundError, LedgerError, ValidationError
from wolofdict.models import ContributionAction, ContributionRecord, EntityType

logger = logging.getLogger(__name__)

_ACTIONS = frozenset(a.value for a in ContributionAction)
_ENTITY_TYPES = frozenset(t.value for t in EntityType)


def snapshot(model: Any) -> dict[str, Any]:
    """Serializable snapshot of a model dataclass."""
    return dataclasses.asdict(model)


def record(
    conn: sqlite3.Connection,
    action: str,
    entity_type: str,
    entity_id: int,
    previous_value: dict | None,
    new_value: dict | None,
    user_id: str | None,
    *,
    comment: str | None = None,
    side_effects: list[dict] | None = None,
    timestamp: str | None = None,
) -> int:
    """Append one immutable entry and return its id."""
    if action not in _ACTIONS:
        raise ValidationError(f"Invalid contribution action: {action!r}")
    if entity_type not in _ENTITY_TYPES:
        raise ValidationError(f"Invalid entity type: {entity_type!r}")

    columns = [
        "action", "entity_type", "entity_id", "previous_value",
        "new_value", "comment", "side_effects", "user_id",
    ]
    values: list[Any] = [
        action,
        entity_type,
        entity_id,
        json.dumps(previous_value) if previous_value is not None else None,
        json.dumps(new_value) if new_value is not None else None,
        comment,
        json.dumps(side_effects) if side_effects else None,
        user_id,
    ]
    if timestamp is not None:
        columns.append("timestamp")
        values.append(timestamp)

    placeholders = ", ".join("?" for _ in columns)
    try:
        cur = conn.execute(
            f"INSERT INTO contributions ({', '.join(columns)}) "
            f"VALUES ({placeholders})",
            values,
        )
    except sqlite3.Error as e:
        raise LedgerError(
            f"Could not record {action} on {entity_type} {entity_id}: {e}"
        ) from e

    logger.debug(
        "ledger #%s: %s %s %s by %s",
        cur.lastrowid, action, entity_type, entity_id, user_id,
    )
    return cur.lastrowid


def query_history(
    conn: sqlite3.Connection,
    entity_type: str,
    entity_id: int,
) -> list[ContributionRecord]:
    """All entries for one entity, oldest first."""
    return query(conn, entity_type=entity_type, entity_id=entity_id)


def query(
    conn: sqlite3.Connection,
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    action: str | None = None,
    user_id: str | None = None,
    since: str | None = None,
) -> list[ContributionRecord]:
    """Query the ledger with optional filters."""
    clauses: list[str] = []
    params: list[Any] = []

    if entity_type is not None:
        clauses.append("entity_type = ?")
        params.append(entity_type)
    if entity_id is not None:
        clauses.append("entity_id = ?")
        params.append(entity_id)
    if action is not None:
        clauses.append("action = ?")
        params.append(action)
    if user_id is not None:
        clauses.append("user_id = ?")
        params.append(user_id)
    if since is not None:
        clauses.append("timestamp > ?")
        params.append(since)

    where = " AND ".join(clauses) if clauses else "1=1"
    sql = (
        f"SELECT * FROM contributions WHERE {where} "
        "ORDER BY timestamp ASC, id ASC"
    )
    rows = conn.execute(sql, params).fetchall()
    return [_row_to_record(row) for row in rows]


def get(conn: sqlite3.Connection, contribution_id: int) -> ContributionRecord:
    """Fetch a single entry by id."""
    row = conn.execute(
        "SELECT * FROM contributions WHERE id = ?", (contribution_id,)
    ).fetchone()
    if row is None:
        raise EntityNotFoundError(f"Contribution not found: {contribution_id!r}")
    return _row_to_record(row)


def _row_to_record(row: sqlite3.Row) -> ContributionRecord:
    return ContributionRecord(
        id=row["id"],
        action=row["action"],
        entity_type=row["entity_type"],
        entity_id=row["entity_id"],
        previous_value=_loads(row["previous_value"]),
        new_value=_loads(row["new_value"]),
        comment=row["comment"],
        side_effects=_loads(row["side_effects"]),
        user_id=row["user_id"],
        timestamp=row["timestamp"],
    )


def _loads(data: str | None) -> Any:
    return json.loads(data) if data else None
