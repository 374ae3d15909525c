"""Word-to-category assignments with a single main category per word.

Any word with at least one assignment has exactly one whose
``is_main_category`` flag is set. The operations here keep that true by
construction: they flip, force or promote flags rather than refusing a
request. Each change also bumps the owning word's revision, guarded on the
revision read before the assignments, so two writers racing on the same
word cannot both commit.
"""

from __future__ import annotations

import logging
import sqlite3

from wolofdict import db as _db
from wolofdict import ledger as _ledger
from wolofdict.exceptions import (
    ConcurrentModificationError,
    DuplicateEdgeError,
    EntityNotEligibleError,
    EntityNotFoundError,
)
from wolofdict.models import WordCategoryModel

logger = logging.getLogger(__name__)


def assign(
    conn: sqlite3.Connection,
    word_id: int,
    category_id: int,
    actor_id: str,
    *,
    is_main: bool = False,
) -> WordCategoryModel:
    """Assign ``category_id`` to ``word_id``.

    The first assignment of a word is always the main one. Asking for a
    new main category demotes the previous one in the same transaction.
    """
    word = _ensure_word(conn, word_id)
    _ensure_category(conn, category_id)

    if _get_row(conn, word_id, category_id) is not None:
        raise DuplicateEdgeError(
            f"Word {word_id} is already in category {category_id}"
        )

    before = assignments_snapshot(conn, word_id)
    _claim_word(conn, word)
    if not before:
        is_main = True
    elif is_main:
        conn.execute(
            "UPDATE word_categories SET is_main_category = 0 "
            "WHERE word_id = ? AND is_main_category = 1",
            (word_id,),
        )

    try:
        conn.execute(
            "INSERT INTO word_categories "
            "(word_id, category_id, is_main_category, created_by, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (word_id, category_id, int(is_main), actor_id, _db.utcnow()),
        )
    except sqlite3.IntegrityError as e:
        raise DuplicateEdgeError(
            f"Word {word_id} is already in category {category_id}"
        ) from e

    _ledger.record(
        conn, "create", "word", word_id,
        {"categories": before},
        {"categories": assignments_snapshot(conn, word_id)},
        actor_id,
    )
    return _build_model(conn, word_id, category_id)


def unassign(
    conn: sqlite3.Connection,
    word_id: int,
    category_id: int,
    actor_id: str,
) -> None:
    """Remove an assignment, promoting the oldest remaining one if needed."""
    word = _ensure_word(conn, word_id)
    row = _get_row(conn, word_id, category_id)
    if row is None:
        raise EntityNotFoundError(
            f"Word {word_id} is not in category {category_id}"
        )

    before = assignments_snapshot(conn, word_id)
    _claim_word(conn, word)
    conn.execute("DELETE FROM word_categories WHERE id = ?", (row["id"],))

    if row["is_main_category"]:
        successor = conn.execute(
            "SELECT id, category_id FROM word_categories WHERE word_id = ? "
            "ORDER BY created_at ASC, id ASC LIMIT 1",
            (word_id,),
        ).fetchone()
        if successor is not None:
            conn.execute(
                "UPDATE word_categories SET is_main_category = 1 WHERE id = ?",
                (successor["id"],),
            )
            logger.debug(
                "Word %s: category %s promoted to main",
                word_id, successor["category_id"],
            )

    _ledger.record(
        conn, "delete", "word", word_id,
        {"categories": before},
        {"categories": assignments_snapshot(conn, word_id)},
        actor_id,
    )


def set_main(
    conn: sqlite3.Connection,
    word_id: int,
    category_id: int,
    actor_id: str,
) -> WordCategoryModel:
    """Move the main flag to an existing assignment."""
    word = _ensure_word(conn, word_id)
    row = _get_row(conn, word_id, category_id)
    if row is None:
        raise EntityNotFoundError(
            f"Word {word_id} is not in category {category_id}"
        )

    before = assignments_snapshot(conn, word_id)
    _claim_word(conn, word)
    conn.execute(
        "UPDATE word_categories SET is_main_category = (category_id = ?) "
        "WHERE word_id = ?",
        (category_id, word_id),
    )
    _ledger.record(
        conn, "update", "word", word_id,
        {"categories": before},
        {"categories": assignments_snapshot(conn, word_id)},
        actor_id,
    )
    return _build_model(conn, word_id, category_id)


def categories_of(
    conn: sqlite3.Connection, word_id: int
) -> list[WordCategoryModel]:
    """Assignments of a word, main category first."""
    rows = conn.execute(
        "SELECT wc.*, c.name AS category_name FROM word_categories wc "
        "JOIN categories c ON wc.category_id = c.id "
        "WHERE wc.word_id = ? "
        "ORDER BY wc.is_main_category DESC, wc.created_at, wc.id",
        (word_id,),
    ).fetchall()
    return [_row_to_model(r) for r in rows]


def assignments_snapshot(conn: sqlite3.Connection, word_id: int) -> list[dict]:
    """Ledger form of a word's assignments, in creation order."""
    rows = conn.execute(
        "SELECT category_id, is_main_category, created_by, created_at "
        "FROM word_categories WHERE word_id = ? ORDER BY created_at, id",
        (word_id,),
    ).fetchall()
    return [
        {
            "category_id": r["category_id"],
            "is_main_category": bool(r["is_main_category"]),
            "created_by": r["created_by"],
            "created_at": r["created_at"],
        }
        for r in rows
    ]


def _ensure_word(conn: sqlite3.Connection, word_id: int) -> sqlite3.Row:
    row = _db.get_entity_row(conn, "word", word_id)
    if row is None:
        raise EntityNotFoundError(f"Word not found: {word_id!r}")
    if row["deleted_at"] is not None:
        raise EntityNotEligibleError(f"Word {word_id} is deleted")
    return row


def _claim_word(conn: sqlite3.Connection, word: sqlite3.Row) -> None:
    cur = conn.execute(
        "UPDATE words SET revision = revision + 1 WHERE id = ? AND revision = ?",
        (word["id"], word["revision"]),
    )
    if cur.rowcount != 1:
        raise ConcurrentModificationError(
            f"Categories of word {word['id']} were modified concurrently; "
            "reload and retry"
        )


def _ensure_category(conn: sqlite3.Connection, category_id: int) -> None:
    if _db.get_category_row(conn, category_id) is None:
        raise EntityNotFoundError(f"Category not found: {category_id!r}")


def _get_row(
    conn: sqlite3.Connection, word_id: int, category_id: int
) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT * FROM word_categories WHERE word_id = ? AND category_id = ?",
        (word_id, category_id),
    ).fetchone()


def _build_model(
    conn: sqlite3.Connection, word_id: int, category_id: int
) -> WordCategoryModel:
    row = conn.execute(
        "SELECT wc.*, c.name AS category_name FROM word_categories wc "
        "JOIN categories c ON wc.category_id = c.id "
        "WHERE wc.word_id = ? AND wc.category_id = ?",
        (word_id, category_id),
    ).fetchone()
    return _row_to_model(row)


def _row_to_model(row: sqlite3.Row) -> WordCategoryModel:
    return WordCategoryModel(
        id=row["id"],
        word_id=row["word_id"],
        category_id=row["category_id"],
        category_name=row["category_name"],
        is_main_category=bool(row["is_main_category"]),
        created_by=row["created_by"],
        created_at=row["created_at"],
    )
