"""Synonym graph between words.

Synonymy is mutual, but each unordered pair is stored as a single row in
whichever direction it was first linked. Reads go through
:func:`neighbors_of`, which normalises every row to "the other word", so
callers never observe the stored direction.
"""

from __future__ import annotations

import logging
import sqlite3

from wolofdict import db as _db
from wolofdict import ledger as _ledger
from wolofdict.exceptions import (
    DuplicateEdgeError,
    EntityNotEligibleError,
    EntityNotFoundError,
    SelfLoopError,
    ValidationError,
)
from wolofdict.models import SynonymLanguage, SynonymModel, ValidationStatus

logger = logging.getLogger(__name__)

STRENGTH_RANGE = range(1, 11)
_LANGUAGES = frozenset(lang.value for lang in SynonymLanguage)


def link(
    conn: sqlite3.Connection,
    word_id: int,
    synonym_id: int,
    actor_id: str,
    *,
    strength: int = 1,
    language: str = SynonymLanguage.WOLOF.value,
    notes: str | None = None,
) -> SynonymModel:
    """Create the edge ``word_id`` -- ``synonym_id``.

    The contribution is attached to the ledger of ``word_id``, the word
    that initiated the link.
    """
    if word_id == synonym_id:
        raise SelfLoopError(f"A word cannot be its own synonym: {word_id}")
    if (
        isinstance(strength, bool)
        or not isinstance(strength, int)
        or strength not in STRENGTH_RANGE
    ):
        raise ValidationError(
            f"Synonym strength must be an integer between 1 and 10, got {strength!r}"
        )
    if language not in _LANGUAGES:
        raise ValidationError(
            f"Invalid synonym language: {language!r} "
            f"(expected one of {', '.join(sorted(_LANGUAGES))})"
        )

    ensure_eligible(conn, word_id)
    ensure_eligible(conn, synonym_id)

    existing = _find_edge(conn, word_id, synonym_id)
    if existing is not None:
        raise DuplicateEdgeError(
            f"Words {word_id} and {synonym_id} are already synonyms "
            f"(edge {existing['id']})"
        )

    try:
        cur = conn.execute(
            "INSERT INTO synonyms "
            "(word_id, synonym_id, strength, language, notes, created_by, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (word_id, synonym_id, strength, language, notes, actor_id,
             _db.utcnow()),
        )
    except sqlite3.IntegrityError as e:
        raise DuplicateEdgeError(
            f"Words {word_id} and {synonym_id} are already synonyms"
        ) from e

    row = conn.execute(
        "SELECT * FROM synonyms WHERE id = ?", (cur.lastrowid,)
    ).fetchone()
    _ledger.record(
        conn, "create", "word", word_id,
        None, {"synonym": edge_snapshot(row)}, actor_id,
    )
    return _row_to_neighbor(conn, row, word_id)


def unlink(
    conn: sqlite3.Connection,
    word_id: int,
    synonym_id: int,
    actor_id: str,
) -> None:
    """Remove the edge between two words, whichever direction it is stored in."""
    row = _find_edge(conn, word_id, synonym_id)
    if row is None:
        raise EntityNotFoundError(
            f"No synonym edge between words {word_id} and {synonym_id}"
        )
    conn.execute("DELETE FROM synonyms WHERE id = ?", (row["id"],))
    _ledger.record(
        conn, "delete", "word", word_id,
        {"synonym": edge_snapshot(row)}, None, actor_id,
    )


def neighbors_of(conn: sqlite3.Connection, word_id: int) -> list[SynonymModel]:
    """All synonyms of ``word_id``, regardless of stored direction."""
    rows = conn.execute(
        "SELECT * FROM synonyms WHERE word_id = ? OR synonym_id = ? "
        "ORDER BY strength DESC, id",
        (word_id, word_id),
    ).fetchall()
    return [_row_to_neighbor(conn, row, word_id) for row in rows]


def drop_edges(conn: sqlite3.Connection, word_id: int) -> list[dict]:
    """Delete every edge touching ``word_id``; return their snapshots.

    Used when a word stops being an eligible endpoint (deleted or
    rejected). The caller folds the snapshots into its own contribution.
    """
    rows = conn.execute(
        "SELECT * FROM synonyms WHERE word_id = ? OR synonym_id = ? ORDER BY id",
        (word_id, word_id),
    ).fetchall()
    conn.execute(
        "DELETE FROM synonyms WHERE word_id = ? OR synonym_id = ?",
        (word_id, word_id),
    )
    if rows:
        logger.info("Dropped %d synonym edge(s) of word %s", len(rows), word_id)
    return [{"synonym": edge_snapshot(row)} for row in rows]


def ensure_eligible(conn: sqlite3.Connection, word_id: int) -> sqlite3.Row:
    """A synonym endpoint must exist, be live, and not be rejected."""
    row = _db.get_entity_row(conn, "word", word_id)
    if row is None:
        raise EntityNotFoundError(f"Word not found: {word_id!r}")
    if row["deleted_at"] is not None:
        raise EntityNotEligibleError(f"Word {word_id} is deleted")
    if row["validation_status"] == ValidationStatus.REJECTED.value:
        raise EntityNotEligibleError(f"Word {word_id} is rejected")
    return row


def edge_snapshot(row: sqlite3.Row) -> dict:
    """Stored form of an edge, as written to the ledger."""
    return {
        "id": row["id"],
        "word_id": row["word_id"],
        "synonym_id": row["synonym_id"],
        "strength": row["strength"],
        "language": row["language"],
        "notes": row["notes"],
        "created_by": row["created_by"],
        "created_at": row["created_at"],
    }


def _find_edge(
    conn: sqlite3.Connection, a: int, b: int
) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT * FROM synonyms "
        "WHERE (word_id = ? AND synonym_id = ?) "
        "OR (word_id = ? AND synonym_id = ?)",
        (a, b, b, a),
    ).fetchone()


def _row_to_neighbor(
    conn: sqlite3.Connection, row: sqlite3.Row, from_word_id: int
) -> SynonymModel:
    other = row["synonym_id"] if row["word_id"] == from_word_id else row["word_id"]
    term_row = conn.execute(
        "SELECT term FROM words WHERE id = ?", (other,)
    ).fetchone()
    return SynonymModel(
        id=row["id"],
        word_id=from_word_id,
        synonym_id=other,
        synonym_term=term_row["term"] if term_row else "",
        strength=row["strength"],
        language=row["language"],
        notes=row["notes"],
        created_by=row["created_by"],
        created_at=row["created_at"],
    )
