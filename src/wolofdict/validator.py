"""Read-only invariant audit for a wolofdict database.

The service keeps these invariants on every write. The audit exists for
databases touched by other tools (manual SQL, restores, older releases).
"""

from __future__ import annotations

import sqlite3
from collections import defaultdict

from wolofdict.alphabet import bucket_of
from wolofdict.db import CHILD_ENTITY_TYPES, ENTITY_TABLES
from wolofdict.models import ValidationResult


def validate_all(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Run all audit rules."""
    results: list[ValidationResult] = []
    results.extend(_val_wrd_001(conn))
    results.extend(_val_wrd_002(conn))
    results.extend(_val_cat_001(conn))
    results.extend(_val_syn_001(conn))
    results.extend(_val_syn_002(conn))
    results.extend(_val_mod_001(conn))
    results.extend(_val_mod_002(conn))
    results.extend(_val_led_001(conn))
    return results


def validate_word(
    conn: sqlite3.Connection, word_id: int
) -> list[ValidationResult]:
    """Audit results concerning a single word."""
    return [
        r for r in validate_all(conn)
        if r.entity_type == "word" and r.entity_id == word_id
    ]


def _val_wrd_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Stored initial letter disagrees with the term."""
    results = []
    for row in conn.execute(
        "SELECT id, term, initial_letter FROM words ORDER BY id"
    ).fetchall():
        expected = bucket_of(row["term"]) if row["term"] else None
        if row["initial_letter"] != expected:
            results.append(ValidationResult(
                rule_id="VAL-WRD-001",
                severity="ERROR",
                entity_type="word",
                entity_id=row["id"],
                message=(
                    f"Initial letter {row['initial_letter']!r} does not match "
                    f"term {row['term']!r} (expected {expected!r})"
                ),
                details={"expected": expected, "actual": row["initial_letter"]},
            ))
    return results


def _val_wrd_002(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Live words whose terms differ only by letter case."""
    groups: dict[str, list[sqlite3.Row]] = defaultdict(list)
    for row in conn.execute(
        "SELECT id, term FROM words WHERE deleted_at IS NULL ORDER BY id"
    ).fetchall():
        groups[row["term"].casefold()].append(row)

    results = []
    for rows in groups.values():
        if len(rows) < 2:
            continue
        terms = [r["term"] for r in rows]
        for row in rows:
            results.append(ValidationResult(
                rule_id="VAL-WRD-002",
                severity="WARNING",
                entity_type="word",
                entity_id=row["id"],
                message=f"Term {row['term']!r} differs from others only by case",
                details={"terms": terms},
            ))
    return results


def _val_cat_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Word with category assignments but not exactly one main category."""
    results = []
    for row in conn.execute(
        "SELECT word_id, SUM(is_main_category) AS mains, COUNT(*) AS total "
        "FROM word_categories GROUP BY word_id "
        "HAVING SUM(is_main_category) <> 1 ORDER BY word_id"
    ).fetchall():
        results.append(ValidationResult(
            rule_id="VAL-CAT-001",
            severity="ERROR",
            entity_type="word",
            entity_id=row["word_id"],
            message=(
                f"Word has {row['mains']} main categories among "
                f"{row['total']} assignments"
            ),
            details={"main_count": row["mains"], "assignments": row["total"]},
        ))
    return results


def _val_syn_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Synonym edge touching a deleted or rejected word."""
    results = []
    sql = (
        "SELECT s.id, w.id AS endpoint, w.deleted_at, w.validation_status "
        "FROM synonyms s JOIN words w "
        "ON w.id = s.word_id OR w.id = s.synonym_id "
        "WHERE w.deleted_at IS NOT NULL OR w.validation_status = 'rejected' "
        "ORDER BY s.id, w.id"
    )
    for row in conn.execute(sql).fetchall():
        reason = "deleted" if row["deleted_at"] else "rejected"
        results.append(ValidationResult(
            rule_id="VAL-SYN-001",
            severity="ERROR",
            entity_type="synonym",
            entity_id=row["id"],
            message=f"Synonym edge endpoint word {row['endpoint']} is {reason}",
            details={"word_id": row["endpoint"], "reason": reason},
        ))
    return results


def _val_syn_002(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Both directions of one synonym pair stored."""
    results = []
    sql = (
        "SELECT a.id, b.id AS mirror_id, a.word_id, a.synonym_id "
        "FROM synonyms a JOIN synonyms b "
        "ON a.word_id = b.synonym_id AND a.synonym_id = b.word_id "
        "WHERE a.id < b.id ORDER BY a.id"
    )
    for row in conn.execute(sql).fetchall():
        results.append(ValidationResult(
            rule_id="VAL-SYN-002",
            severity="ERROR",
            entity_type="synonym",
            entity_id=row["id"],
            message=(
                f"Synonym pair ({row['word_id']}, {row['synonym_id']}) is "
                f"stored twice (mirror edge {row['mirror_id']})"
            ),
            details={"mirror_id": row["mirror_id"]},
        ))
    return results


def _val_mod_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Validated or rejected content without a decision date."""
    results = []
    for entity_type, table in ENTITY_TABLES.items():
        for row in conn.execute(
            f"SELECT id, validation_status FROM {table} "
            "WHERE validation_status IN ('validated', 'rejected') "
            "AND validation_date IS NULL ORDER BY id"
        ).fetchall():
            results.append(ValidationResult(
                rule_id="VAL-MOD-001",
                severity="WARNING",
                entity_type=entity_type,
                entity_id=row["id"],
                message=f"{row['validation_status'].capitalize()} without a validation date",
                details=None,
            ))
    return results


def _val_mod_002(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Live child content of a deleted word."""
    results = []
    for entity_type in CHILD_ENTITY_TYPES:
        sql = (
            f"SELECT c.id, c.word_id FROM {ENTITY_TABLES[entity_type]} c "
            "JOIN words w ON c.word_id = w.id "
            "WHERE c.deleted_at IS NULL AND w.deleted_at IS NOT NULL "
            "ORDER BY c.id"
        )
        for row in conn.execute(sql).fetchall():
            results.append(ValidationResult(
                rule_id="VAL-MOD-002",
                severity="WARNING",
                entity_type=entity_type,
                entity_id=row["id"],
                message=f"Live {entity_type} of deleted word {row['word_id']}",
                details={"word_id": row["word_id"]},
            ))
    return results


def _val_led_001(conn: sqlite3.Connection) -> list[ValidationResult]:
    """Entity with no create contribution."""
    results = []
    for entity_type, table in ENTITY_TABLES.items():
        sql = (
            f"SELECT t.id FROM {table} t WHERE NOT EXISTS ("
            "SELECT 1 FROM contributions c WHERE c.entity_type = ? "
            "AND c.entity_id = t.id AND c.action = 'create') ORDER BY t.id"
        )
        for row in conn.execute(sql, (entity_type,)).fetchall():
            results.append(ValidationResult(
                rule_id="VAL-LED-001",
                severity="WARNING",
                entity_type=entity_type,
                entity_id=row["id"],
                message=f"No create contribution recorded for this {entity_type}",
                details=None,
            ))
    return results
