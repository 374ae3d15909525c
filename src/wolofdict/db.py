"""Database connection, DDL, and low-level lookups for wolofdict."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from wolofdict.exceptions import DatabaseError, ValidationError

SCHEMA_VERSION = "1.0"

# Entity type -> table name for the moderatable tables.
ENTITY_TABLES: dict[str, str] = {
    "word": "words",
    "translation": "translations",
    "example": "examples",
    "conjugation": "conjugations",
    "phrase": "phrases",
}

# Entity types whose rows hang off a word.
CHILD_ENTITY_TYPES: tuple[str, ...] = ("translation", "example", "conjugation")


# ---------------------------------------------------------------------------
# DDL statements
# ---------------------------------------------------------------------------

_MODERATION_COLUMNS = """
    validation_status TEXT NOT NULL DEFAULT 'pending'
        CHECK( validation_status IN ('pending', 'validated', 'rejected') ),
    validation_date TEXT,
    created_by TEXT,
    validated_by TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    revision INTEGER NOT NULL DEFAULT 1,
    deleted_at TEXT
"""

_DDL = f"""
-- Meta table
CREATE TABLE IF NOT EXISTS meta (
    key TEXT NOT NULL,
    value TEXT,
    UNIQUE (key)
);

-- Moderatable content
CREATE TABLE IF NOT EXISTS words (
    id INTEGER PRIMARY KEY,
    term TEXT NOT NULL CHECK( length(trim(term)) > 0 ),
    initial_letter TEXT NOT NULL,
    pronunciation TEXT,
    etymology TEXT,
    dialect TEXT,
    is_archaic BOOLEAN CHECK( is_archaic IN (0, 1) ) DEFAULT 0 NOT NULL,
    notes TEXT,
    difficulty TEXT,
    {_MODERATION_COLUMNS},
    UNIQUE (term)
);
CREATE INDEX IF NOT EXISTS word_initial_letter_index ON words (initial_letter);
CREATE INDEX IF NOT EXISTS word_status_index ON words (validation_status);

CREATE TABLE IF NOT EXISTS translations (
    id INTEGER PRIMARY KEY,
    word_id INTEGER NOT NULL REFERENCES words (id),
    text TEXT NOT NULL,
    context TEXT,
    is_primary BOOLEAN CHECK( is_primary IN (0, 1) ) DEFAULT 0 NOT NULL,
    register TEXT NOT NULL DEFAULT 'standard',
    notes TEXT,
    {_MODERATION_COLUMNS}
);
CREATE INDEX IF NOT EXISTS translation_word_index ON translations (word_id);

CREATE TABLE IF NOT EXISTS examples (
    id INTEGER PRIMARY KEY,
    word_id INTEGER NOT NULL REFERENCES words (id),
    text_wolof TEXT NOT NULL,
    text_french TEXT NOT NULL,
    context TEXT,
    source TEXT,
    difficulty TEXT,
    {_MODERATION_COLUMNS}
);
CREATE INDEX IF NOT EXISTS example_word_index ON examples (word_id);

CREATE TABLE IF NOT EXISTS conjugations (
    id INTEGER PRIMARY KEY,
    word_id INTEGER NOT NULL REFERENCES words (id),
    tense TEXT NOT NULL,
    person TEXT NOT NULL,
    form TEXT NOT NULL,
    is_regular BOOLEAN CHECK( is_regular IN (0, 1) ) DEFAULT 1 NOT NULL,
    aspect TEXT,
    mood TEXT,
    pronoun TEXT,
    {_MODERATION_COLUMNS}
);
CREATE INDEX IF NOT EXISTS conjugation_word_index ON conjugations (word_id);

CREATE TABLE IF NOT EXISTS phrases (
    id INTEGER PRIMARY KEY,
    wolof TEXT NOT NULL,
    francais TEXT NOT NULL,
    transliteration TEXT,
    category TEXT,
    difficulty TEXT NOT NULL DEFAULT 'débutant',
    explanation TEXT,
    context TEXT,
    {_MODERATION_COLUMNS}
);

-- Categories
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    name_wolof TEXT,
    description TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (name)
);

CREATE TABLE IF NOT EXISTS word_categories (
    id INTEGER PRIMARY KEY,
    word_id INTEGER NOT NULL REFERENCES words (id),
    category_id INTEGER NOT NULL REFERENCES categories (id),
    is_main_category BOOLEAN CHECK( is_main_category IN (0, 1) ) DEFAULT 0 NOT NULL,
    created_by TEXT,
    created_at TEXT NOT NULL,
    UNIQUE (word_id, category_id)
);
CREATE INDEX IF NOT EXISTS word_category_word_index ON word_categories (word_id);

-- Synonym graph: one row per unordered pair
CREATE TABLE IF NOT EXISTS synonyms (
    id INTEGER PRIMARY KEY,
    word_id INTEGER NOT NULL REFERENCES words (id),
    synonym_id INTEGER NOT NULL REFERENCES words (id),
    strength INTEGER NOT NULL DEFAULT 1 CHECK( strength BETWEEN 1 AND 10 ),
    language TEXT NOT NULL DEFAULT 'wolof'
        CHECK( language IN ('wolof', 'français') ),
    notes TEXT,
    created_by TEXT,
    created_at TEXT NOT NULL,
    CHECK( word_id <> synonym_id ),
    UNIQUE (word_id, synonym_id)
);
CREATE INDEX IF NOT EXISTS synonym_word_index ON synonyms (word_id);
CREATE INDEX IF NOT EXISTS synonym_synonym_index ON synonyms (synonym_id);
CREATE UNIQUE INDEX IF NOT EXISTS synonym_pair_index
    ON synonyms (min(word_id, synonym_id), max(word_id, synonym_id));

-- Contribution ledger (append-only)
CREATE TABLE IF NOT EXISTS contributions (
    id INTEGER PRIMARY KEY,
    action TEXT NOT NULL
        CHECK( action IN ('create', 'update', 'delete', 'validate', 'reject') ),
    entity_type TEXT NOT NULL
        CHECK( entity_type IN ('word', 'translation', 'example', 'conjugation', 'phrase') ),
    entity_id INTEGER NOT NULL,
    previous_value TEXT,
    new_value TEXT,
    comment TEXT,
    side_effects TEXT,
    user_id TEXT,
    timestamp TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS contribution_entity_index
    ON contributions (entity_type, entity_id, timestamp);
CREATE INDEX IF NOT EXISTS contribution_user_index ON contributions (user_id);

CREATE TRIGGER IF NOT EXISTS contributions_no_update
BEFORE UPDATE ON contributions
BEGIN
    SELECT RAISE(ABORT, 'contributions are append-only');
END;

CREATE TRIGGER IF NOT EXISTS contributions_no_delete
BEFORE DELETE ON contributions
BEGIN
    SELECT RAISE(ABORT, 'contributions are append-only');
END;
"""


def connect(db_path: str | Path = ":memory:") -> sqlite3.Connection:
    """Open a database connection with the moderation PRAGMA settings."""
    db_path_str = str(db_path)
    conn = sqlite3.connect(db_path_str)
    conn.execute("PRAGMA foreign_keys = ON")
    if db_path_str != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize all tables if they don't exist. Set schema version."""
    conn.executescript(_DDL)
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) VALUES ('created_at', ?)",
        (utcnow(),),
    )
    conn.commit()


def check_schema_version(conn: sqlite3.Connection) -> None:
    """Verify the database schema version is compatible."""
    try:
        row = conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        # meta table doesn't exist - uninitialized DB
        return
    if row is None:
        return
    version = row[0]
    if version != SCHEMA_VERSION:
        raise DatabaseError(
            f"Incompatible schema version: {version} "
            f"(expected {SCHEMA_VERSION})"
        )


def utcnow() -> str:
    """Current UTC time in the same format SQLite's strftime produces."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]


# ---------------------------------------------------------------------------
# Row lookups
# ---------------------------------------------------------------------------

def table_for(entity_type: str) -> str:
    """Map an entity type to its table, rejecting unknown types."""
    try:
        return ENTITY_TABLES[entity_type]
    except KeyError:
        raise ValidationError(f"Unknown entity type: {entity_type!r}") from None


def get_entity_row(
    conn: sqlite3.Connection, entity_type: str, entity_id: int
) -> sqlite3.Row | None:
    """Get a full moderatable row by type and ID, including soft-deleted ones."""
    return conn.execute(
        f"SELECT * FROM {table_for(entity_type)} WHERE id = ?",
        (entity_id,),
    ).fetchone()


def get_word_row_by_term(
    conn: sqlite3.Connection, term: str
) -> sqlite3.Row | None:
    """Get a word row by its exact term."""
    return conn.execute(
        "SELECT * FROM words WHERE term = ?",
        (term,),
    ).fetchone()


def get_category_row(
    conn: sqlite3.Connection, category_id: int
) -> sqlite3.Row | None:
    """Get a category row by ID."""
    return conn.execute(
        "SELECT * FROM categories WHERE id = ?",
        (category_id,),
    ).fetchone()


def get_category_row_by_name(
    conn: sqlite3.Connection, name: str
) -> sqlite3.Row | None:
    """Get a category row by its unique name."""
    return conn.execute(
        "SELECT * FROM categories WHERE name = ?",
        (name,),
    ).fetchone()
