"""ModerationService: main entry point for the wolofdict moderation engine."""

from __future__ import annotations

import dataclasses
import functools
import logging
import sqlite3
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from wolofdict import categories as _cat
from wolofdict import db as _db
from wolofdict import ledger as _ledger
from wolofdict import synonyms as _syn
from wolofdict.alphabet import alphabet_sort_key, bucket_of, normalize_letter
from wolofdict.exceptions import (
    ConcurrentModificationError,
    DuplicateEntityError,
    EntityNotEligibleError,
    EntityNotFoundError,
    ValidationError,
)
from wolofdict.models import (
    Actor,
    CategoryModel,
    ConjugationModel,
    ContributionRecord,
    Difficulty,
    ExampleModel,
    ModeratableModel,
    PhraseModel,
    Register,
    SynonymModel,
    TranslationModel,
    ValidationResult,
    ValidationStatus,
    WordCategoryModel,
    WordModel,
)
from wolofdict.workflow import ValidationStateMachine

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])

_MODEL_CLASSES: dict[str, type] = {
    "word": WordModel,
    "translation": TranslationModel,
    "example": ExampleModel,
    "conjugation": ConjugationModel,
    "phrase": PhraseModel,
}

# Fields a caller may set through create/update. Everything else on a row
# (initial_letter, word_id, moderation columns) is owned by the service.
EDITABLE_FIELDS: dict[str, tuple[str, ...]] = {
    "word": (
        "term", "pronunciation", "etymology", "dialect", "is_archaic",
        "notes", "difficulty",
    ),
    "translation": ("text", "context", "is_primary", "register", "notes"),
    "example": ("text_wolof", "text_french", "context", "source", "difficulty"),
    "conjugation": (
        "tense", "person", "form", "is_regular", "aspect", "mood", "pronoun",
    ),
    "phrase": (
        "wolof", "francais", "transliteration", "category", "difficulty",
        "explanation", "context",
    ),
}

_REQUIRED_TEXT: dict[str, frozenset[str]] = {
    "word": frozenset({"term"}),
    "translation": frozenset({"text"}),
    "example": frozenset({"text_wolof", "text_french"}),
    "conjugation": frozenset({"tense", "person", "form"}),
    "phrase": frozenset({"wolof", "francais"}),
}

_BOOL_FIELDS = frozenset({"is_archaic", "is_primary", "is_regular"})

_REGISTERS = frozenset(r.value for r in Register)
_DIFFICULTIES = frozenset(d.value for d in Difficulty)
_STATUSES = frozenset(s.value for s in ValidationStatus)

_REVERT_SOURCES = ("previous", "new")


def _modifies_db(method: _F) -> _F:
    """Decorator: wraps mutation methods in a transaction.

    Inside :meth:`ModerationService.batch` each call runs under its own
    savepoint, so a failed call leaves the rest of the batch untouched.
    """

    @functools.wraps(method)
    def wrapper(self: ModerationService, *args: Any, **kwargs: Any) -> Any:
        if self._in_batch:
            self._conn.execute("SAVEPOINT moderation_op")
            try:
                result = method(self, *args, **kwargs)
            except BaseException:
                self._conn.execute("ROLLBACK TO SAVEPOINT moderation_op")
                self._conn.execute("RELEASE SAVEPOINT moderation_op")
                raise
            self._conn.execute("RELEASE SAVEPOINT moderation_op")
            return result
        with self._conn:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class ModerationService:
    """Moderation, ledger and relation operations over one dictionary database."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        self._conn = _db.connect(db_path)
        _db.check_schema_version(self._conn)
        _db.init_db(self._conn)
        self._workflow = ValidationStateMachine()
        self._in_batch = False
        self._batch_depth = 0

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> ModerationService:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Batch context manager
    # ------------------------------------------------------------------

    @contextmanager
    def batch(self) -> Generator[None, None, None]:
        """Group multiple mutations into a single transaction."""
        self._batch_depth += 1
        if self._batch_depth == 1:
            self._in_batch = True
            self._conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            if self._batch_depth == 1:
                self._conn.rollback()
                self._in_batch = False
            self._batch_depth -= 1
            raise
        else:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._conn.commit()
                self._in_batch = False

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @_modifies_db
    def create_word(
        self,
        term: str,
        actor: Actor,
        *,
        pronunciation: str | None = None,
        etymology: str | None = None,
        dialect: str | None = None,
        is_archaic: bool = False,
        notes: str | None = None,
        difficulty: str | None = None,
    ) -> WordModel:
        values = self._clean_fields("word", {
            "term": term,
            "pronunciation": pronunciation,
            "etymology": etymology,
            "dialect": dialect,
            "is_archaic": is_archaic,
            "notes": notes,
            "difficulty": difficulty,
        }, creating=True)
        values["initial_letter"] = bucket_of(values["term"])
        return self._insert("word", values, actor)

    @_modifies_db
    def create_translation(
        self,
        word_id: int,
        text: str,
        actor: Actor,
        *,
        context: str | None = None,
        is_primary: bool = False,
        register: str = Register.STANDARD.value,
        notes: str | None = None,
    ) -> TranslationModel:
        self._require_live_parent(word_id)
        values = self._clean_fields("translation", {
            "text": text,
            "context": context,
            "is_primary": is_primary,
            "register": register,
            "notes": notes,
        }, creating=True)
        values["word_id"] = word_id
        return self._insert("translation", values, actor)

    @_modifies_db
    def create_example(
        self,
        word_id: int,
        text_wolof: str,
        text_french: str,
        actor: Actor,
        *,
        context: str | None = None,
        source: str | None = None,
        difficulty: str | None = None,
    ) -> ExampleModel:
        self._require_live_parent(word_id)
        values = self._clean_fields("example", {
            "text_wolof": text_wolof,
            "text_french": text_french,
            "context": context,
            "source": source,
            "difficulty": difficulty,
        }, creating=True)
        values["word_id"] = word_id
        return self._insert("example", values, actor)

    @_modifies_db
    def create_conjugation(
        self,
        word_id: int,
        tense: str,
        person: str,
        form: str,
        actor: Actor,
        *,
        is_regular: bool = True,
        aspect: str | None = None,
        mood: str | None = None,
        pronoun: str | None = None,
    ) -> ConjugationModel:
        self._require_live_parent(word_id)
        values = self._clean_fields("conjugation", {
            "tense": tense,
            "person": person,
            "form": form,
            "is_regular": is_regular,
            "aspect": aspect,
            "mood": mood,
            "pronoun": pronoun,
        }, creating=True)
        values["word_id"] = word_id
        return self._insert("conjugation", values, actor)

    @_modifies_db
    def create_phrase(
        self,
        wolof: str,
        francais: str,
        actor: Actor,
        *,
        transliteration: str | None = None,
        category: str | None = None,
        difficulty: str = Difficulty.BEGINNER.value,
        explanation: str | None = None,
        context: str | None = None,
    ) -> PhraseModel:
        values = self._clean_fields("phrase", {
            "wolof": wolof,
            "francais": francais,
            "transliteration": transliteration,
            "category": category,
            "difficulty": difficulty,
            "explanation": explanation,
            "context": context,
        }, creating=True)
        return self._insert("phrase", values, actor)

    def _insert(
        self, entity_type: str, values: dict[str, Any], actor: Actor
    ) -> ModeratableModel:
        now = _db.utcnow()
        values = {
            **values,
            "validation_status": self._workflow.initial_status,
            "created_by": actor.id,
            "created_at": now,
            "updated_at": now,
        }
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        try:
            cur = self._conn.execute(
                f"INSERT INTO {_db.table_for(entity_type)} ({columns}) "
                f"VALUES ({placeholders})",
                [int(v) if k in _BOOL_FIELDS else v for k, v in values.items()],
            )
        except sqlite3.IntegrityError as e:
            raise self._integrity_error(entity_type, values, e) from e

        model = self.get_entity(entity_type, cur.lastrowid)
        _ledger.record(
            self._conn, "create", entity_type, model.id,
            None, _ledger.snapshot(model), actor.id,
        )
        return model

    # ------------------------------------------------------------------
    # Update, moderation decisions, deletion
    # ------------------------------------------------------------------

    @_modifies_db
    def update_entity(
        self,
        entity_type: str,
        entity_id: int,
        actor: Actor,
        *,
        expected_revision: int | None = None,
        comment: str | None = None,
        **fields: Any,
    ) -> ModeratableModel:
        """Edit the editable fields of an entity.

        Changing a content field of validated or rejected content sends it
        back to pending. Changing a word's term recomputes its initial
        letter. An update that changes nothing writes nothing.
        """
        return self._update(
            entity_type, entity_id, actor, fields,
            expected_revision=expected_revision, comment=comment,
        )

    def _update(
        self,
        entity_type: str,
        entity_id: int,
        actor: Actor,
        fields: dict[str, Any],
        *,
        expected_revision: int | None,
        comment: str | None,
    ) -> ModeratableModel:
        row = self._require_row(entity_type, entity_id)
        self._workflow.ensure_live(entity_type, entity_id, row["deleted_at"])
        self._check_revision(entity_type, row, expected_revision)

        unknown = set(fields) - set(EDITABLE_FIELDS[entity_type])
        if unknown:
            raise ValidationError(
                f"Cannot update {entity_type} field(s): "
                f"{', '.join(sorted(unknown))}"
            )
        cleaned = self._clean_fields(entity_type, fields, creating=False)
        changed = {k: v for k, v in cleaned.items() if row[k] != v}
        if not changed:
            return self._row_to_model(entity_type, row)

        transition = self._workflow.after_edit(
            entity_type,
            row["validation_status"],
            changed,
            validation_date=row["validation_date"],
            validated_by=row["validated_by"],
        )
        assignments = dict(changed)
        if "term" in changed:
            assignments["initial_letter"] = bucket_of(changed["term"])
        assignments["validation_status"] = transition.to_status
        assignments["updated_at"] = _db.utcnow()

        previous = _ledger.snapshot(self._row_to_model(entity_type, row))
        self._guarded_update(entity_type, row, assignments)
        model = self.get_entity(entity_type, entity_id)
        _ledger.record(
            self._conn, "update", entity_type, entity_id,
            previous, _ledger.snapshot(model), actor.id, comment=comment,
        )
        return model

    @_modifies_db
    def validate_entity(
        self,
        entity_type: str,
        entity_id: int,
        actor: Actor,
        *,
        expected_revision: int | None = None,
        comment: str | None = None,
    ) -> ModeratableModel:
        return self._decide(
            "validate", entity_type, entity_id, actor,
            expected_revision=expected_revision, comment=comment,
        )

    @_modifies_db
    def reject_entity(
        self,
        entity_type: str,
        entity_id: int,
        actor: Actor,
        *,
        expected_revision: int | None = None,
        comment: str | None = None,
    ) -> ModeratableModel:
        """Reject pending content. A rejected word loses its synonym edges."""
        return self._decide(
            "reject", entity_type, entity_id, actor,
            expected_revision=expected_revision, comment=comment,
        )

    def _decide(
        self,
        action: str,
        entity_type: str,
        entity_id: int,
        actor: Actor,
        *,
        expected_revision: int | None,
        comment: str | None,
    ) -> ModeratableModel:
        row = self._require_row(entity_type, entity_id)
        self._workflow.ensure_live(entity_type, entity_id, row["deleted_at"])
        self._check_revision(entity_type, row, expected_revision)

        now = _db.utcnow()
        transition = self._workflow.decide(
            entity_type, row["validation_status"], action, actor, now
        )
        previous = _ledger.snapshot(self._row_to_model(entity_type, row))
        self._guarded_update(entity_type, row, {
            "validation_status": transition.to_status,
            "validation_date": transition.validation_date,
            "validated_by": transition.validated_by,
            "updated_at": now,
        })

        side_effects: list[dict] = []
        if entity_type == "word" and action == "reject":
            side_effects.extend(_syn.drop_edges(self._conn, entity_id))

        model = self.get_entity(entity_type, entity_id)
        _ledger.record(
            self._conn, action, entity_type, entity_id,
            previous, _ledger.snapshot(model), actor.id,
            comment=comment, side_effects=side_effects,
        )
        return model

    @_modifies_db
    def delete_entity(
        self,
        entity_type: str,
        entity_id: int,
        actor: Actor,
        *,
        expected_revision: int | None = None,
        comment: str | None = None,
    ) -> None:
        """Soft-delete an entity.

        Deleting a word also soft-deletes its live translations, examples
        and conjugations and drops its synonym edges. Category assignments
        are kept.
        """
        row = self._require_row(entity_type, entity_id)
        self._workflow.ensure_live(entity_type, entity_id, row["deleted_at"])
        self._check_revision(entity_type, row, expected_revision)

        now = _db.utcnow()
        previous = _ledger.snapshot(self._row_to_model(entity_type, row))
        self._guarded_update(entity_type, row, {
            "deleted_at": now,
            "updated_at": now,
        })

        side_effects: list[dict] = []
        if entity_type == "word":
            for child_type in _db.CHILD_ENTITY_TYPES:
                side_effects.extend(
                    self._cascade_delete(child_type, entity_id, now)
                )
            side_effects.extend(_syn.drop_edges(self._conn, entity_id))

        _ledger.record(
            self._conn, "delete", entity_type, entity_id,
            previous, None, actor.id,
            comment=comment, side_effects=side_effects,
        )

    def _cascade_delete(
        self, child_type: str, word_id: int, now: str
    ) -> list[dict]:
        table = _db.table_for(child_type)
        rows = self._conn.execute(
            f"SELECT id FROM {table} WHERE word_id = ? AND deleted_at IS NULL "
            "ORDER BY id",
            (word_id,),
        ).fetchall()
        self._conn.execute(
            f"UPDATE {table} SET deleted_at = ?, updated_at = ?, "
            "revision = revision + 1 "
            "WHERE word_id = ? AND deleted_at IS NULL",
            (now, now, word_id),
        )
        if rows:
            logger.info(
                "Soft-deleted %d %s(s) of word %s", len(rows), child_type, word_id
            )
        return [
            {"soft_deleted": {"entity_type": child_type, "entity_id": r["id"]}}
            for r in rows
        ]

    @_modifies_db
    def revert_entity(
        self,
        entity_type: str,
        entity_id: int,
        contribution_id: int,
        actor: Actor,
        *,
        use: str = "previous",
        expected_revision: int | None = None,
    ) -> ModeratableModel:
        """Restore the editable fields held by a past contribution.

        The revert is an ordinary update: it is recorded as ``update`` and
        follows the same pending rules.
        """
        if use not in _REVERT_SOURCES:
            raise ValidationError(
                f"use must be 'previous' or 'new', got {use!r}"
            )
        record = _ledger.get(self._conn, contribution_id)
        if record.entity_type != entity_type or record.entity_id != entity_id:
            raise ValidationError(
                f"Contribution #{contribution_id} belongs to "
                f"{record.entity_type} {record.entity_id}, "
                f"not {entity_type} {entity_id}"
            )
        values = record.previous_value if use == "previous" else record.new_value
        fields = {
            k: values[k] for k in EDITABLE_FIELDS[entity_type]
            if values is not None and k in values
        }
        if not fields:
            raise ValidationError(
                f"Contribution #{contribution_id} holds no {use} "
                f"{entity_type} snapshot to revert to"
            )
        return self._update(
            entity_type, entity_id, actor, fields,
            expected_revision=expected_revision,
            comment=f"revert to {use} value of contribution #{contribution_id}",
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entity(self, entity_type: str, entity_id: int) -> ModeratableModel:
        """Fetch any moderatable entity, soft-deleted ones included."""
        return self._row_to_model(
            entity_type, self._require_row(entity_type, entity_id)
        )

    def get_word(self, word_id: int) -> WordModel:
        return self.get_entity("word", word_id)

    def get_word_by_term(self, term: str) -> WordModel:
        row = _db.get_word_row_by_term(self._conn, term.strip())
        if row is None:
            raise EntityNotFoundError(f"Word not found: {term!r}")
        return self._row_to_model("word", row)

    def find_words(
        self,
        *,
        letter: str | None = None,
        status: str | None = None,
        include_deleted: bool = False,
    ) -> list[WordModel]:
        clauses: list[str] = []
        params: list[Any] = []

        if letter is not None:
            clauses.append("initial_letter = ?")
            params.append(normalize_letter(letter))
        if status is not None:
            self._check_status(status)
            clauses.append("validation_status = ?")
            params.append(status)
        if not include_deleted:
            clauses.append("deleted_at IS NULL")

        where = " AND ".join(clauses) if clauses else "1=1"
        rows = self._conn.execute(
            f"SELECT * FROM words WHERE {where} ORDER BY term, id", params
        ).fetchall()
        return [self._row_to_model("word", r) for r in rows]

    def letter_counts(self) -> dict[str, int]:
        """Live words per initial letter, in Wolof alphabet order."""
        rows = self._conn.execute(
            "SELECT initial_letter, COUNT(*) AS n FROM words "
            "WHERE deleted_at IS NULL GROUP BY initial_letter"
        ).fetchall()
        counts = {r["initial_letter"]: r["n"] for r in rows}
        return {k: counts[k] for k in sorted(counts, key=alphabet_sort_key)}

    def moderation_queue(self, entity_type: str) -> list[ModeratableModel]:
        """Live pending entities of one type, oldest first."""
        rows = self._conn.execute(
            f"SELECT * FROM {_db.table_for(entity_type)} "
            "WHERE validation_status = 'pending' AND deleted_at IS NULL "
            "ORDER BY created_at, id"
        ).fetchall()
        return [self._row_to_model(entity_type, r) for r in rows]

    def children_of(
        self,
        word_id: int,
        entity_type: str,
        *,
        include_deleted: bool = False,
    ) -> list[ModeratableModel]:
        if entity_type not in _db.CHILD_ENTITY_TYPES:
            raise ValidationError(
                f"{entity_type!r} entities do not belong to a word"
            )
        self._require_row("word", word_id)
        sql = f"SELECT * FROM {_db.table_for(entity_type)} WHERE word_id = ?"
        if not include_deleted:
            sql += " AND deleted_at IS NULL"
        rows = self._conn.execute(sql + " ORDER BY id", (word_id,)).fetchall()
        return [self._row_to_model(entity_type, r) for r in rows]

    # ------------------------------------------------------------------
    # Synonyms
    # ------------------------------------------------------------------

    @_modifies_db
    def link_synonyms(
        self,
        word_id: int,
        synonym_id: int,
        actor: Actor,
        *,
        strength: int = 1,
        language: str = "wolof",
        notes: str | None = None,
    ) -> SynonymModel:
        return _syn.link(
            self._conn, word_id, synonym_id, actor.id,
            strength=strength, language=language, notes=notes,
        )

    @_modifies_db
    def unlink_synonyms(
        self, word_id: int, synonym_id: int, actor: Actor
    ) -> None:
        _syn.unlink(self._conn, word_id, synonym_id, actor.id)

    def get_synonyms(self, word_id: int) -> list[SynonymModel]:
        self._require_row("word", word_id)
        return _syn.neighbors_of(self._conn, word_id)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @_modifies_db
    def create_category(
        self,
        name: str,
        *,
        name_wolof: str | None = None,
        description: str | None = None,
    ) -> CategoryModel:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name must not be empty")
        try:
            cur = self._conn.execute(
                "INSERT INTO categories (name, name_wolof, description, created_at) "
                "VALUES (?, ?, ?, ?)",
                (name, name_wolof, description, _db.utcnow()),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateEntityError(
                f"Category already exists: {name!r}"
            ) from e
        return self.get_category(cur.lastrowid)

    def get_category(self, category_id: int) -> CategoryModel:
        row = _db.get_category_row(self._conn, category_id)
        if row is None:
            raise EntityNotFoundError(f"Category not found: {category_id!r}")
        return self._row_to_category(row)

    def get_category_by_name(self, name: str) -> CategoryModel:
        row = _db.get_category_row_by_name(self._conn, name.strip())
        if row is None:
            raise EntityNotFoundError(f"Category not found: {name!r}")
        return self._row_to_category(row)

    def list_categories(self) -> list[CategoryModel]:
        rows = self._conn.execute(
            "SELECT * FROM categories ORDER BY name"
        ).fetchall()
        return [self._row_to_category(r) for r in rows]

    @_modifies_db
    def assign_category(
        self,
        word_id: int,
        category_id: int,
        actor: Actor,
        *,
        is_main: bool = False,
    ) -> WordCategoryModel:
        return _cat.assign(
            self._conn, word_id, category_id, actor.id, is_main=is_main
        )

    @_modifies_db
    def unassign_category(
        self, word_id: int, category_id: int, actor: Actor
    ) -> None:
        _cat.unassign(self._conn, word_id, category_id, actor.id)

    @_modifies_db
    def set_main_category(
        self, word_id: int, category_id: int, actor: Actor
    ) -> WordCategoryModel:
        return _cat.set_main(self._conn, word_id, category_id, actor.id)

    def get_word_categories(self, word_id: int) -> list[WordCategoryModel]:
        self._require_row("word", word_id)
        return _cat.categories_of(self._conn, word_id)

    def _row_to_category(self, row: sqlite3.Row) -> CategoryModel:
        return CategoryModel(
            id=row["id"],
            name=row["name"],
            name_wolof=row["name_wolof"],
            description=row["description"],
            created_at=row["created_at"],
        )

    # ------------------------------------------------------------------
    # Contribution ledger
    # ------------------------------------------------------------------

    def get_history(
        self, entity_type: str, entity_id: int
    ) -> list[ContributionRecord]:
        _db.table_for(entity_type)
        return _ledger.query_history(self._conn, entity_type, entity_id)

    def get_contributions(
        self,
        *,
        entity_type: str | None = None,
        entity_id: int | None = None,
        action: str | None = None,
        user_id: str | None = None,
        since: str | None = None,
    ) -> list[ContributionRecord]:
        return _ledger.query(
            self._conn,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            user_id=user_id,
            since=since,
        )

    def get_contribution(self, contribution_id: int) -> ContributionRecord:
        return _ledger.get(self._conn, contribution_id)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def validate(self) -> list[ValidationResult]:
        from wolofdict.validator import validate_all
        return validate_all(self._conn)

    def validate_word(self, word_id: int) -> list[ValidationResult]:
        from wolofdict.validator import validate_word
        return validate_word(self._conn, word_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_row(self, entity_type: str, entity_id: int) -> sqlite3.Row:
        row = _db.get_entity_row(self._conn, entity_type, entity_id)
        if row is None:
            raise EntityNotFoundError(
                f"{entity_type.capitalize()} not found: {entity_id!r}"
            )
        return row

    def _require_live_parent(self, word_id: int) -> None:
        row = self._require_row("word", word_id)
        if row["deleted_at"] is not None:
            raise EntityNotEligibleError(
                f"Word {word_id} is deleted; it cannot receive new content"
            )

    def _check_revision(
        self, entity_type: str, row: sqlite3.Row, expected: int | None
    ) -> None:
        if expected is not None and expected != row["revision"]:
            raise ConcurrentModificationError(
                f"{entity_type.capitalize()} {row['id']} is at revision "
                f"{row['revision']}, expected {expected}; reload and retry"
            )

    def _guarded_update(
        self, entity_type: str, row: sqlite3.Row, assignments: dict[str, Any]
    ) -> None:
        """Write ``assignments`` only if the row is still at the revision read."""
        sets = ", ".join(f"{col} = ?" for col in assignments)
        params = [
            int(v) if col in _BOOL_FIELDS else v
            for col, v in assignments.items()
        ]
        try:
            cur = self._conn.execute(
                f"UPDATE {_db.table_for(entity_type)} "
                f"SET {sets}, revision = revision + 1 "
                "WHERE id = ? AND revision = ?",
                [*params, row["id"], row["revision"]],
            )
        except sqlite3.IntegrityError as e:
            raise self._integrity_error(entity_type, assignments, e) from e
        if cur.rowcount != 1:
            raise ConcurrentModificationError(
                f"{entity_type.capitalize()} {row['id']} was modified "
                "concurrently; reload and retry"
            )

    def _integrity_error(
        self, entity_type: str, values: dict[str, Any], error: Exception
    ) -> Exception:
        if entity_type == "word" and "term" in values:
            return DuplicateEntityError(
                f"Word already exists: {values['term']!r}"
            )
        return ValidationError(f"Invalid {entity_type}: {error}")

    def _check_status(self, status: str) -> None:
        if status not in _STATUSES:
            raise ValidationError(f"Invalid validation status: {status!r}")

    def _clean_fields(
        self, entity_type: str, fields: dict[str, Any], *, creating: bool
    ) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        required = _REQUIRED_TEXT[entity_type]
        for name, value in fields.items():
            if name in required:
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(
                        f"{entity_type.capitalize()} {name} must be a "
                        "non-empty string"
                    )
                value = value.strip()
            elif name in _BOOL_FIELDS:
                value = bool(value)
            elif name == "register":
                if value not in _REGISTERS:
                    raise ValidationError(
                        f"Invalid register: {value!r} "
                        f"(expected one of {', '.join(sorted(_REGISTERS))})"
                    )
            elif name == "difficulty" and (
                value is not None or entity_type == "phrase"
            ):
                if value not in _DIFFICULTIES:
                    raise ValidationError(
                        f"Invalid difficulty: {value!r} "
                        f"(expected one of {', '.join(sorted(_DIFFICULTIES))})"
                    )
            cleaned[name] = value
        if creating:
            missing = required - set(cleaned)
            if missing:
                raise ValidationError(
                    f"Missing {entity_type} field(s): {', '.join(sorted(missing))}"
                )
        return cleaned

    def _row_to_model(
        self, entity_type: str, row: sqlite3.Row
    ) -> ModeratableModel:
        cls = _MODEL_CLASSES[entity_type]
        values = {f.name: row[f.name] for f in dataclasses.fields(cls)}
        for name in _BOOL_FIELDS.intersection(values):
            values[name] = bool(values[name])
        return cls(**values)
