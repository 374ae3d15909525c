"""Domain model dataclasses and enums for wolofdict."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ValidationStatus(str, Enum):
    """Moderation state of a content record."""

    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


class EntityType(str, Enum):
    """Moderatable entity kinds."""

    WORD = "word"
    TRANSLATION = "translation"
    EXAMPLE = "example"
    CONJUGATION = "conjugation"
    PHRASE = "phrase"


class ContributionAction(str, Enum):
    """Type of mutation recorded in the contribution ledger."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    VALIDATE = "validate"
    REJECT = "reject"


class SynonymLanguage(str, Enum):
    """Language a synonym relation is expressed in."""

    WOLOF = "wolof"
    FRENCH = "français"


class Register(str, Enum):
    """Language register of a translation."""

    FAMILIAR = "familier"
    STANDARD = "standard"
    FORMAL = "soutenu"


class Difficulty(str, Enum):
    """Learner difficulty level."""

    BEGINNER = "débutant"
    INTERMEDIATE = "intermédiaire"
    ADVANCED = "avancé"


class ValidationSeverity(str, Enum):
    """Severity level for audit results."""

    ERROR = "ERROR"
    WARNING = "WARNING"


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Actor:
    """The user performing an operation, as supplied by the auth provider."""

    id: str
    can_moderate: bool = False


@dataclass(frozen=True, slots=True)
class WordModel:
    """A Wolof headword."""

    id: int
    term: str
    initial_letter: str
    pronunciation: str | None
    etymology: str | None
    dialect: str | None
    is_archaic: bool
    notes: str | None
    difficulty: str | None
    validation_status: str
    validation_date: str | None
    created_by: str | None
    validated_by: str | None
    created_at: str
    updated_at: str
    revision: int
    deleted_at: str | None


@dataclass(frozen=True, slots=True)
class TranslationModel:
    """A French translation of a word."""

    id: int
    word_id: int
    text: str
    context: str | None
    is_primary: bool
    register: str
    notes: str | None
    validation_status: str
    validation_date: str | None
    created_by: str | None
    validated_by: str | None
    created_at: str
    updated_at: str
    revision: int
    deleted_at: str | None


@dataclass(frozen=True, slots=True)
class ExampleModel:
    """A usage example, in Wolof with its French rendering."""

    id: int
    word_id: int
    text_wolof: str
    text_french: str
    context: str | None
    source: str | None
    difficulty: str | None
    validation_status: str
    validation_date: str | None
    created_by: str | None
    validated_by: str | None
    created_at: str
    updated_at: str
    revision: int
    deleted_at: str | None


@dataclass(frozen=True, slots=True)
class ConjugationModel:
    """A conjugated form of a verb."""

    id: int
    word_id: int
    tense: str
    person: str
    form: str
    is_regular: bool
    aspect: str | None
    mood: str | None
    pronoun: str | None
    validation_status: str
    validation_date: str | None
    created_by: str | None
    validated_by: str | None
    created_at: str
    updated_at: str
    revision: int
    deleted_at: str | None


@dataclass(frozen=True, slots=True)
class PhraseModel:
    """A full phrase for learners, not attached to a single word."""

    id: int
    wolof: str
    francais: str
    transliteration: str | None
    category: str | None
    difficulty: str
    explanation: str | None
    context: str | None
    validation_status: str
    validation_date: str | None
    created_by: str | None
    validated_by: str | None
    created_at: str
    updated_at: str
    revision: int
    deleted_at: str | None


ModeratableModel = (
    WordModel | TranslationModel | ExampleModel | ConjugationModel | PhraseModel
)


@dataclass(frozen=True, slots=True)
class CategoryModel:
    """A thematic category (Culture, Lieu, Religion, ...)."""

    id: int
    name: str
    name_wolof: str | None
    description: str | None
    created_at: str


@dataclass(frozen=True, slots=True)
class WordCategoryModel:
    """Assignment of a word to a category."""

    id: int
    word_id: int
    category_id: int
    category_name: str
    is_main_category: bool
    created_by: str | None
    created_at: str


@dataclass(frozen=True, slots=True)
class SynonymModel:
    """A synonym edge as seen from ``word_id``.

    Edges are stored once per unordered pair; reads always present the
    other endpoint as ``synonym_id``.
    """

    id: int
    word_id: int
    synonym_id: int
    synonym_term: str
    strength: int
    language: str
    notes: str | None
    created_by: str | None
    created_at: str


@dataclass(frozen=True, slots=True)
class ContributionRecord:
    """A single immutable ledger entry."""

    id: int
    action: str
    entity_type: str
    entity_id: int
    previous_value: dict[str, Any] | None
    new_value: dict[str, Any] | None
    comment: str | None
    side_effects: list[dict[str, Any]] | None
    user_id: str | None
    timestamp: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """A single audit finding (error or warning)."""

    rule_id: str
    severity: str
    entity_type: str
    entity_id: int
    message: str
    details: dict[str, Any] | None
