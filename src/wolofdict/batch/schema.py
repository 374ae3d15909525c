"""
Data classes and constants for batch moderation requests.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..models import Actor


# =============================================================================
# Operation Types
# =============================================================================

class OperationType(str, Enum):
    """Supported batch operations."""
    CREATE_WORD = "create_word"
    UPDATE_WORD = "update_word"
    ADD_TRANSLATION = "add_translation"
    ADD_EXAMPLE = "add_example"
    ADD_CONJUGATION = "add_conjugation"
    VALIDATE = "validate"
    REJECT = "reject"
    DELETE = "delete"
    LINK_SYNONYM = "link_synonym"
    UNLINK_SYNONYM = "unlink_synonym"
    ASSIGN_CATEGORY = "assign_category"
    UNASSIGN_CATEGORY = "unassign_category"


# Operations that act on an entity chosen by the 'entity' field
ENTITY_OPERATIONS = frozenset({
    OperationType.VALIDATE.value,
    OperationType.REJECT.value,
    OperationType.DELETE.value,
})

# Operations needing an actor with moderation capability
MODERATOR_OPERATIONS = frozenset({
    OperationType.VALIDATE.value,
    OperationType.REJECT.value,
})

# Optional fields of create_word/update_word besides the term
WORD_FIELDS: List[str] = [
    "pronunciation", "etymology", "dialect", "is_archaic", "notes", "difficulty",
]


# =============================================================================
# Field Requirements
# =============================================================================

# Required fields for each operation
REQUIRED_FIELDS: Dict[str, List[str]] = {
    OperationType.CREATE_WORD.value: ["term"],
    OperationType.UPDATE_WORD.value: ["word"],
    OperationType.ADD_TRANSLATION.value: ["word", "text"],
    OperationType.ADD_EXAMPLE.value: ["word", "text_wolof", "text_french"],
    OperationType.ADD_CONJUGATION.value: ["word", "tense", "person", "form"],
    OperationType.VALIDATE.value: ["entity"],
    OperationType.REJECT.value: ["entity"],
    OperationType.DELETE.value: ["entity"],
    OperationType.LINK_SYNONYM.value: ["word", "synonym"],
    OperationType.UNLINK_SYNONYM.value: ["word", "synonym"],
    OperationType.ASSIGN_CATEGORY.value: ["word", "category"],
    OperationType.UNASSIGN_CATEGORY.value: ["word", "category"],
}

# Optional fields for each operation
OPTIONAL_FIELDS: Dict[str, List[str]] = {
    OperationType.CREATE_WORD.value: list(WORD_FIELDS),
    OperationType.UPDATE_WORD.value: ["term", *WORD_FIELDS, "expected_revision", "comment"],
    OperationType.ADD_TRANSLATION.value: ["context", "is_primary", "register", "notes"],
    OperationType.ADD_EXAMPLE.value: ["context", "source", "difficulty"],
    OperationType.ADD_CONJUGATION.value: ["is_regular", "aspect", "mood", "pronoun"],
    OperationType.VALIDATE.value: ["word", "id", "expected_revision", "comment"],
    OperationType.REJECT.value: ["word", "id", "expected_revision", "comment"],
    OperationType.DELETE.value: ["word", "id", "expected_revision", "comment"],
    OperationType.LINK_SYNONYM.value: ["strength", "language", "notes"],
    OperationType.UNLINK_SYNONYM.value: [],
    OperationType.ASSIGN_CATEGORY.value: ["main"],
    OperationType.UNASSIGN_CATEGORY.value: [],
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class Change:
    """Single change operation."""
    operation: str
    params: Dict[str, Any]
    line_number: Optional[int] = None

    @property
    def word(self) -> Optional[Union[str, int]]:
        """Word reference (term or id) if present in params."""
        return self.params.get("word")

    @property
    def entity(self) -> Optional[str]:
        """Entity type for validate/reject/delete."""
        return self.params.get("entity")


@dataclass
class ChangeRequest:
    """Parsed change request from YAML."""
    actor_id: str
    changes: List[Change]
    can_moderate: bool = False
    atomic: bool = False
    session_name: Optional[str] = None
    session_description: Optional[str] = None
    source_file: Optional[Path] = None

    @property
    def actor(self) -> Actor:
        return Actor(id=self.actor_id, can_moderate=self.can_moderate)


@dataclass
class ValidationError:
    """Validation error for a specific change."""
    index: int
    operation: str
    field: str
    message: str
    line_number: Optional[int] = None


@dataclass
class ValidationWarning:
    """Validation warning for a specific change."""
    index: int
    operation: str
    message: str
    line_number: Optional[int] = None


@dataclass
class ValidationResult:
    """Result of validating a change request."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


@dataclass
class ChangeResult:
    """Result of executing a single change."""
    index: int
    operation: str
    success: bool
    message: str
    target: Optional[str] = None
    created_id: Optional[int] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Result of executing a batch change request."""
    session_name: Optional[str]
    total_count: int
    success_count: int
    failure_count: int
    changes: List[ChangeResult]
    duration_seconds: float
    dry_run: bool = False
    rolled_back: bool = False

    @property
    def skipped_count(self) -> int:
        return self.total_count - self.success_count - self.failure_count
