"""
Validation for batch moderation requests.

Provides both schema validation (required fields, types, enum values) and
referential validation (words and categories exist) against a
:class:`~wolofdict.service.ModerationService`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Optional, Set

from ..db import ENTITY_TABLES
from ..exceptions import EntityNotFoundError
from ..models import Difficulty, Register, SynonymLanguage
from ..synonyms import STRENGTH_RANGE
from .schema import (
    ENTITY_OPERATIONS,
    MODERATOR_OPERATIONS,
    OPTIONAL_FIELDS,
    REQUIRED_FIELDS,
    WORD_FIELDS,
    Change,
    ChangeRequest,
    OperationType,
    ValidationError,
    ValidationResult,
    ValidationWarning,
)

if TYPE_CHECKING:
    from ..service import ModerationService

logger = logging.getLogger(__name__)

_REGISTERS = sorted(r.value for r in Register)
_DIFFICULTIES = sorted(d.value for d in Difficulty)
_LANGUAGES = sorted(lang.value for lang in SynonymLanguage)
_BOOL_PARAMS = ("is_archaic", "is_primary", "is_regular", "main")


@dataclass
class _RequestState:
    """Terms touched by earlier changes of the same request."""
    created: Set[str] = field(default_factory=set)
    deleted: Set[str] = field(default_factory=set)
    renamed: Set[str] = field(default_factory=set)


def validate_change_request(
    request: ChangeRequest,
    service: Optional[ModerationService] = None,
) -> ValidationResult:
    """Validate a change request.

    Args:
        request: The change request to validate
        service: If given, verify word and category references against it

    Returns:
        ValidationResult with errors and warnings
    """
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []
    state = _RequestState()

    for i, change in enumerate(request.changes):
        change_errors, change_warnings = _validate_change(
            change, i, request, service, state
        )
        errors.extend(change_errors)
        warnings.extend(change_warnings)

    logger.debug(
        "Validated %d change(s): %d error(s), %d warning(s)",
        len(request.changes), len(errors), len(warnings),
    )
    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_change(
    change: Change,
    index: int,
    request: ChangeRequest,
    service: Optional[ModerationService],
    state: _RequestState,
) -> tuple[List[ValidationError], List[ValidationWarning]]:
    """Validate a single change operation.

    Returns:
        Tuple of (errors, warnings)
    """
    errors: List[ValidationError] = []
    warnings: List[ValidationWarning] = []

    valid_operations = {op.value for op in OperationType}
    if change.operation not in valid_operations:
        errors.append(_error(
            change, index, "operation",
            f"Unknown operation '{change.operation}'. "
            f"Valid: {', '.join(sorted(valid_operations))}",
        ))
        return errors, warnings

    op = change.operation
    for name in REQUIRED_FIELDS[op]:
        if change.params.get(name) is None:
            errors.append(_error(
                change, index, name, f"Missing required field '{name}'"
            ))
    if errors:
        return errors, warnings

    known = set(REQUIRED_FIELDS[op]) | set(OPTIONAL_FIELDS[op])
    for name in sorted(set(change.params) - known):
        warnings.append(_warning(change, index, f"Ignoring unknown field '{name}'"))

    for name in _BOOL_PARAMS:
        if name in change.params and not isinstance(change.params[name], bool):
            errors.append(_error(
                change, index, name, f"Field '{name}' must be true or false"
            ))

    if op == OperationType.CREATE_WORD.value:
        errors.extend(_validate_create_word(change, index, service, state))

    elif op == OperationType.UPDATE_WORD.value:
        e, w = _validate_update_word(change, index, service, state)
        errors.extend(e)
        warnings.extend(w)

    elif op in (
        OperationType.ADD_TRANSLATION.value,
        OperationType.ADD_EXAMPLE.value,
        OperationType.ADD_CONJUGATION.value,
    ):
        errors.extend(_validate_child_op(change, index, service, state))

    elif op in ENTITY_OPERATIONS:
        errors.extend(_validate_entity_op(change, index, request, service, state))

    elif op in (
        OperationType.LINK_SYNONYM.value,
        OperationType.UNLINK_SYNONYM.value,
    ):
        errors.extend(_validate_synonym_op(change, index, service, state))

    elif op in (
        OperationType.ASSIGN_CATEGORY.value,
        OperationType.UNASSIGN_CATEGORY.value,
    ):
        errors.extend(_validate_category_op(change, index, service, state))

    return errors, warnings


def _validate_create_word(
    change: Change,
    index: int,
    service: Optional[ModerationService],
    state: _RequestState,
) -> List[ValidationError]:
    """Validate create_word operation."""
    errors = _check_text(change, index, ["term"])
    errors.extend(_check_choice(change, index, "difficulty", _DIFFICULTIES))
    if errors:
        return errors

    term = change.params["term"].strip()
    if _term_taken(term, service, state):
        errors.append(_error(
            change, index, "term", f"Word '{term}' already exists"
        ))
    else:
        state.created.add(term)
        state.renamed.discard(term)
    return errors


def _validate_update_word(
    change: Change,
    index: int,
    service: Optional[ModerationService],
    state: _RequestState,
) -> tuple[List[ValidationError], List[ValidationWarning]]:
    """Validate update_word operation."""
    errors = _check_word_ref(change, index, "word", service, state)
    warnings: List[ValidationWarning] = []

    if not any(name in change.params for name in ["term", *WORD_FIELDS]):
        warnings.append(_warning(change, index, "No fields to update"))

    if "term" in change.params:
        term_errors = _check_text(change, index, ["term"])
        errors.extend(term_errors)
        if not term_errors:
            new_term = change.params["term"].strip()
            old = change.word
            if new_term != old and _term_taken(new_term, service, state):
                errors.append(_error(
                    change, index, "term", f"Word '{new_term}' already exists"
                ))
            elif isinstance(old, str):
                state.created.discard(old.strip())
                state.renamed.add(old.strip())
                state.created.add(new_term)
                state.renamed.discard(new_term)

    errors.extend(_check_choice(change, index, "difficulty", _DIFFICULTIES))
    errors.extend(_check_revision(change, index))
    return errors, warnings


def _validate_child_op(
    change: Change,
    index: int,
    service: Optional[ModerationService],
    state: _RequestState,
) -> List[ValidationError]:
    """Validate add_translation / add_example / add_conjugation operations."""
    errors = _check_word_ref(change, index, "word", service, state)
    op = change.operation

    if op == OperationType.ADD_TRANSLATION.value:
        errors.extend(_check_text(change, index, ["text"]))
        errors.extend(_check_choice(change, index, "register", _REGISTERS))
    elif op == OperationType.ADD_EXAMPLE.value:
        errors.extend(_check_text(change, index, ["text_wolof", "text_french"]))
        errors.extend(_check_choice(change, index, "difficulty", _DIFFICULTIES))
    else:
        errors.extend(_check_text(change, index, ["tense", "person", "form"]))
    return errors


def _validate_entity_op(
    change: Change,
    index: int,
    request: ChangeRequest,
    service: Optional[ModerationService],
    state: _RequestState,
) -> List[ValidationError]:
    """Validate validate / reject / delete operations."""
    errors: List[ValidationError] = []
    op = change.operation
    entity = change.entity

    if op in MODERATOR_OPERATIONS and not request.can_moderate:
        errors.append(_error(
            change, index, "actor",
            f"Actor '{request.actor_id}' lacks moderation capability for '{op}'",
        ))

    if entity not in ENTITY_TABLES:
        errors.append(_error(
            change, index, "entity",
            f"Invalid entity '{entity}'. Valid: {', '.join(sorted(ENTITY_TABLES))}",
        ))
        return errors

    errors.extend(_check_revision(change, index))

    if entity == "word" and change.word is not None:
        errors.extend(_check_word_ref(change, index, "word", service, state))
        if not errors and op == OperationType.DELETE.value and isinstance(change.word, str):
            state.deleted.add(change.word.strip())
            state.created.discard(change.word.strip())
        return errors

    entity_id = change.params.get("id")
    if entity_id is None:
        needed = "'word' or 'id'" if entity == "word" else "'id'"
        errors.append(_error(
            change, index, "id", f"{op} of a {entity} requires {needed}"
        ))
    elif not isinstance(entity_id, int) or isinstance(entity_id, bool):
        errors.append(_error(change, index, "id", "Field 'id' must be an integer"))
    elif service is not None:
        try:
            model = service.get_entity(entity, entity_id)
        except EntityNotFoundError:
            errors.append(_error(
                change, index, "id", f"{entity.capitalize()} {entity_id} not found"
            ))
        else:
            if model.deleted_at is not None:
                errors.append(_error(
                    change, index, "id", f"{entity.capitalize()} {entity_id} is deleted"
                ))
    return errors


def _validate_synonym_op(
    change: Change,
    index: int,
    service: Optional[ModerationService],
    state: _RequestState,
) -> List[ValidationError]:
    """Validate link_synonym / unlink_synonym operations."""
    errors = _check_word_ref(change, index, "word", service, state)
    errors.extend(_check_word_ref(change, index, "synonym", service, state))

    if change.params["word"] == change.params["synonym"]:
        errors.append(_error(
            change, index, "synonym", "A word cannot be its own synonym"
        ))

    if "strength" in change.params:
        strength = change.params["strength"]
        if (
            isinstance(strength, bool)
            or not isinstance(strength, int)
            or strength not in STRENGTH_RANGE
        ):
            errors.append(_error(
                change, index, "strength",
                f"Strength must be an integer between 1 and 10, got {strength!r}",
            ))
    errors.extend(_check_choice(change, index, "language", _LANGUAGES))
    return errors


def _validate_category_op(
    change: Change,
    index: int,
    service: Optional[ModerationService],
    state: _RequestState,
) -> List[ValidationError]:
    """Validate assign_category / unassign_category operations."""
    errors = _check_word_ref(change, index, "word", service, state)
    category = change.params["category"]

    if not isinstance(category, (str, int)) or isinstance(category, bool):
        errors.append(_error(
            change, index, "category",
            "Field 'category' must be a category name or id",
        ))
    elif service is not None:
        try:
            if isinstance(category, int):
                service.get_category(category)
            else:
                service.get_category_by_name(category)
        except EntityNotFoundError:
            errors.append(_error(
                change, index, "category", f"Category '{category}' not found"
            ))
    return errors


# =============================================================================
# Field helpers
# =============================================================================

def _check_text(
    change: Change, index: int, names: List[str]
) -> List[ValidationError]:
    errors = []
    for name in names:
        value = change.params.get(name)
        if not isinstance(value, str) or not value.strip():
            errors.append(_error(
                change, index, name, f"Field '{name}' must be a non-empty string"
            ))
    return errors


def _check_choice(
    change: Change, index: int, name: str, allowed: List[str]
) -> List[ValidationError]:
    value = change.params.get(name)
    if value is None or value in allowed:
        return []
    return [_error(
        change, index, name,
        f"Invalid {name} '{value}'. Valid: {', '.join(allowed)}",
    )]


def _check_revision(change: Change, index: int) -> List[ValidationError]:
    value = change.params.get("expected_revision")
    if value is None or (isinstance(value, int) and not isinstance(value, bool)):
        return []
    return [_error(
        change, index, "expected_revision",
        "Field 'expected_revision' must be an integer",
    )]


def _check_word_ref(
    change: Change,
    index: int,
    name: str,
    service: Optional[ModerationService],
    state: _RequestState,
) -> List[ValidationError]:
    """A word reference is a term or a numeric id of a live word."""
    ref = change.params.get(name)
    if isinstance(ref, bool) or not isinstance(ref, (str, int)):
        return [_error(
            change, index, name, f"Field '{name}' must be a word term or id"
        )]
    if isinstance(ref, str) and not ref.strip():
        return [_error(change, index, name, f"Field '{name}' must not be empty")]
    if service is None:
        return []

    if isinstance(ref, str):
        term = ref.strip()
        if term in state.created:
            return []
        if term in state.deleted or term in state.renamed:
            return [_error(
                change, index, name,
                f"Word '{term}' is deleted or renamed earlier in this request",
            )]
    if not _word_is_live(ref, service):
        return [_error(change, index, name, f"Word '{ref}' not found")]
    return []


def _word_is_live(ref: Any, service: ModerationService) -> bool:
    try:
        if isinstance(ref, int):
            word = service.get_word(ref)
        else:
            word = service.get_word_by_term(ref)
    except EntityNotFoundError:
        return False
    return word.deleted_at is None


def _term_taken(
    term: str,
    service: Optional[ModerationService],
    state: _RequestState,
) -> bool:
    if term in state.created or term in state.deleted:
        return True
    if term in state.renamed or service is None:
        return False
    try:
        service.get_word_by_term(term)
    except EntityNotFoundError:
        return False
    return True


def _error(change: Change, index: int, field_name: str, message: str) -> ValidationError:
    return ValidationError(
        index=index,
        operation=change.operation,
        field=field_name,
        message=message,
        line_number=change.line_number,
    )


def _warning(change: Change, index: int, message: str) -> ValidationWarning:
    return ValidationWarning(
        index=index,
        operation=change.operation,
        message=message,
        line_number=change.line_number,
    )
