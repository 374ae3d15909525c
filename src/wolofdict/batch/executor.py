"""
Executor for batch moderation requests.

Applies changes to a dictionary database through a ModerationService.
"""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, List, Union

from ..exceptions import WolofDictError
from ..models import Actor, CategoryModel, WordModel
from .schema import (
    BatchResult,
    Change,
    ChangeRequest,
    ChangeResult,
    OperationType,
    WORD_FIELDS,
)

if TYPE_CHECKING:
    from ..service import ModerationService

logger = logging.getLogger(__name__)


class _Rollback(Exception):
    """Raised inside service.batch() to discard the transaction."""


def execute_change_request(
    service: ModerationService,
    request: ChangeRequest,
    dry_run: bool = False,
) -> BatchResult:
    """Execute a batch change request.

    Args:
        service: The service to apply the changes through
        request: The change request to execute
        dry_run: If True, run every change and then roll everything back

    Returns:
        BatchResult with details of each change

    Non-atomic requests commit each change on its own; a failed change is
    reported and the rest still run. Atomic requests stop at the first
    failure and roll back all earlier changes.
    """
    start_time = time.time()
    results: List[ChangeResult] = []
    actor = request.actor
    rolled_back = False

    if request.atomic or dry_run:
        try:
            with service.batch():
                for i, change in enumerate(request.changes):
                    result = _execute_change(service, change, i, actor)
                    results.append(result)
                    if request.atomic and not result.success:
                        raise _Rollback()
                if dry_run:
                    raise _Rollback()
        except _Rollback:
            rolled_back = True
    else:
        for i, change in enumerate(request.changes):
            results.append(_execute_change(service, change, i, actor))

    success_count = sum(1 for r in results if r.success)
    failure_count = sum(1 for r in results if not r.success)
    duration = time.time() - start_time

    logger.info(
        "Batch %r by %s: %d/%d change(s) succeeded%s",
        request.session_name or "(unnamed)",
        actor.id,
        success_count,
        len(request.changes),
        " (rolled back)" if rolled_back else "",
    )

    return BatchResult(
        session_name=request.session_name,
        total_count=len(request.changes),
        success_count=success_count,
        failure_count=failure_count,
        changes=results,
        duration_seconds=duration,
        dry_run=dry_run,
        rolled_back=rolled_back,
    )


def _execute_change(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute a single change operation.

    Returns:
        ChangeResult with success/failure status
    """
    op = change.operation

    try:
        if op == OperationType.CREATE_WORD.value:
            return _exec_create_word(service, change, index, actor)

        elif op == OperationType.UPDATE_WORD.value:
            return _exec_update_word(service, change, index, actor)

        elif op == OperationType.ADD_TRANSLATION.value:
            return _exec_add_translation(service, change, index, actor)

        elif op == OperationType.ADD_EXAMPLE.value:
            return _exec_add_example(service, change, index, actor)

        elif op == OperationType.ADD_CONJUGATION.value:
            return _exec_add_conjugation(service, change, index, actor)

        elif op in (OperationType.VALIDATE.value, OperationType.REJECT.value):
            return _exec_decision(service, change, index, actor)

        elif op == OperationType.DELETE.value:
            return _exec_delete(service, change, index, actor)

        elif op == OperationType.LINK_SYNONYM.value:
            return _exec_link_synonym(service, change, index, actor)

        elif op == OperationType.UNLINK_SYNONYM.value:
            return _exec_unlink_synonym(service, change, index, actor)

        elif op == OperationType.ASSIGN_CATEGORY.value:
            return _exec_assign_category(service, change, index, actor)

        elif op == OperationType.UNASSIGN_CATEGORY.value:
            return _exec_unassign_category(service, change, index, actor)

        else:
            return ChangeResult(
                index=index,
                operation=op,
                success=False,
                message=f"Unknown operation: {op}",
                error=f"Unknown operation: {op}",
            )

    except WolofDictError as e:
        logger.warning("Change #%d (%s) failed: %s", index + 1, op, e)
        return ChangeResult(
            index=index,
            operation=op,
            success=False,
            message=f"Error: {e}",
            error=str(e),
        )
    except Exception as e:
        logger.exception("Error executing change #%d (%s)", index + 1, op)
        return ChangeResult(
            index=index,
            operation=op,
            success=False,
            message=f"Error: {e}",
            error=str(e),
        )


def _resolve_word(service: ModerationService, ref: Union[str, int]) -> WordModel:
    """Words are referenced by term, or by id."""
    if isinstance(ref, int):
        return service.get_word(ref)
    return service.get_word_by_term(ref)


def _resolve_category(
    service: ModerationService, ref: Union[str, int]
) -> CategoryModel:
    if isinstance(ref, int):
        return service.get_category(ref)
    return service.get_category_by_name(ref)


def _pick(params: dict, names: List[str]) -> dict:
    return {name: params[name] for name in names if name in params}


def _exec_create_word(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute create_word operation."""
    word = service.create_word(
        change.params["term"], actor, **_pick(change.params, WORD_FIELDS)
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Created word '{word.term}' (letter {word.initial_letter})",
        target=word.term,
        created_id=word.id,
    )


def _exec_update_word(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute update_word operation."""
    word = _resolve_word(service, change.params["word"])
    fields = _pick(change.params, ["term", *WORD_FIELDS])
    updated = service.update_entity(
        "word", word.id, actor,
        expected_revision=change.params.get("expected_revision"),
        comment=change.params.get("comment"),
        **fields,
    )
    changed = sorted(k for k in fields if getattr(updated, k) != getattr(word, k))
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=(
            f"Updated {', '.join(changed)} of '{updated.term}' "
            f"(now {updated.validation_status})"
            if changed else f"No change to '{updated.term}'"
        ),
        target=updated.term,
    )


def _exec_add_translation(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute add_translation operation."""
    word = _resolve_word(service, change.params["word"])
    translation = service.create_translation(
        word.id,
        change.params["text"],
        actor,
        **_pick(change.params, ["context", "is_primary", "register", "notes"]),
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Added translation '{translation.text}' to '{word.term}'",
        target=word.term,
        created_id=translation.id,
    )


def _exec_add_example(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute add_example operation."""
    word = _resolve_word(service, change.params["word"])
    example = service.create_example(
        word.id,
        change.params["text_wolof"],
        change.params["text_french"],
        actor,
        **_pick(change.params, ["context", "source", "difficulty"]),
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Added example to '{word.term}'",
        target=word.term,
        created_id=example.id,
    )


def _exec_add_conjugation(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute add_conjugation operation."""
    word = _resolve_word(service, change.params["word"])
    conjugation = service.create_conjugation(
        word.id,
        change.params["tense"],
        change.params["person"],
        change.params["form"],
        actor,
        **_pick(change.params, ["is_regular", "aspect", "mood", "pronoun"]),
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=(
            f"Added conjugation '{conjugation.form}' "
            f"({conjugation.tense}, {conjugation.person}) to '{word.term}'"
        ),
        target=word.term,
        created_id=conjugation.id,
    )


def _entity_target(
    service: ModerationService, change: Change
) -> tuple[str, int, str]:
    """Resolve (entity_type, entity_id, label) for validate/reject/delete."""
    entity = change.params["entity"]
    if entity == "word" and change.params.get("word") is not None:
        word = _resolve_word(service, change.params["word"])
        return entity, word.id, word.term
    entity_id = change.params["id"]
    return entity, entity_id, f"{entity} {entity_id}"


def _exec_decision(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute validate / reject operations."""
    entity, entity_id, label = _entity_target(service, change)
    kwargs: dict[str, Any] = {
        "expected_revision": change.params.get("expected_revision"),
        "comment": change.params.get("comment"),
    }
    if change.operation == OperationType.VALIDATE.value:
        service.validate_entity(entity, entity_id, actor, **kwargs)
        verb = "Validated"
    else:
        service.reject_entity(entity, entity_id, actor, **kwargs)
        verb = "Rejected"
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"{verb} {entity} '{label}'",
        target=label,
    )


def _exec_delete(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute delete operation."""
    entity, entity_id, label = _entity_target(service, change)
    service.delete_entity(
        entity, entity_id, actor,
        expected_revision=change.params.get("expected_revision"),
        comment=change.params.get("comment"),
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Deleted {entity} '{label}'",
        target=label,
    )


def _exec_link_synonym(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute link_synonym operation."""
    word = _resolve_word(service, change.params["word"])
    other = _resolve_word(service, change.params["synonym"])
    edge = service.link_synonyms(
        word.id, other.id, actor,
        **_pick(change.params, ["strength", "language", "notes"]),
    )
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Linked '{word.term}' and '{other.term}' (strength {edge.strength})",
        target=word.term,
        created_id=edge.id,
    )


def _exec_unlink_synonym(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute unlink_synonym operation."""
    word = _resolve_word(service, change.params["word"])
    other = _resolve_word(service, change.params["synonym"])
    service.unlink_synonyms(word.id, other.id, actor)
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Unlinked '{word.term}' and '{other.term}'",
        target=word.term,
    )


def _exec_assign_category(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute assign_category operation."""
    word = _resolve_word(service, change.params["word"])
    category = _resolve_category(service, change.params["category"])
    assignment = service.assign_category(
        word.id, category.id, actor,
        is_main=change.params.get("main", False),
    )
    main = " (main)" if assignment.is_main_category else ""
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Assigned '{word.term}' to {category.name}{main}",
        target=word.term,
        created_id=assignment.id,
    )


def _exec_unassign_category(
    service: ModerationService,
    change: Change,
    index: int,
    actor: Actor,
) -> ChangeResult:
    """Execute unassign_category operation."""
    word = _resolve_word(service, change.params["word"])
    category = _resolve_category(service, change.params["category"])
    service.unassign_category(word.id, category.id, actor)
    return ChangeResult(
        index=index,
        operation=change.operation,
        success=True,
        message=f"Removed '{word.term}' from {category.name}",
        target=word.term,
    )
