"""Validation state machine for moderatable content.

States are ``pending``, ``validated`` and ``rejected``. Moderators move
pending content to validated or rejected; editing the content of a judged
record sends it back to pending. Nothing else is a legal transition.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from wolofdict.exceptions import InvalidTransitionError, ValidationError
from wolofdict.models import Actor, ContributionAction, ValidationStatus

logger = logging.getLogger(__name__)

# Fields whose edit invalidates an earlier moderation decision.
CONTENT_FIELDS: dict[str, frozenset[str]] = {
    "word": frozenset({"term"}),
    "translation": frozenset({"text"}),
    "example": frozenset({"text_wolof", "text_french"}),
    "conjugation": frozenset({"form"}),
    "phrase": frozenset({"wolof", "francais"}),
}

_DECISIONS: dict[str, ValidationStatus] = {
    ContributionAction.VALIDATE.value: ValidationStatus.VALIDATED,
    ContributionAction.REJECT.value: ValidationStatus.REJECTED,
}


@dataclass(frozen=True, slots=True)
class Transition:
    """Outcome of a state machine step, ready to be written to a row."""

    from_status: str
    to_status: str
    validation_date: str | None
    validated_by: str | None

    @property
    def changed(self) -> bool:
        return self.from_status != self.to_status


class ValidationStateMachine:
    """Computes legal status changes; never touches storage."""

    initial_status = ValidationStatus.PENDING.value

    def decide(
        self,
        entity_type: str,
        current_status: str,
        action: str,
        actor: Actor,
        now: str,
    ) -> Transition:
        """Apply an explicit validate/reject request.

        The moderation capability comes from the caller's auth provider;
        an actor without it is refused like any other illegal transition.
        """
        target = _DECISIONS.get(action)
        if target is None:
            raise ValidationError(f"Not a moderation decision: {action!r}")
        if not actor.can_moderate:
            raise InvalidTransitionError(
                f"Actor {actor.id!r} may not {action} a {entity_type}"
            )
        if current_status != ValidationStatus.PENDING.value:
            raise InvalidTransitionError(
                f"Cannot {action} a {entity_type} that is {current_status}; "
                "only pending content can be judged"
            )
        logger.debug(
            "%s: %s -> %s by %s",
            entity_type, current_status, target.value, actor.id,
        )
        return Transition(
            from_status=current_status,
            to_status=target.value,
            validation_date=now,
            validated_by=actor.id,
        )

    def after_edit(
        self,
        entity_type: str,
        current_status: str,
        changed_fields: Iterable[str],
        *,
        validation_date: str | None,
        validated_by: str | None,
    ) -> Transition:
        """Status after an update touching ``changed_fields``.

        Editing content of judged content returns it to pending. The last
        decision's ``validation_date``/``validated_by`` are kept as history.
        """
        content = CONTENT_FIELDS[entity_type]
        touches_content = any(f in content for f in changed_fields)
        if touches_content and current_status != ValidationStatus.PENDING.value:
            logger.debug(
                "%s: content edited, %s -> pending", entity_type, current_status
            )
            to_status = ValidationStatus.PENDING.value
        else:
            to_status = current_status
        return Transition(
            from_status=current_status,
            to_status=to_status,
            validation_date=validation_date,
            validated_by=validated_by,
        )

    @staticmethod
    def ensure_live(entity_type: str, entity_id: int, deleted_at: str | None) -> None:
        """Soft-deleted records are frozen for audit."""
        if deleted_at is not None:
            raise InvalidTransitionError(
                f"{entity_type.capitalize()} {entity_id} was deleted at {deleted_at}"
            )
