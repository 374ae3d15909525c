"""Custom exception hierarchy for wolofdict."""


class WolofDictError(Exception):
    """Base exception for all wolofdict errors."""


class ValidationError(WolofDictError):
    """Malformed input (empty term, strength out of range, unknown enum value)."""


class EntityNotFoundError(WolofDictError):
    """Entity doesn't exist in the database."""


class DuplicateEntityError(WolofDictError):
    """Entity with the same unique key already exists."""


class InvalidTransitionError(WolofDictError):
    """This action is not allowed in the entity's current state."""


class RelationError(WolofDictError):
    """Synonym or category edge constraint violation."""


class SelfLoopError(RelationError):
    """A word cannot be linked to itself."""


class DuplicateEdgeError(RelationError):
    """An edge already exists between the two endpoints."""


class EntityNotEligibleError(RelationError):
    """Endpoint is soft-deleted or rejected."""


class ConcurrentModificationError(WolofDictError):
    """Someone else changed this entity; re-fetch and retry."""


class LedgerError(WolofDictError):
    """The contribution ledger could not be written."""


class DatabaseError(WolofDictError):
    """Schema version mismatch, connection failure."""
