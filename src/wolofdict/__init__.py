__version__ = "0.1.0"

from .service import (
    ModerationService as ModerationService,
    EDITABLE_FIELDS as EDITABLE_FIELDS,
)

from .models import (
    Actor as Actor,
    ValidationStatus as ValidationStatus,
    EntityType as EntityType,
    ContributionAction as ContributionAction,
    SynonymLanguage as SynonymLanguage,
    Register as Register,
    Difficulty as Difficulty,
    ValidationSeverity as ValidationSeverity,
    WordModel as WordModel,
    TranslationModel as TranslationModel,
    ExampleModel as ExampleModel,
    ConjugationModel as ConjugationModel,
    PhraseModel as PhraseModel,
    CategoryModel as CategoryModel,
    WordCategoryModel as WordCategoryModel,
    SynonymModel as SynonymModel,
    ContributionRecord as ContributionRecord,
    ValidationResult as ValidationResult,
)

from .exceptions import (
    WolofDictError as WolofDictError,
    ValidationError as ValidationError,
    EntityNotFoundError as EntityNotFoundError,
    DuplicateEntityError as DuplicateEntityError,
    InvalidTransitionError as InvalidTransitionError,
    RelationError as RelationError,
    SelfLoopError as SelfLoopError,
    DuplicateEdgeError as DuplicateEdgeError,
    EntityNotEligibleError as EntityNotEligibleError,
    ConcurrentModificationError as ConcurrentModificationError,
    LedgerError as LedgerError,
    DatabaseError as DatabaseError,
)

from .alphabet import (
    WOLOF_ALPHABET as WOLOF_ALPHABET,
    bucket_of as bucket_of,
)

from .workflow import (
    ValidationStateMachine as ValidationStateMachine,
)

# Batch module - import as submodule to avoid naming conflicts
from . import batch

__all__ = [
    # Batch module
    "batch",
    # Service
    "ModerationService",
    "EDITABLE_FIELDS",
    "ValidationStateMachine",
    # Enums
    "ValidationStatus",
    "EntityType",
    "ContributionAction",
    "SynonymLanguage",
    "Register",
    "Difficulty",
    "ValidationSeverity",
    # Models
    "Actor",
    "WordModel",
    "TranslationModel",
    "ExampleModel",
    "ConjugationModel",
    "PhraseModel",
    "CategoryModel",
    "WordCategoryModel",
    "SynonymModel",
    "ContributionRecord",
    "ValidationResult",
    # Exceptions
    "WolofDictError",
    "ValidationError",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "InvalidTransitionError",
    "RelationError",
    "SelfLoopError",
    "DuplicateEdgeError",
    "EntityNotEligibleError",
    "ConcurrentModificationError",
    "LedgerError",
    "DatabaseError",
    # Alphabet
    "WOLOF_ALPHABET",
    "bucket_of",
]
