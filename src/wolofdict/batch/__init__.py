"""
Batch moderation requests for wolofdict.

This module provides functionality to submit standardized change requests
in YAML format to moderate a dictionary database.

Example usage:
    from wolofdict import ModerationService
    from wolofdict.batch import (
        load_change_request,
        validate_change_request,
        execute_change_request,
    )

    service = ModerationService("dictionary.db")
    request = load_change_request("changes.yaml")

    # Validate before execution
    validation = validate_change_request(request, service=service)
    if not validation.is_valid:
        for error in validation.errors:
            print(f"[{error.index}] {error.operation}: {error.message}")

    result = execute_change_request(service, request)
    print(f"Applied {result.success_count}/{result.total_count} changes")
"""

from .schema import (
    # Enums and constants
    OperationType as OperationType,
    REQUIRED_FIELDS as REQUIRED_FIELDS,
    OPTIONAL_FIELDS as OPTIONAL_FIELDS,
    # Data classes
    Change as Change,
    ChangeRequest as ChangeRequest,
    ValidationError as ValidationError,
    ValidationWarning as ValidationWarning,
    ValidationResult as ValidationResult,
    ChangeResult as ChangeResult,
    BatchResult as BatchResult,
)

from .parser import (
    load_change_request as load_change_request,
    load_yaml_file as load_yaml_file,
    ParseError as ParseError,
)

from .validator import (
    validate_change_request as validate_change_request,
)

from .executor import (
    execute_change_request as execute_change_request,
)

__all__ = [
    # Enums and constants
    "OperationType",
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    # Data classes
    "Change",
    "ChangeRequest",
    "ValidationError",
    "ValidationWarning",
    "ValidationResult",
    "ChangeResult",
    "BatchResult",
    # Functions
    "load_change_request",
    "load_yaml_file",
    "validate_change_request",
    "execute_change_request",
    # Exceptions
    "ParseError",
]
