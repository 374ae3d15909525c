"""
Command-line interface for batch moderation requests.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from ..alphabet import is_alphabet_letter
from ..exceptions import WolofDictError
from ..service import ModerationService
from .executor import execute_change_request
from .parser import ParseError, load_change_request
from .schema import BatchResult, ChangeRequest, ValidationResult
from .validator import validate_change_request

DEFAULT_DB_PATH = Path.home() / ".wolofdict.db"


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the wolofdict-moderation CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        service = ModerationService(args.db)
    except WolofDictError as e:
        print(f"\n  [ERROR] Cannot open {args.db}: {e}")
        return 1

    with service:
        return args.func(args, service)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--db",
        type=Path,
        default=DEFAULT_DB_PATH,
        help=f"Dictionary database (default: {DEFAULT_DB_PATH})",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log debug output to stderr",
    )

    parser = argparse.ArgumentParser(
        prog="wolofdict-moderation",
        description="Moderation and audit tool for the Wolof/French dictionary",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s (wolofdict-moderation)",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        parents=[common],
        help="Validate a change request file",
    )
    validate_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing change request",
    )
    validate_parser.add_argument(
        "--no-check-refs",
        action="store_true",
        help="Skip referential validation (word and category lookups)",
    )
    validate_parser.set_defaults(func=cmd_validate)

    # apply command
    apply_parser = subparsers.add_parser(
        "apply",
        parents=[common],
        help="Apply changes from a request file",
    )
    apply_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing change request",
    )
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run every change, then roll everything back",
    )
    apply_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    apply_parser.set_defaults(func=cmd_apply)

    # history command
    history_parser = subparsers.add_parser(
        "history",
        parents=[common],
        help="Show the contribution history of an entity",
    )
    history_parser.add_argument(
        "entity_type",
        choices=["word", "translation", "example", "conjugation", "phrase"],
        help="Entity type",
    )
    history_parser.add_argument(
        "entity_id",
        help="Entity id (or the term, for words)",
    )
    history_parser.set_defaults(func=cmd_history)

    # audit command
    audit_parser = subparsers.add_parser(
        "audit",
        parents=[common],
        help="Check the database for invariant violations",
    )
    audit_parser.set_defaults(func=cmd_audit)

    # letters command
    letters_parser = subparsers.add_parser(
        "letters",
        parents=[common],
        help="Show live word counts per alphabet letter",
    )
    letters_parser.set_defaults(func=cmd_letters)

    return parser


def _load(path: Path) -> Optional[ChangeRequest]:
    try:
        return load_change_request(path)
    except ParseError as e:
        print(f"\n  [PARSE ERROR] {e}")
        if e.line:
            print(f"               Line: {e.line}")
    except FileNotFoundError as e:
        print(f"\n  [ERROR] {e}")
    return None


def _print_request(request: ChangeRequest) -> None:
    role = "moderator" if request.can_moderate else "contributor"
    print(f"  Actor:   {request.actor_id} ({role})")
    print(f"  Changes: {len(request.changes)}")
    if request.atomic:
        print("  Mode:    atomic")
    if request.session_name:
        print(f"  Session: \"{request.session_name}\"")


def cmd_validate(args: argparse.Namespace, service: ModerationService) -> int:
    """Handle validate command."""
    print(f"\nValidating {args.file}...")

    request = _load(args.file)
    if request is None:
        return 1
    _print_request(request)

    result = validate_change_request(
        request, service=None if args.no_check_refs else service
    )

    print("\nValidation Results:")
    _print_validation_result(result)

    if result.is_valid:
        print("\nValidation passed!")
        return 0
    print(f"\nFound {result.error_count} error(s), {result.warning_count} warning(s)")
    return 1


def cmd_apply(args: argparse.Namespace, service: ModerationService) -> int:
    """Handle apply command."""
    print(f"\nLoading {args.file}...")

    request = _load(args.file)
    if request is None:
        return 1
    _print_request(request)

    print("\nValidating...")
    validation = validate_change_request(request, service=service)

    if not validation.is_valid:
        print("\nValidation failed:")
        _print_validation_result(validation)
        print(f"\nFound {validation.error_count} error(s). Fix errors before applying.")
        return 1

    if validation.warning_count > 0:
        print("\nWarnings:")
        _print_validation_result(validation, warnings_only=True)

    if args.dry_run:
        print("\n[DRY RUN] Changes will be rolled back...")
    elif not args.yes:
        response = input(f"\nApply {len(request.changes)} changes to {args.db}? [y/N] ")
        if response.lower() not in ("y", "yes"):
            print("Aborted.")
            return 1

    print(f"\n{'Simulating' if args.dry_run else 'Applying'} changes...")
    result = execute_change_request(service, request, dry_run=args.dry_run)

    _print_batch_result(result)

    if result.failure_count > 0:
        return 1
    return 0


def cmd_history(args: argparse.Namespace, service: ModerationService) -> int:
    """Handle history command."""
    try:
        if args.entity_id.isdigit():
            entity_id = int(args.entity_id)
        elif args.entity_type == "word":
            entity_id = service.get_word_by_term(args.entity_id).id
        else:
            print(f"\n  [ERROR] {args.entity_type} ids are numeric")
            return 1
        records = service.get_history(args.entity_type, entity_id)
    except WolofDictError as e:
        print(f"\n  [ERROR] {e}")
        return 1

    if not records:
        print(f"No contributions for {args.entity_type} {entity_id}.")
        return 0

    print(f"\nHistory of {args.entity_type} {entity_id} ({len(records)} entries):\n")
    print(f"{'ID':<6} {'Action':<9} {'User':<16} {'Timestamp':<24} {'Status'}")
    print("-" * 80)

    for record in records:
        status = ""
        if record.new_value and "validation_status" in record.new_value:
            status = record.new_value["validation_status"]
        user = record.user_id or "-"
        print(f"{record.id:<6} {record.action:<9} {user:<16} {record.timestamp:<24} {status}")
        if record.comment:
            print(f"       comment: {record.comment}")
        for effect in record.side_effects or []:
            print(f"       side effect: {effect}")

    return 0


def cmd_audit(args: argparse.Namespace, service: ModerationService) -> int:
    """Handle audit command."""
    results = service.validate()

    if not results:
        print("No problems found.")
        return 0

    errors = [r for r in results if r.severity == "ERROR"]
    for result in results:
        tag = "[ERROR]" if result.severity == "ERROR" else "[WARN] "
        print(
            f"  {tag} {result.rule_id} {result.entity_type} "
            f"{result.entity_id}: {result.message}"
        )

    print(f"\nFound {len(errors)} error(s), {len(results) - len(errors)} warning(s)")
    return 1 if errors else 0


def cmd_letters(args: argparse.Namespace, service: ModerationService) -> int:
    """Handle letters command."""
    counts = service.letter_counts()

    if not counts:
        print("No words.")
        return 0

    others = {k: v for k, v in counts.items() if not is_alphabet_letter(k)}
    for letter, count in counts.items():
        if letter not in others:
            print(f"  {letter:<3} {count}")
    if others:
        print("\nOutside the alphabet:")
        for letter, count in others.items():
            print(f"  {letter:<3} {count}")
    print(f"\nTotal: {sum(counts.values())}")
    return 0


def _print_validation_result(
    result: ValidationResult,
    warnings_only: bool = False,
) -> None:
    """Print validation errors and warnings."""
    if not warnings_only:
        for error in result.errors:
            line_info = f" (line {error.line_number})" if error.line_number else ""
            print(f"  [ERROR] Change #{error.index + 1} ({error.operation}): {error.message}{line_info}")
            if error.field:
                print(f"          Field: {error.field}")

    for warning in result.warnings:
        line_info = f" (line {warning.line_number})" if warning.line_number else ""
        print(f"  [WARN]  Change #{warning.index + 1} ({warning.operation}): {warning.message}{line_info}")


def _print_batch_result(result: BatchResult) -> None:
    """Print batch execution result."""
    print()
    for change in result.changes:
        idx = change.index + 1
        status = "OK" if change.success else "FAILED"
        print(f"  [{idx}/{result.total_count}] {change.operation}: {status}")
        if change.message:
            print(f"         {change.message}")

    print("\nResults:")
    print(f"  Total:   {result.total_count}")
    print(f"  Success: {result.success_count}")
    print(f"  Failed:  {result.failure_count}")
    if result.skipped_count:
        print(f"  Skipped: {result.skipped_count}")
    print(f"  Time:    {result.duration_seconds:.2f}s")

    if result.rolled_back:
        reason = "dry run" if result.dry_run else "atomic request failed"
        print(f"\nAll changes were rolled back ({reason}).")


if __name__ == "__main__":
    sys.exit(main())
