"""
Reading batch moderation requests from YAML.

A request names the acting user, an optional review session, whether it
must apply all-or-nothing, and the ordered list of changes. Only the
shape is checked here; operation names and their fields are left to
:mod:`wolofdict.batch.validator`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from .schema import Change, ChangeRequest

Source = Union[str, Path, Dict[str, Any]]


class ParseError(Exception):
    """A change request that is not well-formed YAML or has the wrong shape."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        super().__init__(message)


def load_change_request(source: Source) -> ChangeRequest:
    """Build a :class:`ChangeRequest` from a file, a YAML string or a mapping.

    Strings without a newline that contain a path separator or end in
    ``.yaml``/``.yml`` are treated as file names.

    Raises:
        ParseError: the document is malformed
        FileNotFoundError: a file name was given and nothing is there
    """
    data, path = _read_source(source)

    actor_id, can_moderate = _parse_actor(data.get("actor"))
    session = data.get("session") or {}
    if not isinstance(session, dict):
        raise ParseError("'session' must be a mapping with name/description")

    return ChangeRequest(
        actor_id=actor_id,
        can_moderate=can_moderate,
        changes=[
            _parse_change(number, item)
            for number, item in enumerate(_change_list(data), start=1)
        ],
        atomic=_flag(data, "atomic"),
        session_name=session.get("name"),
        session_description=session.get("description"),
        source_file=path,
    )


def load_yaml_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read the raw mapping from a YAML file without interpreting it."""
    with open(path, encoding="utf-8") as stream:
        return _load_mapping(stream, "file")


def _read_source(source: Source) -> Tuple[Dict[str, Any], Optional[Path]]:
    if isinstance(source, dict):
        return source, None
    if isinstance(source, Path) or _names_a_file(source):
        path = Path(source)
        if not path.is_file():
            raise FileNotFoundError(f"No change request at {path}")
        return load_yaml_file(path), path
    return _load_mapping(source, "content"), None


def _names_a_file(text: str) -> bool:
    if "\n" in text:
        return False
    return "/" in text or "\\" in text or text.endswith((".yaml", ".yml"))


def _load_mapping(stream: Any, what: str) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(stream)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise ParseError(
            f"Invalid YAML: {e}", line=mark.line + 1 if mark else None
        ) from e
    if data is None:
        raise ParseError(f"Empty YAML {what}")
    if not isinstance(data, dict):
        raise ParseError(
            f"A change request must be a mapping, not {type(data).__name__}"
        )
    return data


def _flag(data: Dict[str, Any], key: str, label: Optional[str] = None) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise ParseError(f"'{label or key}' must be true or false, got {value!r}")
    return value


def _parse_actor(actor: Any) -> Tuple[str, bool]:
    # "actor: user-1" or "actor: {id: mod-1, moderator: true}"
    if actor is None:
        raise ParseError("Missing required field: 'actor'")
    if isinstance(actor, (str, int)) and not isinstance(actor, bool):
        return str(actor), False
    if not isinstance(actor, dict):
        raise ParseError("'actor' must be a user id or a mapping with 'id'")

    actor_id = actor.get("id")
    if actor_id is None or not str(actor_id).strip():
        raise ParseError("Missing required field: 'actor.id'")
    return str(actor_id), _flag(actor, "moderator", "actor.moderator")


def _change_list(data: Dict[str, Any]) -> List[Any]:
    changes = data.get("changes")
    if changes is None:
        raise ParseError("Missing required field: 'changes'")
    if not isinstance(changes, list):
        raise ParseError("'changes' must be a list of operations")
    if not changes:
        raise ParseError("'changes' cannot be empty")
    return changes


def _parse_change(number: int, item: Any) -> Change:
    if not isinstance(item, dict):
        raise ParseError(f"Change {number}: expected a mapping, got {item!r}")
    operation = item.get("operation")
    if not isinstance(operation, str) or not operation:
        raise ParseError(f"Change {number}: 'operation' must be a non-empty string")
    params = {key: value for key, value in item.items() if key != "operation"}
    return Change(operation=operation, params=params)
