"""
Template variable substitution and dotted-path access.

Templates use ``{{ name }}`` markers. Paths use dot notation with an optional
``[n]`` index per segment, e.g. ``data.choices[0].message.content``.
"""

import json
import re
from typing import Any, Mapping, Optional

_MARKER_PATTERN = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")
_INDEXED_SEGMENT = re.compile(r"^(\w+)\[(\d+)\]$")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def escape_json_string(value: str) -> str:
    """Escape text so it can sit inside a JSON string literal."""
    return json.dumps(value, ensure_ascii=False)[1:-1]


def substitute(
    template: Optional[str],
    variables: Mapping[str, Any],
    escape_for_json: bool = False,
) -> str:
    """
    Replace every ``{{ name }}`` marker with the named variable.

    Markers without a matching variable are left untouched. Substituted text
    is inserted literally, so backslashes or group references inside values
    are never interpreted.

    Args:
        template: Template text; None yields an empty string
        variables: Values by name; non-strings are stringified
        escape_for_json: Escape each value for embedding in a JSON string

    Returns:
        str: The rendered template
    """
    if not isinstance(template, str) or not template:
        return ""

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        text = _stringify(variables[name])
        return escape_json_string(text) if escape_for_json else text

    return _MARKER_PATTERN.sub(_replace, template)


def _split_segment(segment: str) -> tuple[str, Optional[int]]:
    indexed = _INDEXED_SEGMENT.match(segment)
    if indexed:
        return indexed.group(1), int(indexed.group(2))
    return segment, None


def get_path(value: Any, path: Optional[str]) -> Any:
    """
    Resolve a dotted path against nested dicts and lists.

    Returns None as soon as a key is missing, an intermediate value is not a
    container, or an index is out of range. An empty path returns the value.
    """
    if not path:
        return value

    current = value
    for segment in path.split("."):
        if not isinstance(current, dict):
            return None
        key, index = _split_segment(segment)
        current = current.get(key)
        if index is not None:
            if not isinstance(current, list) or index >= len(current):
                return None
            current = current[index]
    return current


def set_path(obj: dict, path: str, value: Any) -> dict:
    """
    Assign a value at a dotted path, creating dicts and lists along the way.

    Args:
        obj: Root object, modified in place
        path: Dotted path, segments may carry an ``[n]`` index
        value: Value to store

    Returns:
        dict: The same root object
    """
    segments = path.split(".")
    current: dict = obj

    for position, segment in enumerate(segments):
        last = position == len(segments) - 1
        key, index = _split_segment(segment)

        if index is None:
            if last:
                current[key] = value
            else:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]
            continue

        if not isinstance(current.get(key), list):
            current[key] = []
        items = current[key]
        while len(items) <= index:
            items.append(None)
        if last:
            items[index] = value
        else:
            if not isinstance(items[index], dict):
                items[index] = {}
            current = items[index]

    return obj


__all__ = ["escape_json_string", "get_path", "set_path", "substitute"]
