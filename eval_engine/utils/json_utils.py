"""Helpers for locating JSON inside free-form model output."""

import json
import re
from typing import Any, Iterator, Optional

_FENCE_PATTERN = re.compile(r"```[a-zA-Z0-9_-]*\s*\n?(.*?)```", re.DOTALL)
_decoder = json.JSONDecoder()


def strip_code_fence(text: str) -> str:
    """Return the body of a fenced code block when the text is one, else the text."""
    stripped = text.strip()
    match = _FENCE_PATTERN.fullmatch(stripped)
    return match.group(1).strip() if match else stripped


def is_json(text: str) -> bool:
    """True when the whole text (optionally fenced) parses as JSON."""
    try:
        json.loads(strip_code_fence(text))
    except (ValueError, RecursionError):
        return False
    return True


def _iter_embedded(text: str, openers: str) -> Iterator[Any]:
    for position, char in enumerate(text):
        if char not in openers:
            continue
        try:
            value, _ = _decoder.raw_decode(text, position)
        except (ValueError, RecursionError):
            continue
        yield value


def contains_json(text: str) -> bool:
    """True when the text embeds a JSON object or array, fenced or inline."""
    candidates = [match.group(1) for match in _FENCE_PATTERN.finditer(text)]
    candidates.append(text)
    for candidate in candidates:
        for value in _iter_embedded(candidate, "{["):
            if isinstance(value, (dict, list)):
                return True
    return False


def find_json_object(text: str) -> Optional[dict]:
    """Return the first JSON object embedded in the text, or None."""
    for value in _iter_embedded(text, "{"):
        if isinstance(value, dict):
            return value
    return None


__all__ = ["contains_json", "find_json_object", "is_json", "strip_code_fence"]
