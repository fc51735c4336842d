"""
Utilities Package

Template substitution, dotted paths and JSON extraction helpers.
"""

from .json_utils import contains_json, find_json_object, is_json, strip_code_fence
from .variables import escape_json_string, get_path, set_path, substitute

__all__ = [
    "contains_json",
    "escape_json_string",
    "find_json_object",
    "get_path",
    "is_json",
    "set_path",
    "strip_code_fence",
    "substitute",
]
