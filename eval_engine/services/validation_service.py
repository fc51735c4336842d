"""
Validation Service

Deterministic checks applied to a single output. Every rule is evaluated
independently and produces at most one error message.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from eval_engine.core.logger import get_logger
from eval_engine.models import ValidationRule, ValidationRuleType
from eval_engine.utils.json_utils import contains_json, is_json

logger = get_logger(__name__)


class ValidationOutcome(BaseModel):
    """Aggregated outcome of a rule list."""

    passed: bool = Field(..., description="True when no rule produced an error")
    errors: List[str] = Field(default_factory=list, description="One message per failing rule")


class SchemaError(Exception):
    """A JSON value does not satisfy its schema."""


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    return float(value)


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, float) and value.is_integer())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def check_schema(value: Any, schema: Dict[str, Any]) -> None:
    """
    Check a decoded JSON value against a schema subset.

    Supported keywords: type, required, properties, items, minItems,
    maxItems, minLength, maxLength, pattern, minimum, maximum, enum.

    Raises:
        SchemaError: With a message naming the first violation, prefixed by
            the property key or array index where it occurred.
    """
    expected = schema.get("type")
    if expected:
        actual = _json_type(value)
        if expected == "integer":
            if not _is_integer(value):
                raise SchemaError(f"Expected integer, got {actual}")
        elif actual != expected:
            raise SchemaError(f"Expected {expected}, got {actual}")

    if expected == "object" and isinstance(value, dict):
        required = schema.get("required")
        if isinstance(required, list):
            for prop in required:
                if prop not in value:
                    raise SchemaError(f"Missing required property: {prop}")

        properties = schema.get("properties")
        if isinstance(properties, dict):
            for key, prop_schema in properties.items():
                if key in value and isinstance(prop_schema, dict):
                    try:
                        check_schema(value[key], prop_schema)
                    except SchemaError as exc:
                        raise SchemaError(f"{key}: {exc}") from None

    if expected == "array" and isinstance(value, list):
        items = schema.get("items")
        if isinstance(items, dict):
            for index, item in enumerate(value):
                try:
                    check_schema(item, items)
                except SchemaError as exc:
                    raise SchemaError(f"[{index}]: {exc}") from None

        min_items = schema.get("minItems")
        if _is_number(min_items) and len(value) < min_items:
            raise SchemaError(f"Array too short: minimum {_fmt(min_items)} items required")
        max_items = schema.get("maxItems")
        if _is_number(max_items) and len(value) > max_items:
            raise SchemaError(f"Array too long: maximum {_fmt(max_items)} items allowed")

    if expected == "string" and isinstance(value, str):
        min_length = schema.get("minLength")
        if _is_number(min_length) and len(value) < min_length:
            raise SchemaError(f"String too short: minimum {_fmt(min_length)} characters")
        max_length = schema.get("maxLength")
        if _is_number(max_length) and len(value) > max_length:
            raise SchemaError(f"String too long: maximum {_fmt(max_length)} characters")
        pattern = schema.get("pattern")
        if isinstance(pattern, str) and not re.search(pattern, value):
            raise SchemaError(f"String must match pattern: {pattern}")

    if expected in ("number", "integer") and _is_number(value):
        minimum = schema.get("minimum")
        if _is_number(minimum) and value < minimum:
            raise SchemaError(f"Value too small: minimum {_fmt(minimum)}")
        maximum = schema.get("maximum")
        if _is_number(maximum) and value > maximum:
            raise SchemaError(f"Value too large: maximum {_fmt(maximum)}")

    enum = schema.get("enum")
    if isinstance(enum, list) and value not in enum:
        raise SchemaError(f"Value must be one of: {', '.join(_fmt(v) for v in enum)}")


def _json_schema_error(output: str, schema_value: Any) -> Optional[str]:
    try:
        parsed = json.loads(output)
    except (ValueError, RecursionError):
        return "Output is not valid JSON"

    if isinstance(schema_value, dict):
        schema = schema_value
    else:
        try:
            schema = json.loads(schema_value)
        except (TypeError, ValueError):
            return "Invalid JSON schema definition"
        if not isinstance(schema, dict):
            return "Invalid JSON schema definition"

    try:
        check_schema(parsed, schema)
    except SchemaError as exc:
        return str(exc)
    return None


# Each checker returns the default failure message, or None when the rule holds.
RuleChecker = Callable[[str, ValidationRule, Optional[float]], Optional[str]]


def _check_contains(output: str, rule: ValidationRule, _: Optional[float]) -> Optional[str]:
    if str(rule.value) not in output:
        return f'Must contain: "{rule.value}"'
    return None


def _check_excludes(output: str, rule: ValidationRule, _: Optional[float]) -> Optional[str]:
    if str(rule.value) in output:
        return f'Must not contain: "{rule.value}"'
    return None


def _check_min_length(output: str, rule: ValidationRule, _: Optional[float]) -> Optional[str]:
    if len(output) < _as_number(rule.value):
        return f"Output too short: minimum {_fmt(rule.value)} characters required"
    return None


def _check_max_length(output: str, rule: ValidationRule, _: Optional[float]) -> Optional[str]:
    if len(output) > _as_number(rule.value):
        return f"Output too long: maximum {_fmt(rule.value)} characters allowed"
    return None


def _check_regex(output: str, rule: ValidationRule, _: Optional[float]) -> Optional[str]:
    if not re.search(str(rule.value), output):
        return f"Must match pattern: {rule.value}"
    return None


def _check_json_schema(output: str, rule: ValidationRule, _: Optional[float]) -> Optional[str]:
    return _json_schema_error(output, rule.value)


def _check_max_response_time(
    output: str, rule: ValidationRule, response_time: Optional[float]
) -> Optional[str]:
    if response_time is not None and response_time > _as_number(rule.value):
        return (
            f"Response too slow: {_fmt(response_time)}ms exceeds maximum "
            f"{_fmt(rule.value)}ms"
        )
    return None


def _check_is_json(output: str, rule: ValidationRule, _: Optional[float]) -> Optional[str]:
    if not is_json(output):
        return "Output is not valid JSON"
    return None


def _check_contains_json(output: str, rule: ValidationRule, _: Optional[float]) -> Optional[str]:
    if not contains_json(output):
        return "Output does not contain valid JSON"
    return None


RULE_CHECKERS: Dict[ValidationRuleType, RuleChecker] = {
    ValidationRuleType.CONTAINS: _check_contains,
    ValidationRuleType.EXCLUDES: _check_excludes,
    ValidationRuleType.MIN_LENGTH: _check_min_length,
    ValidationRuleType.MAX_LENGTH: _check_max_length,
    ValidationRuleType.REGEX: _check_regex,
    ValidationRuleType.JSON_SCHEMA: _check_json_schema,
    ValidationRuleType.MAX_RESPONSE_TIME: _check_max_response_time,
    ValidationRuleType.IS_JSON: _check_is_json,
    ValidationRuleType.CONTAINS_JSON: _check_contains_json,
}


def validate(
    output: str,
    rules: Sequence[ValidationRule],
    response_time_ms: Optional[float] = None,
) -> ValidationOutcome:
    """
    Evaluate every rule against the output.

    A rule's own message replaces the generated one. A rule whose evaluation
    raises (an invalid regex, a non-numeric length) is reported as
    ``Validation rule error (<type>): <detail>``. Latency rules are skipped
    when no response time is given.

    Args:
        output: Text under test
        rules: Rules to apply, in order
        response_time_ms: Measured latency, if any

    Returns:
        ValidationOutcome: passed is True only when no rule failed
    """
    errors: List[str] = []

    for rule in rules:
        checker = RULE_CHECKERS[rule.type]
        try:
            failure = checker(output, rule, response_time_ms)
        except Exception as exc:
            logger.debug("Validation rule %s raised: %s", rule.type, exc)
            errors.append(f"Validation rule error ({rule.type}): {exc}")
            continue
        if failure is not None:
            errors.append(rule.message or failure)

    if errors:
        logger.debug("Validation failed with %d error(s)", len(errors))

    return ValidationOutcome(passed=not errors, errors=errors)


__all__ = ["SchemaError", "ValidationOutcome", "check_schema", "validate"]
