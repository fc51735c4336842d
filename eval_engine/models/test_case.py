"""Test case definitions: cases, conversation turns and validation rules."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator

from .base import EngineModel

Severity = Literal["fail", "warning"]
ValidationTiming = Literal["per-turn", "final-only"]


class ValidationRuleType(StrEnum):
    """Deterministic rule kinds understood by the validation service."""

    CONTAINS = "contains"
    EXCLUDES = "excludes"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    REGEX = "regex"
    JSON_SCHEMA = "jsonSchema"
    MAX_RESPONSE_TIME = "maxResponseTime"
    IS_JSON = "isJson"
    CONTAINS_JSON = "containsJson"


class ValidationRule(EngineModel):
    """A deterministic check applied to an output."""

    type: ValidationRuleType
    value: Any = None
    message: Optional[str] = None
    severity: Severity = "fail"


class JudgeCriterion(EngineModel):
    """A weighted scoring dimension for the LLM judge."""

    name: str
    description: str
    weight: float = Field(default=1.0, ge=0.0, le=1.0)


class JudgeValidationRule(EngineModel):
    """A pass/fail gate decided by the LLM judge."""

    name: str
    description: str
    failure_message: Optional[str] = None
    severity: Severity = "fail"


class LLMJudgeConfig(EngineModel):
    """Suite-level judge configuration."""

    enabled: bool = False
    provider: Optional[str] = None
    model: Optional[str] = None
    criteria: List[JudgeCriterion] = Field(default_factory=list)
    validation_rules: List[JudgeValidationRule] = Field(default_factory=list)
    min_score: Optional[float] = Field(default=0.7, ge=0.0, le=1.0)


class TokenInjection(EngineModel):
    """Where an extracted session token is placed on later requests."""

    type: Literal["header", "body", "query"]
    target: str
    prefix: Optional[str] = None


class TokenExtraction(EngineModel):
    enabled: bool = False
    response_path: str
    injection: TokenInjection


class VariableExtraction(EngineModel):
    name: str
    response_path: str


class SessionConfig(EngineModel):
    """Per-conversation session handling for endpoint targets."""

    enabled: bool = False
    persist_cookies: bool = True
    token_extraction: Optional[TokenExtraction] = None
    variable_extraction: List[VariableExtraction] = Field(default_factory=list)


class ConversationTurn(EngineModel):
    """A single scripted turn in a conversational test case."""

    role: Literal["user", "assistant"]
    content: str = ""
    inputs: Dict[str, str] = Field(default_factory=dict)
    simulated_response: Optional[str] = None
    validation_rules: List[ValidationRule] = Field(default_factory=list)
    judge_validation_rules: List[JudgeValidationRule] = Field(default_factory=list)


def normalize_tags(tags: List[str]) -> List[str]:
    """Trim and lowercase tags, dropping empty ones."""
    return [tag.strip().lower() for tag in tags if tag and tag.strip()]


class TestCase(EngineModel):
    """A single test scenario, single-turn or conversational."""

    __test__ = False

    id: str
    name: str
    inputs: Dict[str, str] = Field(default_factory=dict)
    expected_output: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    enabled: bool = True
    validation_rules: List[ValidationRule] = Field(default_factory=list)
    judge_validation_rules: List[JudgeValidationRule] = Field(default_factory=list)
    is_conversation: bool = False
    conversation: List[ConversationTurn] = Field(default_factory=list)
    validation_timing: ValidationTiming = "final-only"
    session_config: Optional[SessionConfig] = None

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: List[str]) -> List[str]:
        return normalize_tags(value)


__all__ = [
    "ConversationTurn",
    "JudgeCriterion",
    "JudgeValidationRule",
    "LLMJudgeConfig",
    "SessionConfig",
    "Severity",
    "TestCase",
    "TokenExtraction",
    "TokenInjection",
    "ValidationRule",
    "ValidationRuleType",
    "ValidationTiming",
    "VariableExtraction",
    "normalize_tags",
]
