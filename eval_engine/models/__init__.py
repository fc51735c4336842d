"""
Models Package

Pydantic data models for test cases, execution targets and run results.
"""

from .base import EngineModel
from .target import (
    EndpointAuth,
    EndpointConfig,
    EndpointTarget,
    ModelParameters,
    PromptTarget,
    PromptVersion,
    Target,
)
from .test_case import (
    ConversationTurn,
    JudgeCriterion,
    JudgeValidationRule,
    LLMJudgeConfig,
    SessionConfig,
    TestCase,
    TokenExtraction,
    TokenInjection,
    ValidationRule,
    ValidationRuleType,
    VariableExtraction,
    normalize_tags,
)
from .test_run import (
    ModelOverride,
    RunProgress,
    RunSummary,
    TestCaseExecutionResult,
    TestRun,
    TurnResult,
)

__all__ = [
    "EngineModel",
    # Targets
    "EndpointAuth",
    "EndpointConfig",
    "EndpointTarget",
    "ModelParameters",
    "PromptTarget",
    "PromptVersion",
    "Target",
    # Test cases
    "ConversationTurn",
    "JudgeCriterion",
    "JudgeValidationRule",
    "LLMJudgeConfig",
    "SessionConfig",
    "TestCase",
    "TokenExtraction",
    "TokenInjection",
    "ValidationRule",
    "ValidationRuleType",
    "VariableExtraction",
    "normalize_tags",
    # Runs
    "ModelOverride",
    "RunProgress",
    "RunSummary",
    "TestCaseExecutionResult",
    "TestRun",
    "TurnResult",
]
