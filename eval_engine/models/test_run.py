"""Run results: per-turn and per-case results, progress and the test run."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import Field

from .base import EngineModel

RunStatus = Literal["running", "completed", "failed"]


class ModelOverride(EngineModel):
    """Replaces the provider/model of every prompt version in a run."""

    provider: str
    model: str


class TurnResult(EngineModel):
    turn_index: int
    role: Literal["user", "assistant"]
    input: str
    output: str
    validation_passed: Optional[bool] = None
    validation_errors: Optional[List[str]] = None
    judge_score: Optional[float] = None
    judge_reasoning: Optional[str] = None
    response_time: int = 0
    error: Optional[str] = None
    extracted_variables: Optional[Dict[str, str]] = None


class TestCaseExecutionResult(EngineModel):
    """Outcome of executing one test case once."""

    __test__ = False

    test_case_id: str
    test_case_name: str
    inputs: Dict[str, str] = Field(default_factory=dict)
    output: str = ""
    extracted_content: Optional[str] = None
    validation_passed: bool = False
    validation_errors: List[str] = Field(default_factory=list)
    judge_score: Optional[float] = None
    judge_scores: Optional[Dict[str, float]] = None
    judge_reasoning: Optional[str] = None
    judge_validation_passed: Optional[bool] = None
    judge_validation_results: Optional[Dict[str, bool]] = None
    judge_validation_errors: Optional[List[str]] = None
    judge_validation_warnings: Optional[List[str]] = None
    response_time: int = 0
    error: Optional[str] = None
    iteration: Optional[int] = None
    is_conversation: bool = False
    turn_results: Optional[List[TurnResult]] = None
    total_turns: Optional[int] = None

    @property
    def passed(self) -> bool:
        """A case passes only when validation passed and no error occurred."""
        return self.validation_passed and not self.error


class RunProgress(EngineModel):
    """Emitted before a test case starts executing."""

    current: int
    total: int
    iteration: int
    test_case_id: str
    test_case_name: str


class RunSummary(EngineModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    avg_score: Optional[float] = None
    avg_response_time: int = 0


class TestRun(EngineModel):
    """A single execution of a batch of test cases."""

    __test__ = False

    id: str
    run_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    run_by: Optional[str] = None
    status: RunStatus = "running"
    note: Optional[str] = None
    iterations: Optional[int] = None
    model_override: Optional[ModelOverride] = None
    results: List[TestCaseExecutionResult] = Field(default_factory=list)
    summary: RunSummary = Field(default_factory=RunSummary)


__all__ = [
    "ModelOverride",
    "RunProgress",
    "RunStatus",
    "RunSummary",
    "TestCaseExecutionResult",
    "TestRun",
    "TurnResult",
]
