"""
Streaming Executor

Runs a batch of test cases over one or more iterations, reporting progress
and results through callbacks as they happen, and aggregates the outcome
into a TestRun.
"""

from __future__ import annotations

import asyncio
import math
import uuid
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from eval_engine.core.config import settings
from eval_engine.core.error_codes import ValidationErrorCode
from eval_engine.core.exceptions import ValidationException, describe_error
from eval_engine.core.logger import clear_run_id, get_logger, set_run_id
from eval_engine.models import (
    LLMJudgeConfig,
    ModelOverride,
    RunProgress,
    RunSummary,
    Target,
    TestCase,
    TestCaseExecutionResult,
    TestRun,
    ValidationRule,
    normalize_tags,
)
from eval_engine.services.parallel_executor import run_bounded
from eval_engine.services.test_case_executor import (
    ExecutionContext,
    TestCaseExecutor,
    error_result,
)

logger = get_logger(__name__)


class RunParams(BaseModel):
    """Everything needed to execute one run."""

    model_config = ConfigDict(protected_namespaces=())

    test_cases: List[TestCase]
    target: Target
    target_version: Optional[int] = None
    validation_rules: List[ValidationRule] = Field(default_factory=list)
    judge_config: LLMJudgeConfig = Field(default_factory=LLMJudgeConfig)
    credentials: Dict[str, str] = Field(default_factory=dict)
    model_override: Optional[ModelOverride] = None
    iterations: int = 1
    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    run_by: Optional[str] = None
    note: Optional[str] = None
    parallel_execution: bool = False
    max_concurrency: Optional[int] = None

    def to_context(self) -> ExecutionContext:
        return ExecutionContext(
            target=self.target,
            target_version=self.target_version,
            validation_rules=self.validation_rules,
            judge_config=self.judge_config,
            credentials=self.credentials,
            model_override=self.model_override,
        )


class RunCallbacks:
    """
    Receives live run events. Subclass and override what you need.

    Exceptions raised from these hooks are logged and never affect the run.
    """

    async def on_progress(self, progress: RunProgress) -> None:
        pass

    async def on_result(self, result: TestCaseExecutionResult) -> None:
        pass

    async def on_error(self, error: Exception, test_case_id: Optional[str] = None) -> None:
        pass


class StreamingRunResult(BaseModel):
    test_run: TestRun
    aborted: bool = False


def clamp_iterations(iterations: Optional[int]) -> int:
    """Clamp a requested iteration count to 1..max_iterations."""
    if not iterations:
        return 1
    return max(1, min(int(iterations), settings.execution__max_iterations))


def select_test_cases(
    test_cases: Sequence[TestCase],
    test_case_ids: Optional[Sequence[str]] = None,
    tags: Optional[Sequence[str]] = None,
) -> List[TestCase]:
    """
    Pick the cases a run should execute.

    Explicit IDs take precedence over tags; a tag filter keeps cases having
    any of the tags. Disabled cases are always dropped.

    Raises:
        ValidationException: When nothing is left to run
    """
    selected = list(test_cases)

    if test_case_ids:
        wanted = set(test_case_ids)
        selected = [case for case in selected if case.id in wanted]
        if not selected:
            raise ValidationException(
                "No test cases match the selected IDs",
                ValidationErrorCode.EMPTY_SELECTION,
                {"test_case_ids": list(test_case_ids)},
            )
    elif tags:
        wanted_tags = set(normalize_tags(tags))
        selected = [case for case in selected if wanted_tags.intersection(case.tags)]
        if not selected:
            raise ValidationException(
                "No test cases match the selected tags",
                ValidationErrorCode.EMPTY_SELECTION,
                {"tags": sorted(wanted_tags)},
            )

    selected = [case for case in selected if case.enabled]
    if not selected:
        raise ValidationException(
            "No enabled test cases to run", ValidationErrorCode.EMPTY_SELECTION
        )
    return selected


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


class _RunTally:
    def __init__(self) -> None:
        self.results: List[TestCaseExecutionResult] = []
        self.passed = 0
        self.failed = 0
        self.total_response_time = 0
        self.total_score = 0.0
        self.score_count = 0

    def record(self, result: TestCaseExecutionResult) -> None:
        self.results.append(result)
        if result.passed:
            self.passed += 1
        else:
            self.failed += 1
        self.total_response_time += result.response_time
        if result.judge_score is not None:
            self.total_score += result.judge_score
            self.score_count += 1

    def summary(self, total: int) -> RunSummary:
        avg_response_time = (
            int(_round_half_up(self.total_response_time / len(self.results)))
            if self.results
            else 0
        )
        avg_score = (
            _round_half_up(self.total_score / self.score_count, 2)
            if self.score_count
            else None
        )
        return RunSummary(
            total=total,
            passed=self.passed,
            failed=self.failed,
            avg_score=avg_score,
            avg_response_time=avg_response_time,
        )


class StreamingExecutor:
    """Executes runs and streams their progress."""

    def __init__(self, test_case_executor: Optional[TestCaseExecutor] = None) -> None:
        self.test_case_executor = test_case_executor or TestCaseExecutor()

    async def run(
        self,
        params: RunParams,
        callbacks: Optional[RunCallbacks] = None,
        abort_event: Optional[asyncio.Event] = None,
    ) -> StreamingRunResult:
        """
        Execute every test case for every iteration.

        Abort is honoured at iteration boundaries and between cases; work
        already in flight finishes and its results are kept. An aborted run
        ends with status ``failed``.
        """
        callbacks = callbacks or RunCallbacks()
        iterations = max(1, params.iterations)
        context = params.to_context()
        progress_total = len(params.test_cases) * iterations

        test_run = TestRun(
            id=params.run_id,
            run_by=params.run_by,
            note=params.note,
            iterations=iterations if iterations > 1 else None,
            model_override=params.model_override,
            summary=RunSummary(total=progress_total),
        )

        set_run_id(params.run_id)
        logger.info(
            "Starting run %s: %d case(s) x %d iteration(s), %s",
            params.run_id,
            len(params.test_cases),
            iterations,
            "parallel" if params.parallel_execution else "sequential",
        )

        tally = _RunTally()
        started_count = 0
        iterations_started = 0
        aborted = False

        def aborting() -> bool:
            return abort_event is not None and abort_event.is_set()

        try:
            for iteration in range(1, iterations + 1):
                if aborting():
                    aborted = True
                    break
                iterations_started += 1

                def tag(result: TestCaseExecutionResult) -> TestCaseExecutionResult:
                    if iterations > 1:
                        result.iteration = iteration
                    return result

                async def emit_progress(test_case: TestCase) -> None:
                    nonlocal started_count
                    started_count += 1
                    await self._notify(
                        callbacks.on_progress,
                        RunProgress(
                            current=started_count,
                            total=progress_total,
                            iteration=iteration,
                            test_case_id=test_case.id,
                            test_case_name=test_case.name,
                        ),
                    )

                if params.parallel_execution:
                    aborted = await self._run_parallel(
                        params, context, callbacks, abort_event, tally, tag, emit_progress
                    )
                    if aborted:
                        break
                    continue

                for test_case in params.test_cases:
                    if aborting():
                        aborted = True
                        break

                    await emit_progress(test_case)
                    try:
                        result = await self.test_case_executor.execute(test_case, context)
                    except Exception as exc:
                        logger.error("Test case %s raised: %s", test_case.id, exc)
                        await self._notify(callbacks.on_error, exc, test_case.id)
                        result = error_result(test_case, describe_error(exc))

                    tally.record(tag(result))
                    await self._notify(callbacks.on_result, result)

                if aborted:
                    break

            test_run.results = tally.results
            test_run.summary = tally.summary(len(params.test_cases) * iterations_started)
            test_run.status = "failed" if aborted else "completed"
            logger.info(
                "Run %s %s: %d passed, %d failed",
                params.run_id,
                "aborted" if aborted else "completed",
                test_run.summary.passed,
                test_run.summary.failed,
            )
            return StreamingRunResult(test_run=test_run, aborted=aborted)
        finally:
            clear_run_id()

    async def _run_parallel(
        self,
        params: RunParams,
        context: ExecutionContext,
        callbacks: RunCallbacks,
        abort_event: Optional[asyncio.Event],
        tally: _RunTally,
        tag,
        emit_progress,
    ) -> bool:
        async def execute_one(test_case: TestCase) -> TestCaseExecutionResult:
            return tag(await self.test_case_executor.execute(test_case, context))

        def make_error_result(test_case: TestCase, exc: Exception) -> TestCaseExecutionResult:
            return tag(error_result(test_case, describe_error(exc)))

        async def on_result(result: TestCaseExecutionResult, _index: int) -> None:
            await self._notify(callbacks.on_result, result)

        batch = await run_bounded(
            params.test_cases,
            execute_one,
            max_concurrency=params.max_concurrency or settings.execution__max_concurrency,
            make_error_result=make_error_result,
            on_progress=lambda _index, test_case: emit_progress(test_case),
            on_result=on_result,
            abort_event=abort_event,
        )
        for result in batch.results:
            tally.record(result)
        return batch.aborted

    @staticmethod
    async def _notify(hook, *args) -> None:
        try:
            await hook(*args)
        except Exception as exc:
            logger.warning("Run callback %s failed: %s", getattr(hook, "__name__", hook), exc)


__all__ = [
    "RunCallbacks",
    "RunParams",
    "StreamingExecutor",
    "StreamingRunResult",
    "clamp_iterations",
    "select_test_cases",
]
