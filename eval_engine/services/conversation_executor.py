"""
Conversation Executor

Drives a scripted multi-turn conversation against a prompt or endpoint
target, one turn at a time, then validates and judges the whole exchange.
"""

from __future__ import annotations

import time
from typing import Dict, List, Optional

from eval_engine.core.exceptions import describe_error
from eval_engine.core.logger import get_logger
from eval_engine.models import (
    ConversationTurn,
    EndpointTarget,
    PromptTarget,
    TestCase,
    TestCaseExecutionResult,
    TurnResult,
)
from eval_engine.services.endpoint_service import (
    EndpointService,
    build_headers,
    extract_output,
    http_status_error,
    render_body,
)
from eval_engine.services.judge_service import JudgeService
from eval_engine.services.llm_service import ChatMessage, LLMService
from eval_engine.services.session_manager import SessionManager
from eval_engine.services.test_case_executor import (
    ExecutionContext,
    apply_judging,
    resolve_model,
    resolve_prompt_version,
)
from eval_engine.services.validation_service import validate
from eval_engine.utils.variables import substitute

logger = get_logger(__name__)


def build_conversation_summary(
    inputs: Dict[str, str], turn_results: List[TurnResult]
) -> str:
    """Render variables and user/assistant exchanges for the judge."""
    lines: List[str] = []
    if inputs:
        lines.append("Variables:")
        lines.extend(f"  {key}: {value}" for key, value in inputs.items())
        lines.append("")

    lines.append("Conversation:")
    for turn in turn_results:
        if turn.role == "user":
            lines.append(f"  User: {turn.input}")
            lines.append(f"  Assistant: {turn.output}")
    return "\n".join(lines)


def _looks_like_body_template(content: str) -> bool:
    return content.strip().startswith("{") or "{{" in content


class _ConversationState:
    """Mutable bookkeeping for one conversation run."""

    def __init__(self) -> None:
        self.turn_results: List[TurnResult] = []
        self.total_response_time = 0
        self.last_output = ""
        self.validation_passed = True
        self.validation_errors: List[str] = []


class ConversationExecutor:
    """Runs conversational test cases turn by turn."""

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        endpoint_service: Optional[EndpointService] = None,
        judge_service: Optional[JudgeService] = None,
    ) -> None:
        self.llm_service = llm_service or LLMService()
        self.endpoint_service = endpoint_service or EndpointService()
        self.judge_service = judge_service or JudgeService(self.llm_service)

    async def execute(
        self, test_case: TestCase, context: ExecutionContext
    ) -> TestCaseExecutionResult:
        """
        Execute every turn in order and return the aggregated result.

        Any exception stops the remaining turns; the turns completed so far
        are returned together with the error.
        """
        state = _ConversationState()
        logger.debug(
            "Executing conversation %s with %d turn(s)",
            test_case.id,
            len(test_case.conversation),
        )

        try:
            if isinstance(context.target, PromptTarget):
                await self._run_prompt_turns(test_case, context, context.target, state)
            elif isinstance(context.target, EndpointTarget):
                await self._run_endpoint_turns(test_case, context, context.target, state)

            if test_case.validation_timing != "per-turn":
                rules = [*context.validation_rules, *test_case.validation_rules]
                if rules:
                    final = validate(state.last_output, rules, state.total_response_time)
                    state.validation_passed = final.passed
                    state.validation_errors.extend(final.errors)

            result = self._build_result(test_case, state)
            await apply_judging(
                self.judge_service,
                result,
                context,
                input_summary=build_conversation_summary(
                    test_case.inputs, state.turn_results
                ),
                expected=test_case.expected_output,
                judge_rules=[
                    *context.judge_config.validation_rules,
                    *test_case.judge_validation_rules,
                ],
            )
            return result

        except Exception as exc:
            message = describe_error(exc)
            logger.info("Conversation %s aborted: %s", test_case.id, message)
            result = self._build_result(test_case, state)
            result.validation_passed = False
            result.validation_errors = [message]
            result.error = message
            return result

    @staticmethod
    def _build_result(
        test_case: TestCase, state: _ConversationState
    ) -> TestCaseExecutionResult:
        return TestCaseExecutionResult(
            test_case_id=test_case.id,
            test_case_name=test_case.name,
            inputs=test_case.inputs,
            output=state.last_output,
            validation_passed=state.validation_passed,
            validation_errors=list(state.validation_errors),
            response_time=state.total_response_time,
            is_conversation=True,
            turn_results=list(state.turn_results),
            total_turns=len(test_case.conversation),
        )

    async def _run_prompt_turns(
        self,
        test_case: TestCase,
        context: ExecutionContext,
        target: PromptTarget,
        state: _ConversationState,
    ) -> None:
        version = resolve_prompt_version(target, context.target_version)
        provider, model = resolve_model(version, context.model_override)

        history: List[ChatMessage] = []
        if version.system_prompt:
            history.append(
                ChatMessage(
                    role="system",
                    content=substitute(version.system_prompt, test_case.inputs),
                )
            )

        for index, turn in enumerate(test_case.conversation):
            if turn.role == "assistant":
                simulated = turn.simulated_response or turn.content
                history.append(ChatMessage(role="assistant", content=simulated))
                state.turn_results.append(
                    TurnResult(
                        turn_index=index,
                        role="assistant",
                        input="(simulated)",
                        output=simulated,
                    )
                )
                continue

            user_content = substitute(turn.content, {**test_case.inputs, **turn.inputs})
            history.append(ChatMessage(role="user", content=user_content))

            started = time.perf_counter()
            completion = await self.llm_service.complete(
                provider=provider,
                model=model,
                messages=list(history),
                credentials=context.credentials,
                temperature=version.llm_config.temperature,
                max_tokens=version.llm_config.max_tokens,
            )
            response_time = round((time.perf_counter() - started) * 1000)
            state.total_response_time += response_time
            state.last_output = completion.content
            history.append(ChatMessage(role="assistant", content=completion.content))

            turn_result = TurnResult(
                turn_index=index,
                role="user",
                input=user_content,
                output=completion.content,
                response_time=response_time,
            )
            if test_case.validation_timing == "per-turn":
                await self._validate_turn(turn_result, turn, context, state)
            state.turn_results.append(turn_result)

    async def _run_endpoint_turns(
        self,
        test_case: TestCase,
        context: ExecutionContext,
        target: EndpointTarget,
        state: _ConversationState,
    ) -> None:
        config = target.config
        session = (
            SessionManager(test_case.session_config)
            if test_case.session_config and test_case.session_config.enabled
            else None
        )

        for index, turn in enumerate(test_case.conversation):
            if turn.role == "assistant":
                state.turn_results.append(
                    TurnResult(
                        turn_index=index,
                        role="assistant",
                        input="(expected)",
                        output=turn.simulated_response or turn.content,
                    )
                )
                continue

            variables = {
                **test_case.inputs,
                **turn.inputs,
                **(session.get_variables() if session else {}),
            }
            user_content = substitute(turn.content, variables)

            headers = build_headers(config)
            template = (
                turn.content
                if _looks_like_body_template(turn.content)
                else config.body_template
            )
            body = render_body(config.method, template, variables, headers)
            url = config.url

            if session:
                prepared = session.apply_to_request(headers, body, url)
                headers, body, url = prepared.headers, prepared.body, prepared.url

            sent = await self.endpoint_service.send(config.method, url, headers, body)
            state.total_response_time += sent.response_time

            if session:
                session.process_response(sent.response, sent.body)

            output, _ = extract_output(config, sent.body)
            state.last_output = output

            if not sent.ok:
                raise http_status_error(sent.response, output)

            turn_result = TurnResult(
                turn_index=index,
                role="user",
                input=user_content,
                output=output,
                response_time=sent.response_time,
                extracted_variables=session.get_variables() if session else None,
            )
            if test_case.validation_timing == "per-turn":
                await self._validate_turn(turn_result, turn, context, state, judge_turn=False)
            state.turn_results.append(turn_result)

    async def _validate_turn(
        self,
        turn_result: TurnResult,
        turn: ConversationTurn,
        context: ExecutionContext,
        state: _ConversationState,
        judge_turn: bool = True,
    ) -> None:
        """Apply suite and turn rules to one turn, then its judge gates if judge_turn."""
        turn_number = turn_result.turn_index + 1
        rules = [*context.validation_rules, *turn.validation_rules]
        outcome = validate(turn_result.output, rules, turn_result.response_time)
        turn_result.validation_passed = outcome.passed
        turn_result.validation_errors = list(outcome.errors)
        if not outcome.passed:
            state.validation_passed = False
            state.validation_errors.extend(
                f"Turn {turn_number}: {error}" for error in outcome.errors
            )

        if judge_turn and context.judge_config.enabled and turn.judge_validation_rules:
            gated = await self.judge_service.judge_validate(
                turn_result.input,
                turn_result.output,
                turn.judge_validation_rules,
                context.judge_config,
                context.credentials,
            )
            if not gated.passed:
                turn_result.validation_passed = False
                turn_result.validation_errors.extend(gated.errors)
                state.validation_passed = False
                state.validation_errors.extend(
                    f"Turn {turn_number}: {error}" for error in gated.errors
                )


__all__ = ["ConversationExecutor", "build_conversation_summary"]
