import json

import httpx
import pytest
from conftest import FakeLLMService, make_case, make_endpoint_target, make_prompt_target

from eval_engine.core.error_codes import LLMErrorCode
from eval_engine.core.exceptions import LLMCallException
from eval_engine.models import (
    JudgeCriterion,
    JudgeValidationRule,
    LLMJudgeConfig,
    ModelOverride,
    PromptTarget,
    ValidationRule,
)
from eval_engine.services.endpoint_service import EndpointService
from eval_engine.services.test_case_executor import ExecutionContext, TestCaseExecutor


def judge_reply(**scores):
    return json.dumps(
        {
            "scores": {name: {"score": value, "reason": "r"} for name, value in scores.items()},
            "overall_reasoning": "judged",
        }
    )


@pytest.mark.asyncio
async def test_prompt_case_substitutes_inputs_and_validates():
    llm = FakeLLMService(["Hello, Ada!"])
    executor = TestCaseExecutor(llm_service=llm)
    context = ExecutionContext(
        target=make_prompt_target(system_prompt="You greet people from {{city}}."),
        validation_rules=[ValidationRule(type="contains", value="Ada")],
    )
    case = make_case(
        inputs={"name": "Ada", "city": "London"},
        validation_rules=[ValidationRule(type="maxLength", value=50)],
    )

    result = await executor.execute(case, context)

    assert result.passed is True
    assert result.output == "Hello, Ada!"
    assert result.error is None
    messages = llm.calls[0]["messages"]
    assert [m.role for m in messages] == ["system", "user"]
    assert messages[0].content == "You greet people from London."
    assert messages[1].content == "Say hello to Ada."
    assert llm.calls[0]["provider"] == "openai"


@pytest.mark.asyncio
async def test_model_override_replaces_version_model():
    llm = FakeLLMService(["ok"])
    executor = TestCaseExecutor(llm_service=llm)
    context = ExecutionContext(
        target=make_prompt_target(),
        model_override=ModelOverride(provider="anthropic", model="claude-sonnet"),
        credentials={"anthropic": "key"},
    )

    await executor.execute(make_case(inputs={"name": "Bo"}), context)

    assert llm.calls[0]["provider"] == "anthropic"
    assert llm.calls[0]["model"] == "claude-sonnet"
    assert llm.calls[0]["credentials"] == {"anthropic": "key"}


@pytest.mark.asyncio
async def test_validation_failure_is_not_an_error():
    executor = TestCaseExecutor(llm_service=FakeLLMService(["Goodbye"]))
    context = ExecutionContext(
        target=make_prompt_target(),
        validation_rules=[ValidationRule(type="contains", value="Hello")],
    )

    result = await executor.execute(make_case(inputs={"name": "Ada"}), context)

    assert result.validation_passed is False
    assert result.validation_errors == ['Must contain: "Hello"']
    assert result.error is None


@pytest.mark.asyncio
async def test_llm_failure_becomes_error_result(monkeypatch):
    llm = FakeLLMService()

    async def failing_complete(**_):
        raise LLMCallException("LLM request to openai:gpt-4o-mini failed", LLMErrorCode.REQUEST_FAILED)

    monkeypatch.setattr(llm, "complete", failing_complete)
    executor = TestCaseExecutor(llm_service=llm)

    result = await executor.execute(
        make_case(inputs={"name": "Ada"}), ExecutionContext(target=make_prompt_target())
    )

    assert result.validation_passed is False
    assert result.error == "LLM request to openai:gpt-4o-mini failed"
    assert result.validation_errors == [result.error]
    assert result.output == ""


@pytest.mark.asyncio
async def test_missing_prompt_version_is_reported():
    executor = TestCaseExecutor(llm_service=FakeLLMService())
    target = PromptTarget(id="p", name="Empty")

    result = await executor.execute(make_case(), ExecutionContext(target=target))

    assert result.error == "No prompt version found"


@pytest.mark.asyncio
async def test_judge_score_below_threshold_fails_case():
    llm = FakeLLMService(["Hi Ada", judge_reply(quality=4)])
    executor = TestCaseExecutor(llm_service=llm)
    context = ExecutionContext(
        target=make_prompt_target(),
        judge_config=LLMJudgeConfig(
            enabled=True,
            criteria=[JudgeCriterion(name="quality", description="Overall quality")],
            min_score=0.7,
        ),
    )

    result = await executor.execute(make_case(inputs={"name": "Ada"}), context)

    assert result.judge_score == 0.4
    assert result.judge_scores == {"quality": 4}
    assert result.judge_reasoning == "judged"
    assert result.validation_passed is False
    assert result.validation_errors == ["Judge score 40% is below minimum threshold of 70%"]
    assert result.error is None


@pytest.mark.asyncio
async def test_judge_gates_merge_suite_and_case_rules():
    gate_reply = json.dumps(
        {"results": {"suite_rule": {"passed": True}, "case_rule": {"passed": False}}}
    )
    llm = FakeLLMService(["Output", gate_reply])
    executor = TestCaseExecutor(llm_service=llm)
    context = ExecutionContext(
        target=make_prompt_target(),
        judge_config=LLMJudgeConfig(
            enabled=True,
            validation_rules=[JudgeValidationRule(name="suite_rule", description="s")],
        ),
    )
    case = make_case(
        inputs={"name": "Ada"},
        judge_validation_rules=[
            JudgeValidationRule(name="case_rule", description="c", failure_message="Case gate")
        ],
    )

    result = await executor.execute(case, context)

    assert result.judge_validation_passed is False
    assert result.judge_validation_results == {"suite_rule": True, "case_rule": False}
    assert result.validation_errors == ["Case gate"]
    assert result.judge_score is None
    gate_prompt = llm.calls[1]["messages"][-1].content
    assert "1. suite_rule: s" in gate_prompt
    assert "2. case_rule: c" in gate_prompt


@pytest.mark.asyncio
async def test_endpoint_case_uses_http_target():
    def handler(request):
        payload = json.loads(request.content)
        return httpx.Response(200, json={"reply": f"echo {payload['text']}"})

    executor = TestCaseExecutor(
        llm_service=FakeLLMService(),
        endpoint_service=EndpointService(transport=httpx.MockTransport(handler)),
    )
    context = ExecutionContext(
        target=make_endpoint_target(
            body_template='{"text": "{{question}}"}', response_content_path="reply"
        ),
        validation_rules=[ValidationRule(type="contains", value="echo")],
    )

    result = await executor.execute(make_case(inputs={"question": "ping"}), context)

    assert result.passed is True
    assert result.output == "echo ping"
    assert result.extracted_content == "echo ping"


@pytest.mark.asyncio
async def test_endpoint_error_status_becomes_error_result():
    executor = TestCaseExecutor(
        llm_service=FakeLLMService(),
        endpoint_service=EndpointService(
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        ),
    )

    result = await executor.execute(
        make_case(), ExecutionContext(target=make_endpoint_target())
    )

    assert result.error == "HTTP 500 Internal Server Error: boom"
    assert result.passed is False


@pytest.mark.asyncio
async def test_unparseable_output_is_a_validation_failure_not_an_error():
    deep = "[" * 100000 + "]" * 100000
    executor = TestCaseExecutor(llm_service=FakeLLMService([deep]))
    context = ExecutionContext(
        target=make_prompt_target(),
        validation_rules=[ValidationRule(type="isJson")],
    )

    result = await executor.execute(make_case(inputs={"name": "Ada"}), context)

    assert result.error is None
    assert result.output == deep
    assert result.validation_passed is False
    assert result.validation_errors == ["Output is not valid JSON"]
