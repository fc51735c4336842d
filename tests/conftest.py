import asyncio
from typing import Callable, List, Optional, Union

import pytest

from eval_engine.models import (
    EndpointConfig,
    EndpointTarget,
    ModelParameters,
    PromptTarget,
    PromptVersion,
    TestCase,
    TestCaseExecutionResult,
)
from eval_engine.services.llm_service import ChatMessage, LLMCompletion


class FakeLLMService:
    """Returns scripted replies and records every call."""

    def __init__(self, replies: Union[List[str], Callable[[List[ChatMessage]], str], None] = None):
        self.replies = replies if replies is not None else []
        self.calls: List[dict] = []

    async def complete(self, *, provider, model, messages, credentials=None, temperature=None, max_tokens=None):
        self.calls.append(
            {
                "provider": provider,
                "model": model,
                "messages": list(messages),
                "credentials": credentials,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if callable(self.replies):
            content = self.replies(list(messages))
        elif self.replies:
            content = self.replies.pop(0)
        else:
            content = ""
        return LLMCompletion(content=content, model=model)

    async def simple_complete(
        self,
        *,
        provider,
        model,
        user_message,
        credentials=None,
        system_prompt=None,
        temperature=None,
        max_tokens=None,
    ):
        messages = []
        if system_prompt:
            messages.append(ChatMessage(role="system", content=system_prompt))
        messages.append(ChatMessage(role="user", content=user_message))
        return await self.complete(
            provider=provider,
            model=model,
            messages=messages,
            credentials=credentials,
            temperature=temperature,
            max_tokens=max_tokens,
        )


def make_prompt_target(
    content: str = "Say hello to {{name}}.",
    system_prompt: Optional[str] = None,
    provider: str = "openai",
    model: str = "gpt-4o-mini",
) -> PromptTarget:
    return PromptTarget(
        id="prompt-1",
        name="Greeter",
        current_version=1,
        versions=[
            PromptVersion(
                version=1,
                content=content,
                system_prompt=system_prompt,
                llm_config=ModelParameters(provider=provider, model=model),
            )
        ],
    )


def make_endpoint_target(**config) -> EndpointTarget:
    config.setdefault("url", "https://api.example.test/chat")
    return EndpointTarget(id="endpoint-1", name="Chat API", config=EndpointConfig(**config))


def make_case(case_id: str = "case-1", **fields) -> TestCase:
    fields.setdefault("name", f"Case {case_id}")
    return TestCase(id=case_id, **fields)


@pytest.fixture
def fake_llm():
    return FakeLLMService()


class FakeCaseExecutor:
    """Returns canned results; response times and scores are keyed by case id."""

    def __init__(self, response_times=None, scores=None, failing=(), raising=(), on_execute=None):
        self.response_times = response_times or {}
        self.scores = scores or {}
        self.failing = set(failing)
        self.raising = set(raising)
        self.on_execute = on_execute
        self.executed = []

    async def execute(self, test_case, context):
        self.executed.append(test_case.id)
        if self.on_execute:
            self.on_execute(test_case)
        if test_case.id in self.raising:
            raise RuntimeError(f"{test_case.id} crashed")
        await asyncio.sleep(0)
        return TestCaseExecutionResult(
            test_case_id=test_case.id,
            test_case_name=test_case.name,
            output="out",
            validation_passed=test_case.id not in self.failing,
            response_time=self.response_times.get(test_case.id, 0),
            judge_score=self.scores.get(test_case.id),
        )
