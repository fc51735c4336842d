"""
LLM Service

Narrow completion interface used by the executors and the judge, backed by
pydantic-ai Direct Model Requests.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic_ai import ModelSettings
from pydantic_ai.direct import model_request
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)

from eval_engine.core.error_codes import LLMErrorCode
from eval_engine.core.exceptions import LLMCallException
from eval_engine.core.llm_factory import create_llm_model, resolve_api_key
from eval_engine.core.logger import get_logger

logger = get_logger(__name__)


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class LLMCompletion(BaseModel):
    """Text returned by a provider plus bookkeeping."""

    content: str = Field(..., description="Concatenated text parts of the response")
    model: str = Field(..., description="Model that produced the response")
    usage: Dict[str, int] = Field(default_factory=dict, description="Token usage")
    finish_reason: Optional[str] = Field(default=None, description="Provider finish reason")


def to_model_messages(messages: List[ChatMessage]) -> List[ModelMessage]:
    """Convert role/content messages into pydantic-ai request/response messages."""
    converted: List[ModelMessage] = []
    for message in messages:
        if message.role == "system":
            converted.append(ModelRequest(parts=[SystemPromptPart(content=message.content)]))
        elif message.role == "user":
            converted.append(ModelRequest(parts=[UserPromptPart(content=message.content)]))
        else:
            converted.append(ModelResponse(parts=[TextPart(content=message.content)]))
    return converted


class LLMService:
    """Issues completions against any supported provider."""

    async def complete(
        self,
        *,
        provider: str,
        model: str,
        messages: List[ChatMessage],
        credentials: Optional[Mapping[str, str]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMCompletion:
        """
        Send a full message history and return the assistant reply.

        Raises:
            LLMCallException: If the model cannot be built or the request fails
        """
        if not messages:
            raise LLMCallException(
                "No messages to send to LLM", LLMErrorCode.REQUEST_FAILED
            )

        llm_model = create_llm_model(
            model, provider, resolve_api_key(provider, credentials)
        )

        model_settings: Optional[ModelSettings] = None
        if temperature is not None or max_tokens is not None:
            model_settings = ModelSettings()
            if temperature is not None:
                model_settings["temperature"] = temperature
            if max_tokens is not None:
                model_settings["max_tokens"] = max_tokens

        logger.debug(
            "Calling %s:%s with %d message(s)", provider, model, len(messages)
        )
        try:
            response = await model_request(
                llm_model,
                to_model_messages(messages),
                model_settings=model_settings,
            )
        except Exception as exc:
            raise LLMCallException.wrap(
                exc,
                f"LLM request to {provider}:{model} failed",
                LLMErrorCode.REQUEST_FAILED,
                provider=provider,
                model=model,
            ) from exc

        content = "".join(
            part.content for part in response.parts if isinstance(part, TextPart)
        )
        usage = {
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
        }
        return LLMCompletion(
            content=content,
            model=response.model_name or model,
            usage=usage,
            finish_reason=response.finish_reason,
        )

    async def simple_complete(
        self,
        *,
        provider: str,
        model: str,
        user_message: str,
        credentials: Optional[Mapping[str, str]] = None,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMCompletion:
        """Single-turn completion with an optional system prompt."""
        messages: List[ChatMessage] = []
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


__all__ = ["ChatMessage", "LLMCompletion", "LLMService", "to_model_messages"]
