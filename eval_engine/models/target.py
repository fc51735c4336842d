"""Execution targets: versioned prompts and HTTP endpoints."""

from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import Field

from .base import EngineModel

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class ModelParameters(EngineModel):
    """Provider/model selection and sampling settings of a prompt version."""

    provider: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class PromptVersion(EngineModel):
    version: int
    content: str
    system_prompt: Optional[str] = None
    llm_config: ModelParameters = Field(
        default_factory=ModelParameters, alias="modelConfig"
    )
    note: Optional[str] = None


class PromptTarget(EngineModel):
    """A versioned prompt sent to an LLM provider."""

    type: Literal["prompt"] = "prompt"
    id: str
    name: str
    current_version: int = 1
    versions: List[PromptVersion] = Field(default_factory=list)

    def resolve_version(self, requested: Optional[int] = None) -> Optional[PromptVersion]:
        """Return the requested (or current) version, else the most recent one."""
        wanted = requested if requested is not None else self.current_version
        for version in self.versions:
            if version.version == wanted:
                return version
        return self.versions[-1] if self.versions else None


class EndpointAuth(EngineModel):
    type: Literal["none", "bearer", "apiKey", "basic"] = "none"
    token: Optional[str] = None
    api_key_header: Optional[str] = None
    api_key: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class EndpointConfig(EngineModel):
    """How to call an HTTP endpoint under test."""

    method: HttpMethod = "POST"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    auth: Optional[EndpointAuth] = None
    body_template: Optional[str] = None
    content_type: str = "application/json"
    response_content_path: Optional[str] = None


class EndpointTarget(EngineModel):
    """An HTTP endpoint under test."""

    type: Literal["endpoint"] = "endpoint"
    id: str
    name: str
    config: EndpointConfig


Target = Annotated[Union[PromptTarget, EndpointTarget], Field(discriminator="type")]


__all__ = [
    "EndpointAuth",
    "EndpointConfig",
    "EndpointTarget",
    "HttpMethod",
    "ModelParameters",
    "PromptTarget",
    "PromptVersion",
    "Target",
]
