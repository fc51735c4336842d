"""
LLM Factory

Factory function to create pydantic-ai models from a provider name, a model
name and an API key supplied with the run.
"""

from typing import Callable, Dict, Mapping, Optional

from pydantic_ai.models import Model

from .config import settings
from .error_codes import LLMErrorCode
from .exceptions import LLMCallException

GROK_BASE_URL = "https://api.x.ai/v1"
DEEPSEEK_BASE_URL = "https://api.deepseek.com"


def resolve_api_key(
    provider: str, credentials: Optional[Mapping[str, str]] = None
) -> str:
    """
    Pick the API key for a provider.

    Run credentials win over keys configured in settings.

    Raises:
        LLMCallException: If no key is available for the provider
    """
    api_key = (credentials or {}).get(provider) or settings.provider_api_keys().get(
        provider
    )
    if not api_key:
        raise LLMCallException(
            message=f"No API key configured for provider: {provider}",
            error_code=LLMErrorCode.API_KEY_MISSING,
            details={"provider": provider},
        )
    return api_key


def create_llm_model(model_name: str, provider: str, api_key: str) -> Model:
    """
    Create an LLM model instance based on provider and model name.

    Args:
        model_name (str): Model name, e.g. 'gpt-4o-mini', 'claude-3-5-sonnet-latest'
        provider (str): One of SUPPORTED_PROVIDERS
        api_key (str): Provider API key

    Returns:
        Model: The LLM model instance

    Raises:
        LLMCallException: If provider is unsupported or model creation fails
    """
    builder = _BUILDERS.get(provider)
    if builder is None:
        raise LLMCallException(
            message=f"Unsupported provider: {provider}",
            error_code=LLMErrorCode.UNSUPPORTED_PROVIDER,
            details={"provider": provider, "supported_providers": SUPPORTED_PROVIDERS},
        )
    try:
        return builder(model_name, api_key)
    except Exception as e:
        raise LLMCallException.wrap(
            e,
            message=f"Failed to create model {model_name} with provider {provider}",
            error_code=LLMErrorCode.REQUEST_FAILED,
            provider=provider,
            model_name=model_name,
        ) from e


def _create_openai_model(model_name: str, api_key: str) -> Model:
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    return OpenAIChatModel(model_name, provider=OpenAIProvider(api_key=api_key))


def _create_openai_compatible_model(base_url: str) -> Callable[[str, str], Model]:
    """Build a creator for providers that speak the OpenAI chat API."""

    def _create(model_name: str, api_key: str) -> Model:
        from pydantic_ai.models.openai import OpenAIChatModel
        from pydantic_ai.providers.openai import OpenAIProvider

        return OpenAIChatModel(
            model_name, provider=OpenAIProvider(base_url=base_url, api_key=api_key)
        )

    return _create


def _create_anthropic_model(model_name: str, api_key: str) -> Model:
    from pydantic_ai.models.anthropic import AnthropicModel
    from pydantic_ai.providers.anthropic import AnthropicProvider

    return AnthropicModel(model_name, provider=AnthropicProvider(api_key=api_key))


def _create_gemini_model(model_name: str, api_key: str) -> Model:
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider

    return GoogleModel(model_name, provider=GoogleProvider(api_key=api_key))


def _create_openrouter_model(model_name: str, api_key: str) -> Model:
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openrouter import OpenRouterProvider

    return OpenAIChatModel(model_name, provider=OpenRouterProvider(api_key=api_key))


_BUILDERS: Dict[str, Callable[[str, str], Model]] = {
    "openai": _create_openai_model,
    "anthropic": _create_anthropic_model,
    "gemini": _create_gemini_model,
    "grok": _create_openai_compatible_model(GROK_BASE_URL),
    "deepseek": _create_openai_compatible_model(DEEPSEEK_BASE_URL),
    "openrouter": _create_openrouter_model,
}

SUPPORTED_PROVIDERS = sorted(_BUILDERS)
