"""
Core Package

Configuration, error handling, logging and LLM model construction.
"""

# ruff: noqa: F401  # All imports are re-exported via __all__

from .config import Settings, settings
from .error_codes import (
    ERROR_CODE_MAP,
    APIErrorCode,
    ConfigurationErrorCode,
    EndpointErrorCode,
    ErrorCode,
    ExecutionErrorCode,
    LLMErrorCode,
    ValidationErrorCode,
    get_http_status_code,
)
from .exceptions import (
    ApplicationException,
    ConfigurationException,
    EndpointRequestException,
    ExecutionException,
    LLMCallException,
    ValidationException,
    describe_error,
)
from .llm_factory import SUPPORTED_PROVIDERS, create_llm_model, resolve_api_key
from .logger import get_logger
from .prompt_loader import load_prompt

__all__ = [
    # Configuration
    "Settings",
    "settings",
    # Error codes
    "ErrorCode",
    "APIErrorCode",
    "ConfigurationErrorCode",
    "EndpointErrorCode",
    "ExecutionErrorCode",
    "LLMErrorCode",
    "ValidationErrorCode",
    "ERROR_CODE_MAP",
    "get_http_status_code",
    # Exceptions
    "ApplicationException",
    "ConfigurationException",
    "EndpointRequestException",
    "ExecutionException",
    "LLMCallException",
    "ValidationException",
    "describe_error",
    # LLM
    "SUPPORTED_PROVIDERS",
    "create_llm_model",
    "resolve_api_key",
    # Utilities
    "get_logger",
    "load_prompt",
]
