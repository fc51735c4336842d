"""
Error Codes

Standardized error codes for eval-engine.
"""

from enum import StrEnum
from types import MappingProxyType
from typing import Mapping


class ErrorCode(StrEnum):
    """Base error code enum (string-based)."""


class ConfigurationErrorCode(ErrorCode):
    """Configuration-related error codes."""

    INVALID_CONFIG = "CONFIGURATION_INVALID_CONFIG"
    MISSING_CONFIG = "CONFIGURATION_MISSING_CONFIG"


class APIErrorCode(ErrorCode):
    """API-related error codes."""

    INTERNAL_ERROR = "API_INTERNAL_ERROR"


class ValidationErrorCode(ErrorCode):
    """Validation-related error codes."""

    INVALID_INPUT = "VALIDATION_INVALID_INPUT"
    EMPTY_SELECTION = "VALIDATION_EMPTY_SELECTION"


class LLMErrorCode(ErrorCode):
    """LLM-related error codes."""

    API_KEY_MISSING = "LLM_API_KEY_MISSING"
    UNSUPPORTED_PROVIDER = "LLM_UNSUPPORTED_PROVIDER"
    REQUEST_FAILED = "LLM_REQUEST_FAILED"


class EndpointErrorCode(ErrorCode):
    """Endpoint target request error codes."""

    REQUEST_FAILED = "ENDPOINT_REQUEST_FAILED"
    HTTP_ERROR_STATUS = "ENDPOINT_HTTP_ERROR_STATUS"
    TIMEOUT = "ENDPOINT_TIMEOUT"


class ExecutionErrorCode(ErrorCode):
    """Test execution error codes."""

    PROMPT_VERSION_NOT_FOUND = "EXECUTION_PROMPT_VERSION_NOT_FOUND"
    UNSUPPORTED_TARGET = "EXECUTION_UNSUPPORTED_TARGET"


# Error code to HTTP status mapping.
# Error code values carry a domain prefix so they stay unique in API
# responses and logs. Business validation errors map to 400; request format
# errors are reported by FastAPI as 422.
ERROR_CODE_MAP: Mapping[ErrorCode, int] = MappingProxyType(
    {
        ConfigurationErrorCode.INVALID_CONFIG: 500,
        ConfigurationErrorCode.MISSING_CONFIG: 500,
        APIErrorCode.INTERNAL_ERROR: 500,
        ValidationErrorCode.INVALID_INPUT: 400,
        ValidationErrorCode.EMPTY_SELECTION: 400,
        LLMErrorCode.API_KEY_MISSING: 400,
        LLMErrorCode.UNSUPPORTED_PROVIDER: 400,
        LLMErrorCode.REQUEST_FAILED: 502,
        EndpointErrorCode.REQUEST_FAILED: 502,
        EndpointErrorCode.HTTP_ERROR_STATUS: 502,
        EndpointErrorCode.TIMEOUT: 504,
        ExecutionErrorCode.PROMPT_VERSION_NOT_FOUND: 400,
        ExecutionErrorCode.UNSUPPORTED_TARGET: 400,
    }
)


def get_http_status_code(error_code: ErrorCode | str) -> int:
    """
    Get HTTP status code for an error code.

    Args:
        error_code: Error code enum or string

    Returns:
        HTTP status code (defaults to 500 if not found)
    """
    for code, status in ERROR_CODE_MAP.items():
        if code.value == str(error_code):
            return status
    return 500

