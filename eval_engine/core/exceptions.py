"""
Custom Exceptions

Application-specific exception classes.

- Use ErrorCode enum members, not string literals.
- Use wrap() to keep the exception chain when wrapping lower-level errors.
- Business validation errors use ValidationErrorCode (HTTP 400).
"""

import json
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from eval_engine.core.error_codes import ErrorCode


def _safe_serialize(obj: Any) -> Any:
    """Safely serialize an object for JSON, using repr() for non-serializable objects."""
    try:
        json.dumps(obj)
        return obj
    except (TypeError, ValueError):
        return repr(obj)


class ApplicationException(Exception):
    """Base exception for application-specific errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional["ErrorCode | str"] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization with safe handling."""
        safe_details = {k: _safe_serialize(v) for k, v in self.details.items()}

        result = {
            "message": self.message,
            "code": (
                self.error_code.value
                if self.error_code is not None and hasattr(self.error_code, "value")
                else self.error_code
            ),
            "details": safe_details,
        }

        # Priority: custom cause > __cause__ > __context__
        cause = self.cause or self.__cause__ or self.__context__
        if cause:
            result["cause"] = {"type": cause.__class__.__name__, "message": str(cause)}

        return result

    @classmethod
    def wrap(
        cls,
        exc: BaseException,
        message: str,
        error_code: Optional["ErrorCode"] = None,
        **context: Any,
    ) -> "ApplicationException":
        """
        Wrap a lower-level exception into a business exception while preserving the exception chain.

        Example:
            try:
                response = await client.request(...)
            except httpx.HTTPError as e:
                raise EndpointRequestException.wrap(
                    e, "Endpoint request failed",
                    EndpointErrorCode.REQUEST_FAILED,
                    url=url,
                ) from e
        """
        return cls(message=message, error_code=error_code, details=context, cause=exc)

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            code_str = (
                self.error_code.value
                if hasattr(self.error_code, "value")
                else self.error_code
            )
            parts.append(f"[{code_str}]")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )

    @property
    def http_status(self) -> int:
        """Get HTTP status code for this exception (lazy-loaded)."""
        if self.error_code:
            from eval_engine.core.error_codes import get_http_status_code

            return get_http_status_code(self.error_code)
        return 500


class ConfigurationException(ApplicationException):
    """Exception raised for configuration-related errors."""


class ValidationException(ApplicationException):
    """Exception raised for business validation errors."""


class LLMCallException(ApplicationException):
    """Exception raised for LLM call errors."""


class EndpointRequestException(ApplicationException):
    """Exception raised when an endpoint target request fails."""


class ExecutionException(ApplicationException):
    """Exception raised while executing a test case."""


def describe_error(exc: BaseException) -> str:
    """
    Render an exception as the error text stored on a test result.

    The plain message is used, followed by the root cause in parentheses
    when one is attached.
    """
    if isinstance(exc, ApplicationException):
        message = exc.message
        cause = exc.cause or exc.__cause__
    else:
        message = str(exc) or exc.__class__.__name__
        cause = exc.__cause__

    if cause is not None and str(cause) and str(cause) not in message:
        return f"{message} ({cause})"
    return message
