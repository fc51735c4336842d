import pytest

from eval_engine.core.error_codes import (
    ERROR_CODE_MAP,
    ErrorCode,
    LLMErrorCode,
    ValidationErrorCode,
    get_http_status_code,
)
from eval_engine.core.exceptions import (
    ApplicationException,
    LLMCallException,
    ValidationException,
    describe_error,
)


def all_error_codes():
    return [code for group in ErrorCode.__subclasses__() for code in group]


@pytest.mark.parametrize("code", all_error_codes(), ids=str)
def test_every_error_code_has_a_status(code):
    assert code in ERROR_CODE_MAP


def test_status_lookup_accepts_strings_and_defaults_to_500():
    assert get_http_status_code(ValidationErrorCode.EMPTY_SELECTION) == 400
    assert get_http_status_code("ENDPOINT_TIMEOUT") == 504
    assert get_http_status_code("SOMETHING_ELSE") == 500


def test_exception_status_and_payload():
    exc = ValidationException(
        "No enabled test cases to run",
        ValidationErrorCode.EMPTY_SELECTION,
        {"selected": 0},
    )

    assert exc.http_status == 400
    assert exc.to_dict() == {
        "message": "No enabled test cases to run",
        "code": "VALIDATION_EMPTY_SELECTION",
        "details": {"selected": 0},
    }
    assert ApplicationException("plain").http_status == 500


def test_wrap_keeps_cause_in_description():
    cause = RuntimeError("connection reset")
    exc = LLMCallException.wrap(
        cause, "LLM request to openai:gpt-4o-mini failed", LLMErrorCode.REQUEST_FAILED
    )

    assert exc.to_dict()["cause"] == {"type": "RuntimeError", "message": "connection reset"}
    assert describe_error(exc) == "LLM request to openai:gpt-4o-mini failed (connection reset)"


def test_describe_error_for_plain_exceptions():
    assert describe_error(ValueError("bad value")) == "bad value"
    assert describe_error(TimeoutError()) == "TimeoutError"
