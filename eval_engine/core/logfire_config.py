"""
Logfire Configuration Module

Logfire configuration and instrumentation setup for eval-engine.

Usage:
    from eval_engine.core.logfire_config import initialize_logfire

    results = initialize_logfire(app)  # idempotent; safe to call at startup
"""

import logging
from typing import Any, Dict, Optional

import logfire
from fastapi import FastAPI, Request

from eval_engine.core.config import settings
from eval_engine.core.logger import setup_logfire_handler

_ALLOWED_SCRUB_KEYS = {"run", "http.request.body.text"}


class _LogfireState:
    """Tracks whether configuration and instrumentation already ran."""

    def __init__(self) -> None:
        self.configured = False
        self.instrumented = False
        self.instrument_results: Dict[str, bool] = {
            "pydantic_ai": False,
            "httpx": False,
        }


_state = _LogfireState()


def _custom_scrub_callback(match: Any) -> Any:
    """Keep run tags and request bodies, redact everything else the default way."""
    if any(str(part).lower() in _ALLOWED_SCRUB_KEYS for part in match.path):
        return match.value
    return None


def custom_request_attributes_mapper(
    request: Request, attributes: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """
    Customize what gets logged for each request.

    Validation errors are always kept; request values have credential-like
    keys redacted.
    """
    endpoint = str(request.url.path)
    request_id = request.headers.get("x-request-id")

    if attributes.get("errors"):
        return {
            "errors": attributes["errors"],
            "endpoint": endpoint,
            "method": request.method,
            "request_id": request_id,
        }

    filtered_values: Dict[str, Any] = {}
    for key, value in (attributes.get("values") or {}).items():
        if key.lower() in ("credentials", "password", "token", "api_key", "secret"):
            filtered_values[key] = "[REDACTED]"
        else:
            filtered_values[key] = value

    return {
        "values": filtered_values,
        "endpoint": endpoint,
        "method": request.method,
        "request_id": request_id,
    }


def setup_logfire() -> bool:
    """
    Set up basic logfire configuration.

    Returns:
        bool: True if logfire was successfully configured, False otherwise
    """
    logger = logging.getLogger("eval_engine.logfire")

    if not settings.logfire__enabled or _state.configured:
        return _state.configured

    try:
        config_kwargs: Dict[str, Any] = {
            "service_name": settings.logfire__service_name,
            "environment": settings.logfire__environment,
        }

        if settings.logfire__disable_scrubbing:
            config_kwargs["scrubbing"] = False
        else:
            config_kwargs["scrubbing"] = logfire.ScrubbingOptions(
                callback=_custom_scrub_callback
            )

        if settings.logfire__token:
            config_kwargs["token"] = settings.logfire__token.get_secret_value()

        logfire.configure(**config_kwargs)
        logging.getLogger("eval_engine.startup").info(
            "Logfire initialized for service: %s", settings.logfire__service_name
        )

        setup_logfire_handler()

        _state.configured = True
        return True

    except Exception as e:
        logger.error("Failed to initialize logfire: %s", e)
        return False


def instrument_logfire() -> Dict[str, bool]:
    """
    Set up logfire instrumentation for pydantic-ai and HTTPX.

    Returns:
        dict: Instrumentation results for each library
    """
    logger = logging.getLogger("eval_engine.logfire")

    if not settings.logfire__enabled or _state.instrumented:
        return dict(_state.instrument_results)

    if settings.logfire__instrument__pydantic_ai:
        try:
            logfire.instrument_pydantic_ai()
            logger.info("Logfire pydantic-ai instrumentation enabled")
            _state.instrument_results["pydantic_ai"] = True
        except Exception as e:
            logger.warning("Failed to instrument pydantic-ai with logfire: %s", e)

    if settings.logfire__instrument__httpx:
        try:
            capture_all = settings.logfire__httpx_capture_all
            logfire.instrument_httpx(capture_all=capture_all)
            logger.info(
                "Logfire HTTPX instrumentation enabled (capture_all=%s)", capture_all
            )
            _state.instrument_results["httpx"] = True
        except Exception as e:
            logger.warning("Failed to instrument HTTPX with logfire: %s", e)

    _state.instrumented = True
    return dict(_state.instrument_results)


def instrument_fastapi(app: FastAPI) -> bool:
    """Instrument the FastAPI app; returns True on success."""
    logger = logging.getLogger("eval_engine.logfire")

    if not settings.logfire__enabled or not settings.logfire__instrument__fastapi:
        return False

    try:
        logfire.instrument_fastapi(
            app,
            request_attributes_mapper=custom_request_attributes_mapper,
            capture_headers=True,
        )
        logger.info("FastAPI instrumented with logfire")
        return True
    except Exception as e:
        logger.error("Failed to instrument FastAPI with logfire: %s", e)
        return False


def initialize_logfire(app: Optional[FastAPI] = None) -> Dict[str, Any]:
    """
    Complete logfire initialization including configuration and instrumentation.

    Args:
        app: Optional FastAPI application instance for instrumentation

    Returns:
        dict: Initialization results with status for each component
    """
    results: Dict[str, Any] = {
        "configured": setup_logfire(),
        "instrumentation": {"pydantic_ai": False, "httpx": False, "fastapi": False},
    }

    if results["configured"]:
        results["instrumentation"].update(instrument_logfire())
        if app is not None:
            results["instrumentation"]["fastapi"] = instrument_fastapi(app)

    return results
