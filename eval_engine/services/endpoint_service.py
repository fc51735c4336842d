"""
Endpoint Service

Builds and sends requests to HTTP endpoints under test and turns their
responses into text output.
"""

from __future__ import annotations

import base64
import json
import time
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field

from eval_engine.core.config import settings
from eval_engine.core.error_codes import EndpointErrorCode
from eval_engine.core.exceptions import EndpointRequestException
from eval_engine.core.logger import get_logger
from eval_engine.models import EndpointConfig
from eval_engine.utils.variables import get_path, substitute

logger = get_logger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class EndpointResponse(BaseModel):
    """Raw response plus its decoded body."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    response: httpx.Response
    body: Any = Field(default=None, description="Decoded JSON or raw text")
    response_time: int = Field(..., description="Elapsed milliseconds")

    @property
    def ok(self) -> bool:
        return self.response.is_success


class EndpointOutput(BaseModel):
    output: str
    extracted_content: Optional[str] = None
    response_time: int


def build_headers(config: EndpointConfig) -> Dict[str, str]:
    """Content type, then custom headers, then authentication."""
    headers: Dict[str, str] = {"Content-Type": config.content_type or "application/json"}
    headers.update(config.headers)

    auth = config.auth
    if auth is None:
        return headers
    if auth.type == "bearer" and auth.token:
        headers["Authorization"] = f"Bearer {auth.token}"
    elif auth.type == "apiKey" and auth.api_key_header and auth.api_key:
        headers[auth.api_key_header] = auth.api_key
    elif auth.type == "basic" and auth.username and auth.password:
        encoded = base64.b64encode(f"{auth.username}:{auth.password}".encode()).decode()
        headers["Authorization"] = f"Basic {encoded}"
    return headers


def render_body(
    method: str,
    template: Optional[str],
    variables: Mapping[str, Any],
    headers: Mapping[str, str],
) -> Optional[str]:
    """Substitute variables into a body template for methods that carry a body."""
    if method not in BODY_METHODS or not template:
        return None
    is_json_content = "application/json" in headers.get("Content-Type", "")
    return substitute(template, variables, escape_for_json=is_json_content)


def extract_output(
    config: EndpointConfig, body: Any
) -> Tuple[str, Optional[str]]:
    """
    Narrow a decoded body with the configured content path and render text.

    Returns the output text and, when narrowing changed the value, the
    extracted content.
    """
    narrowed = body
    if config.response_content_path and isinstance(body, (dict, list)):
        narrowed = get_path(body, config.response_content_path)

    output = _render(narrowed)
    extracted = output if narrowed is not body else None
    return output, extracted


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, indent=2, ensure_ascii=False)


def _cookieless_jar() -> CookieJar:
    # Cookies belong to the per-conversation SessionManager, never to the shared client
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def _decode_body(response: httpx.Response) -> Any:
    if "application/json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


class EndpointService:
    """Sends requests to endpoint targets with a shared async client."""

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._transport = transport
        self._timeout = timeout or settings.execution__endpoint_timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                cookies=_cookieless_jar(),
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[str] = None,
    ) -> EndpointResponse:
        """
        Send one request and decode the body.

        Raises:
            EndpointRequestException: On transport errors or timeouts
        """
        started = time.perf_counter()
        try:
            response = await self._get_client().request(
                method, url, headers=dict(headers), content=body
            )
        except httpx.TimeoutException as exc:
            raise EndpointRequestException.wrap(
                exc, f"Request to {url} timed out", EndpointErrorCode.TIMEOUT, url=url
            ) from exc
        except httpx.HTTPError as exc:
            raise EndpointRequestException.wrap(
                exc,
                f"Request to {url} failed",
                EndpointErrorCode.REQUEST_FAILED,
                url=url,
            ) from exc

        elapsed = round((time.perf_counter() - started) * 1000)
        logger.debug("%s %s -> %s in %dms", method, url, response.status_code, elapsed)
        return EndpointResponse(
            response=response, body=_decode_body(response), response_time=elapsed
        )

    async def execute(
        self, config: EndpointConfig, variables: Mapping[str, Any]
    ) -> EndpointOutput:
        """
        Run a single-turn request against an endpoint target.

        Raises:
            EndpointRequestException: On transport errors or a non-2xx status
        """
        headers = build_headers(config)
        body = render_body(config.method, config.body_template, variables, headers)
        result = await self.send(config.method, config.url, headers, body)

        if not result.ok:
            raise http_status_error(result.response, result.response.text)

        output, extracted = extract_output(config, result.body)
        return EndpointOutput(
            output=output, extracted_content=extracted, response_time=result.response_time
        )


def http_status_error(response: httpx.Response, detail: str) -> EndpointRequestException:
    return EndpointRequestException(
        f"HTTP {response.status_code} {response.reason_phrase}: {detail}",
        EndpointErrorCode.HTTP_ERROR_STATUS,
        {"status_code": response.status_code, "url": str(response.request.url)},
    )


__all__ = [
    "EndpointOutput",
    "EndpointResponse",
    "EndpointService",
    "build_headers",
    "extract_output",
    "http_status_error",
    "render_body",
]
