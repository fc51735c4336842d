"""Session state carried across the turns of an endpoint conversation."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
from pydantic import BaseModel

from eval_engine.core.logger import get_logger
from eval_engine.models import SessionConfig
from eval_engine.utils.variables import get_path, set_path

logger = get_logger(__name__)


class PreparedRequest(BaseModel):
    """Headers, body and URL after session data was applied."""

    headers: Dict[str, str]
    body: Optional[str] = None
    url: str


def _set_query_param(url: str, name: str, value: str) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
    query.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


class SessionManager:
    """
    Cookie jar, extracted token and extracted variables for one conversation.

    Created fresh for every conversational test case and never shared.
    """

    def __init__(self, config: SessionConfig) -> None:
        self.config = config
        self._cookies: Dict[str, str] = {}
        self._token: Optional[str] = None
        self._variables: Dict[str, str] = {}

    def _store_cookies(self, set_cookie_headers: Iterable[str]) -> None:
        for header in set_cookie_headers:
            pair = header.split(";", 1)[0].strip()
            name, sep, value = pair.partition("=")
            if sep and name.strip():
                self._cookies[name.strip()] = value.strip()

    def process_response(self, response: httpx.Response, body: Any) -> None:
        """Harvest cookies, the session token and configured variables."""
        if self.config.persist_cookies:
            self._store_cookies(response.headers.get_list("set-cookie"))

        extraction = self.config.token_extraction
        if extraction and extraction.enabled and extraction.response_path:
            token = get_path(body, extraction.response_path)
            if token is not None:
                self._token = token if isinstance(token, str) else str(token)

        for variable in self.config.variable_extraction:
            if not variable.name or not variable.response_path:
                continue
            value = get_path(body, variable.response_path)
            if value is not None:
                self._variables[variable.name] = (
                    value if isinstance(value, str) else str(value)
                )

    def apply_to_request(
        self, headers: Mapping[str, str], body: Optional[str], url: str
    ) -> PreparedRequest:
        """Inject stored cookies and the token into an outgoing request."""
        new_headers = dict(headers)
        new_body = body
        new_url = url

        if self.config.persist_cookies and self._cookies:
            cookie_string = "; ".join(f"{k}={v}" for k, v in self._cookies.items())
            existing = new_headers.get("Cookie")
            new_headers["Cookie"] = (
                f"{existing}; {cookie_string}" if existing else cookie_string
            )

        extraction = self.config.token_extraction
        if self._token and extraction and extraction.injection.target:
            injection = extraction.injection
            token_value = f"{injection.prefix or ''}{self._token}"

            if injection.type == "header":
                new_headers[injection.target] = token_value
            elif injection.type == "body":
                try:
                    payload = json.loads(new_body or "")
                except ValueError:
                    payload = None
                if isinstance(payload, dict):
                    set_path(payload, injection.target, token_value)
                    new_body = json.dumps(payload, ensure_ascii=False)
                else:
                    logger.warning(
                        "Skipping token injection into body: body is not a JSON object"
                    )
            else:
                new_url = _set_query_param(new_url, injection.target, token_value)

        return PreparedRequest(headers=new_headers, body=new_body, url=new_url)

    def get_variables(self) -> Dict[str, str]:
        return dict(self._variables)

    def get_token(self) -> Optional[str]:
        return self._token

    def get_cookies(self) -> Dict[str, str]:
        return dict(self._cookies)

    def reset(self) -> None:
        self._cookies.clear()
        self._token = None
        self._variables = {}


__all__ = ["PreparedRequest", "SessionManager"]
