"""Metadata evaluator that fetches data from an arbitrary HTTP endpoint."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlencode

import requests
from requests.structures import CaseInsensitiveDict

from authorino import log
from authorino.jsonvalue import JSONProperty, JSONValue, replace_json_placeholders, stringify_json
from authorino.oauth2 import ClientCredentials

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_TIMEOUT = 30


class MetadataError(ValueError):
    """Raised when the metadata response cannot be interpreted."""


class AuthPipeline(Protocol):
    authorization_json: str


class AuthCredentials(Protocol):
    def build_request_with_credentials(
        self, endpoint: str, method: str, credentials: str, body: str | None
    ) -> requests.Request:
        """Build a request to ``endpoint`` that carries ``credentials``."""


def _marshal(data: Any) -> str:
    text = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026")):
        text = text.replace(char, escaped)
    return text


def _header_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return stringify_json(value)
    except ValueError:
        return str(value)


def _decode_json_stream(text: str) -> Any:
    """Decode one or more concatenated JSON objects."""
    decoder = json.JSONDecoder()
    pos = _WHITESPACE.match(text, 0).end()
    if pos >= len(text):
        raise MetadataError("invalid JSON response: EOF")

    elements: list[Any] = []
    while True:
        try:
            obj, pos = decoder.raw_decode(text, pos)
        except json.JSONDecodeError as err:
            raise MetadataError(f"invalid JSON response: {err}") from err
        if obj is not None and not isinstance(obj, dict):
            raise MetadataError("invalid JSON response: value is not an object")
        elements.append(obj)
        pos = _WHITESPACE.match(text, pos).end()
        if pos >= len(text):
            break

    if len(elements) > 1:
        return elements
    return elements[0]


@dataclass
class GenericHttp:
    """Sends a request built from the authorization JSON and returns the reply."""

    endpoint: str
    method: str = "GET"
    body: JSONValue | None = None
    parameters: list[JSONProperty] = field(default_factory=list)
    headers: list[JSONProperty] = field(default_factory=list)
    content_type: str = ""
    shared_secret: str = ""
    oauth2: ClientCredentials | None = None
    oauth2_token_force_fetch: bool = False
    credentials: AuthCredentials | None = None

    def call(self, pipeline: AuthPipeline) -> Any:
        """Fetch the metadata: a dict, a list of dicts, or text."""
        auth_json = pipeline.authorization_json
        endpoint = replace_json_placeholders(self.endpoint, auth_json)
        request = self._build_request(endpoint, auth_json)

        with requests.Session() as session:
            response = session.send(session.prepare_request(request), timeout=_TIMEOUT)

        with response:
            if "application/json" in response.headers.get("Content-Type", ""):
                return _decode_json_stream(response.content.decode("utf-8", "replace"))
            return response.content.decode("utf-8", "replace")

    def _build_request(self, endpoint: str, auth_json: str) -> requests.Request:
        method = self.method
        if method == "GET":
            content_type = "text/plain"
            body = None
        elif method == "POST":
            content_type = self.content_type
            body = self._build_request_body(auth_json)
        else:
            raise ValueError("unsupported method")

        if self.credentials is not None:
            creds = self.shared_secret
            if self.oauth2 is not None:
                creds = self.oauth2.client_credentials_token(self.oauth2_token_force_fetch).access_token
            request = self.credentials.build_request_with_credentials(endpoint, method, creds, body)
        else:
            request = requests.Request(method, endpoint, data=body)

        request.headers = CaseInsensitiveDict(request.headers or {})
        for header in self.headers:
            request.headers[header.name] = _header_value(header.value.resolve_for(auth_json))
        request.headers["Content-Type"] = content_type

        logger = log.with_name("http")
        if body is not None:
            logger.debug("sending request method=%s url=%s headers=%s body=%s",
                         method, endpoint, dict(request.headers), body)
        else:
            logger.debug("sending request method=%s url=%s headers=%s",
                         method, endpoint, dict(request.headers))
        return request

    def _build_request_body(self, auth_json: str) -> str:
        if self.body is not None:
            try:
                return stringify_json(self.body.resolve_for(auth_json))
            except ValueError as err:
                raise ValueError("failed to encode http request") from err

        data = {param.name: param.value.resolve_for(auth_json) for param in self.parameters}

        if self.content_type == "application/x-www-form-urlencoded":
            form: list[tuple[str, str]] = []
            for key in sorted(data):
                try:
                    form.append((key, stringify_json(data[key])))
                except ValueError as err:
                    raise ValueError("failed to encode http request") from err
            return urlencode(form)

        if self.content_type == "application/json":
            try:
                return _marshal(data)
            except (TypeError, ValueError) as err:
                raise ValueError(f"failed to encode http request: {err}") from err

        raise ValueError("unsupported content-type")