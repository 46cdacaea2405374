"""OAuth2 client credentials grant with a cached token."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from email.message import Message
from typing import Any, Mapping, Sequence
from urllib.parse import parse_qs, quote_plus

import requests
from requests.auth import HTTPBasicAuth

_EXPIRY_DELTA = 10.0


class TokenError(RuntimeError):
    """Raised when a token cannot be obtained from the token endpoint."""


@dataclass
class Token:
    access_token: str
    token_type: str = ""
    refresh_token: str = ""
    expiry: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def valid(self) -> bool:
        """Non-empty and not expiring within the next few seconds."""
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        return self.expiry - _EXPIRY_DELTA >= time.time()


def _expires_in(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


class ClientCredentials:
    """Client credentials configuration that remembers the last token."""

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        scopes: Sequence[str] = (),
        extra_params: Mapping[str, str] | None = None,
    ) -> None:
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = list(scopes)
        self.extra_params = dict(extra_params or {})
        self._lock = threading.Lock()
        self._token: Token | None = None

    def fetch_token(self) -> Token:
        """Request a new token from the token endpoint."""
        data = {"grant_type": "client_credentials"}
        if self.scopes:
            data["scope"] = " ".join(self.scopes)
        data.update(self.extra_params)

        auth = HTTPBasicAuth(quote_plus(self.client_id), quote_plus(self.client_secret))
        try:
            return self._request(data, auth)
        except TokenError as err:
            params = {**data, "client_id": self.client_id}
            if self.client_secret:
                params["client_secret"] = self.client_secret
            try:
                return self._request(params, None)
            except TokenError:
                raise err from None

    def client_credentials_token(self, force: bool) -> Token:
        """The cached token if still valid, else (or when forced) a new one."""
        with self._lock:
            if self._token is not None and self._token.valid() and not force:
                return self._token
        token = self.fetch_token()
        with self._lock:
            self._token = token
        return token

    def _request(self, data: Mapping[str, str], auth: HTTPBasicAuth | None) -> Token:
        try:
            resp = requests.post(
                self.token_url,
                data=data,
                auth=auth,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=30,
            )
        except requests.RequestException as err:
            raise TokenError(f"oauth2: cannot fetch token: {err}") from err

        if not 200 <= resp.status_code < 300:
            raise TokenError(
                f"oauth2: cannot fetch token: {resp.status_code} {resp.reason}\nResponse: {resp.text}"
            )

        message = Message()
        message["content-type"] = resp.headers.get("Content-Type", "")
        if message.get_content_type() in ("application/x-www-form-urlencoded", "text/plain"):
            values = {k: v[0] for k, v in parse_qs(resp.text).items()}
        else:
            try:
                values = json.loads(resp.text)
            except ValueError as err:
                raise TokenError(f"oauth2: cannot parse json: {err}") from err
            if not isinstance(values, dict):
                raise TokenError("oauth2: cannot parse json: not an object")

        access_token = str(values.get("access_token") or "")
        if not access_token:
            raise TokenError("oauth2: server response missing access_token")

        expires_in = _expires_in(values.get("expires_in"))
        return Token(
            access_token=access_token,
            token_type=str(values.get("token_type") or ""),
            refresh_token=str(values.get("refresh_token") or ""),
            expiry=time.time() + expires_in if expires_in else None,
            extra=dict(values),
        )