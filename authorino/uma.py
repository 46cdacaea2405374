"""Metadata evaluator that reads resource data from a UMA-compliant server."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlsplit, urlunsplit

import requests
from requests.auth import HTTPBasicAuth

from authorino import log
from authorino.jsonvalue import JSONResponseError, unmarshal_json_response

_TIMEOUT = 30


class UMAError(RuntimeError):
    """Raised when the UMA server cannot be used as expected."""


class HttpRequest(Protocol):
    path: str


class AuthPipeline(Protocol):
    http: HttpRequest


@dataclass
class PAT:
    """A protection API token."""

    access_token: str = ""

    def __str__(self) -> str:
        return self.access_token

    def get(self, url: str) -> Any:
        """GET ``url`` with this token and decode the JSON reply."""
        response = requests.get(
            url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.access_token}",
            },
            timeout=_TIMEOUT,
        )
        with response:
            return unmarshal_json_response(response)


@dataclass
class Provider:
    issuer: str
    token_url: str
    resource_registration_url: str
    raw_claims: bytes = field(default=b"", repr=False)

    def get_resources_by_uri(self, uri: str, pat: PAT) -> list[Any]:
        """The data of every registered resource matching ``uri``."""
        return self._get_resources_by_ids(self._query_resources_by_uri(uri, pat), pat)

    def _query_resources_by_uri(self, uri: str, pat: PAT) -> list[str]:
        parts = urlsplit(self.resource_registration_url)
        url = urlunsplit(parts._replace(query="uri=" + uri))
        log.with_name("uma").debug("querying resources by uri url=%s", url)
        ids = pat.get(url)
        if ids is None:
            return []
        if not isinstance(ids, list):
            raise UMAError("unexpected resource query response: not a list")
        return [str(resource_id) for resource_id in ids]

    def _get_resources_by_ids(self, resource_ids: list[str], pat: PAT) -> list[Any]:
        if not resource_ids:
            return []
        with ThreadPoolExecutor(max_workers=min(len(resource_ids), 16)) as pool:
            results = list(pool.map(lambda rid: self._get_resource_by_id(rid, pat), resource_ids))
        return [data for ok, data in results if ok]

    def _get_resource_by_id(self, resource_id: str, pat: PAT) -> tuple[bool, Any]:
        parts = urlsplit(self.resource_registration_url)
        url = urlunsplit(parts._replace(path=parts.path + "/" + resource_id))
        log.with_name("uma").debug("getting resource data url=%s", url)
        try:
            return True, pat.get(url)
        except (requests.RequestException, JSONResponseError):
            return False, None


@dataclass
class UMA:
    endpoint: str
    client_id: str
    client_secret: str
    provider: Provider | None = None

    def _well_known_config_endpoint(self) -> str:
        return self.endpoint.rstrip("/") + "/.well-known/uma2-configuration"

    def discover(self) -> None:
        """Read the provider's configuration from its well-known endpoint."""
        try:
            response = requests.get(self._well_known_config_endpoint(), timeout=_TIMEOUT)
        except requests.RequestException as err:
            raise UMAError(f"failed to fetch uma config: {err}") from err

        with response:
            try:
                config = unmarshal_json_response(response)
            except JSONResponseError as err:
                raise UMAError(f"failed to decode uma provider discovery object: {err}") from err
            raw_claims = response.content

        if not isinstance(config, dict):
            raise UMAError("failed to decode uma provider discovery object: not an object")

        issuer = str(config.get("issuer") or "")
        if issuer != self.endpoint:
            raise UMAError(
                "uma endpoint does not match the issuer returned by provider, "
                f'expected "{self.endpoint}" got "{issuer}"'
            )

        self.provider = Provider(
            issuer=issuer,
            token_url=str(config.get("token_endpoint") or ""),
            resource_registration_url=str(config.get("resource_registration_endpoint") or ""),
            raw_claims=raw_claims,
        )

    def call(self, pipeline: AuthPipeline) -> list[Any]:
        """Fetch the data of the resources registered for the request path."""
        if self.provider is None:
            raise UMAError("uma provider not discovered")
        pat = self._request_pat()
        return self.provider.get_resources_by_uri(pipeline.http.path, pat)

    def _request_pat(self) -> PAT:
        assert self.provider is not None
        token_url = self.provider.token_url
        log.with_name("uma").debug("requesting pat url=%s", token_url)
        response = requests.post(
            token_url,
            data={"grant_type": "client_credentials"},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            auth=HTTPBasicAuth(self.client_id, self.client_secret),
            timeout=_TIMEOUT,
        )
        with response:
            try:
                values = unmarshal_json_response(response)
            except JSONResponseError as err:
                raise UMAError(f"failed to decode uma pat: {err}") from err
        if not isinstance(values, dict):
            raise UMAError("failed to decode uma pat: not an object")
        return PAT(access_token=str(values.get("access_token") or ""))


def new_uma_metadata(endpoint: str, client_id: str, client_secret: str) -> UMA:
    """Create a UMA evaluator and discover its provider."""
    uma = UMA(endpoint=endpoint, client_id=client_id, client_secret=client_secret)
    uma.discover()
    return uma