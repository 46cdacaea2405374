"""Response evaluators: dynamic JSON, plain values and signed wristbands."""

from __future__ import annotations

import base64
import hashlib
import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from authorino.jsonvalue import JSONProperty, JSONValue

DEFAULT_WRISTBAND_DURATION = 300

SUPPORTED_SIGNING_ALGS = ["ES256", "ES384", "ES512", "RS256", "RS384", "RS512"]

_PEM_BLOCK = re.compile(rb"-----BEGIN ([^-\r\n]+)-----.*?-----END \1-----", re.DOTALL)


class AuthPipeline(Protocol):
    authorization_json: str
    resolved_identity: tuple[Any, Any]


def _go_marshal(data: Any) -> str:
    text = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026")):
        text = text.replace(char, escaped)
    return text


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _int_bytes(value: int, size: int | None = None) -> bytes:
    length = size if size is not None else max(1, (value.bit_length() + 7) // 8)
    return value.to_bytes(length, "big")


@dataclass
class DynamicJSON:
    """Builds a JSON object from properties resolved against the auth JSON."""

    properties: list[JSONProperty] = field(default_factory=list)

    def call(self, pipeline: AuthPipeline) -> dict[str, Any]:
        auth_json = pipeline.authorization_json
        return {prop.name: prop.value.resolve_for(auth_json) for prop in self.properties}


@dataclass
class Plain(JSONValue):
    """A single value, static or resolved against the auth JSON."""

    def call(self, pipeline: AuthPipeline) -> Any:
        return self.resolve_for(pipeline.authorization_json)


@dataclass
class SigningKey:
    key_id: str
    algorithm: str
    key: Any
    use: str = "sig"

    def public_jwk(self) -> dict[str, Any]:
        """The public part of the key as a JSON Web Key."""
        public = self.key.public_key()
        if isinstance(public, ec.EllipticCurvePublicKey):
            numbers = public.public_numbers()
            size = (public.curve.key_size + 7) // 8
            return {
                "use": self.use,
                "kty": "EC",
                "kid": self.key_id,
                "crv": _CURVE_NAMES.get(public.curve.name, public.curve.name),
                "alg": self.algorithm,
                "x": _b64url(_int_bytes(numbers.x, size)),
                "y": _b64url(_int_bytes(numbers.y, size)),
            }
        numbers = public.public_numbers()
        return {
            "use": self.use,
            "kty": "RSA",
            "kid": self.key_id,
            "alg": self.algorithm,
            "n": _b64url(_int_bytes(numbers.n)),
            "e": _b64url(_int_bytes(numbers.e)),
        }


_CURVE_NAMES = {"secp256r1": "P-256", "secp384r1": "P-384", "secp521r1": "P-521"}


def new_signing_key(name: str, algorithm: str, signing_key: bytes) -> SigningKey:
    """Load an EC or RSA private key from PEM for signing wristbands."""
    if isinstance(signing_key, str):
        signing_key = signing_key.encode()
    block = _PEM_BLOCK.search(signing_key)
    if block is None:
        raise ValueError("failed to decode PEM file")

    kind = block.group(1).decode("ascii", "replace").split(" ")[0]
    if kind not in ("EC", "RSA"):
        raise ValueError("invalid signing key algorithm")

    key = serialization.load_pem_private_key(signing_key, password=None)
    expected = ec.EllipticCurvePrivateKey if kind == "EC" else rsa.RSAPrivateKey
    if not isinstance(key, expected):
        raise ValueError(f"key is not a valid {kind} private key")
    return SigningKey(key_id=name, algorithm=algorithm, key=key)


@dataclass
class Wristband:
    """Issues signed JWTs identifying the resolved identity."""

    issuer: str
    custom_claims: list[JSONProperty]
    token_duration: int
    signing_keys: list[SigningKey]

    def call(self, pipeline: AuthPipeline) -> str | None:
        identity_config, identity = pipeline.resolved_identity

        oidc = getattr(identity_config, "oidc", None)
        if oidc is not None and getattr(oidc, "endpoint", None) == self.issuer:
            return None

        sub = hashlib.sha256(_go_marshal(identity).encode("utf-8")).hexdigest()
        iat = int(time.time())
        claims: dict[str, Any] = {
            "iss": self.issuer,
            "iat": iat,
            "exp": iat + int(self.token_duration),
            "sub": sub,
        }
        if self.custom_claims:
            auth_json = pipeline.authorization_json
            for claim in self.custom_claims:
                claims[claim.name] = claim.value.resolve_for(auth_json)

        signing_key = self.signing_keys[0]
        return jwt.encode(
            claims,
            signing_key.key,
            algorithm=signing_key.algorithm,
            headers={"kid": signing_key.key_id},
        )

    def open_id_config(self) -> str:
        return json.dumps(
            {
                "issuer": self.issuer,
                "jwks_uri": f"{self.issuer}/.well-known/openid-connect/certs",
                "id_token_signing_alg_values_supported": SUPPORTED_SIGNING_ALGS,
            },
            separators=(",", ":"),
        )

    def jwks(self) -> str:
        keys = [key.public_jwk() for key in self.signing_keys]
        return json.dumps({"keys": keys}, separators=(",", ":"))


def new_wristband_config(
    issuer: str,
    claims: Sequence[JSONProperty],
    token_duration: int | None,
    signing_keys: Sequence[SigningKey],
) -> Wristband:
    if not signing_keys:
        raise ValueError("missing at least one signing key")
    duration = DEFAULT_WRISTBAND_DURATION if token_duration is None else token_duration
    return Wristband(issuer, list(claims), duration, list(signing_keys))