"""Static or dynamically resolved JSON values and related helpers."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from email.message import Message
from typing import Any

from authorino import jsonpath

_ALL_CURLY_BRACES = re.compile(r"\{")
_CURLY_BRACES_FOR_MODIFIERS = re.compile(r"[^@]+@\w+:\{")


class JSONResponseError(ValueError):
    """Raised when an HTTP response cannot be read as JSON."""


@dataclass
class JSONValue:
    """A static value, or a pattern resolved against the authorization JSON."""

    static: Any = None
    pattern: str = ""

    def resolve_for(self, json_data: str) -> Any:
        if self.pattern:
            if self.is_template():
                return replace_json_placeholders(self.pattern, json_data)
            return jsonpath.get(json_data, self.pattern).value()
        return self.static

    def is_template(self) -> bool:
        """Whether the pattern mixes static text with placeholders."""
        modifier_braces = len(_CURLY_BRACES_FOR_MODIFIERS.findall(self.pattern))
        return modifier_braces != len(_ALL_CURLY_BRACES.findall(self.pattern))


@dataclass
class JSONProperty:
    name: str
    value: JSONValue


def replace_json_placeholders(source: str, json_data: str) -> str:
    """Replace ``{path}`` placeholders with values read from ``json_data``.

    A backslash escapes a brace or another backslash outside placeholders.
    """
    replaced: list[str] = []
    buffer: list[str] = []
    escaping = inside = False
    nested = 0

    for ch in source:
        if ch == "{":
            if escaping:
                replaced.append(ch)
            elif inside:
                buffer.append(ch)
                nested += 1
            else:
                inside = True
            escaping = False
        elif ch == "}":
            if inside:
                if nested > 0:
                    buffer.append(ch)
                    nested -= 1
                else:
                    if buffer:
                        replaced.append(jsonpath.get(json_data, "".join(buffer)).to_string())
                        buffer = []
                    inside = False
            else:
                replaced.append(ch)
            escaping = False
        elif ch == "\\":
            if inside:
                buffer.append(ch)
            else:
                if escaping:
                    replaced.append(ch)
                escaping = not escaping
        else:
            (buffer if inside else replaced).append(ch)
            escaping = False

    return "".join(replaced)


def _marshal(data: Any) -> str:
    try:
        text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise ValueError(f"cannot encode as JSON: {err}") from err
    for char, escaped in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026"),
                          ("\u2028", "\\u2028"), ("\u2029", "\\u2029")):
        text = text.replace(char, escaped)
    return text


def stringify_json(data: Any) -> str:
    """Encode ``data`` as JSON; a bare string comes back unquoted."""
    return jsonpath.parse(_marshal(data)).to_string()


def unmarshal_json_response(response: Any) -> Any:
    """Decode the body of an HTTP response (status_code, reason, content, headers)."""
    body = response.content
    text = body.decode("utf-8", "replace") if isinstance(body, bytes) else str(body)

    if response.status_code != 200:
        raise JSONResponseError(f"{response.status_code} {response.reason}: {text}")

    try:
        return json.loads(text)
    except ValueError as err:
        decode_error = err

    content_type = response.headers.get("Content-Type", "") or ""
    if content_type:
        message = Message()
        message["content-type"] = content_type
        if message.get_content_type() == "application/json":
            raise JSONResponseError(
                f"got Content-Type = application/json, but could not unmarshal as JSON: {decode_error}"
            )
    raise JSONResponseError(
        f"expected Content-Type = application/json, got {content_type!r}: {decode_error}"
    )


def _wrap(s: str) -> str:
    return f'"{s}"'


def _escape_quotes(s: str) -> str:
    return s.replace('"', '\\"')


def _args(arg: str) -> dict[str, jsonpath.Result]:
    parsed = jsonpath.parse(arg).value() if arg else None
    if not isinstance(parsed, dict):
        return {}
    return {key: jsonpath.Result(value) for key, value in parsed.items()}


def _extract(text: str, arg: str) -> str:
    args = _args(arg)
    sep = args["sep"].to_string() if "sep" in args else " "
    pos = args["pos"].to_int() if "pos" in args else 0
    s = jsonpath.parse(text).to_string()
    parts = s.split(sep) if sep else list(s)
    if pos >= len(parts) or pos < 0:
        return "n"
    return _wrap(parts[pos])


def _replace(text: str, arg: str) -> str:
    if not arg:
        return text
    args = _args(arg)
    old = args["old"].to_string() if "old" in args else ""
    new = args["new"].to_string() if "new" in args else ""
    return _wrap(jsonpath.parse(text).to_string().replace(old, new))


def _case(text: str, arg: str) -> str:
    if arg == "upper":
        return text.upper()
    if arg == "lower":
        return text.lower()
    return text


def _base64(text: str, arg: str) -> str:
    s = jsonpath.parse(text).to_string()
    if arg == "encode":
        return _wrap(base64.b64encode(s.encode()).decode())
    if arg == "decode":
        if len(s) % 4 == 0:
            try:
                decoded = base64.b64decode(s, validate=True)
                return _wrap(_escape_quotes(decoded.decode("utf-8", "replace")))
            except (binascii.Error, ValueError):
                pass
        try:
            decoded = base64.b64decode(s + "=" * (-len(s) % 4), validate=True)
        except (binascii.Error, ValueError):
            decoded = b""
        return _wrap(_escape_quotes(decoded.decode("utf-8", "replace")))
    return text


def _strip(text: str, arg: str) -> str:
    return "".join(ch for ch in text if ch.isprintable())


jsonpath.add_modifier("extract", _extract)
jsonpath.add_modifier("replace", _replace)
jsonpath.add_modifier("case", _case)
jsonpath.add_modifier("base64", _base64)
jsonpath.add_modifier("strip", _strip)