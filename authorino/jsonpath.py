"""Path queries over JSON documents, with pluggable modifiers."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable

_MISSING: Any = object()

ModifierFunc = Callable[[str, str], str]


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _loads(text: str | bytes) -> Any:
    if isinstance(text, bytes):
        text = text.decode("utf-8", "replace")
    try:
        return json.loads(text)
    except (ValueError, TypeError):
        return _MISSING


def _format_number(number: float) -> str:
    if number.is_integer() and abs(number) < 1e15:
        return str(int(number))
    return repr(number)


class Result:
    """The outcome of a path query: a value that may or may not exist."""

    __slots__ = ("_value",)

    def __init__(self, value: Any = _MISSING) -> None:
        self._value = value

    @property
    def exists(self) -> bool:
        return self._value is not _MISSING

    @property
    def raw(self) -> str:
        return _dumps(self._value) if self.exists else ""

    def value(self) -> Any:
        """The plain Python value, or None when nothing was found."""
        return self._value if self.exists else None

    def to_string(self) -> str:
        """The value as text: strings unquoted, containers as compact JSON."""
        v = self._value
        if v is _MISSING or v is None:
            return ""
        if isinstance(v, str):
            return v
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, int):
            return str(v)
        if isinstance(v, float):
            return _format_number(v)
        return _dumps(v)

    def array(self) -> list[Result]:
        """The elements of an array; a single non-null value yields itself."""
        v = self._value
        if v is _MISSING or v is None:
            return []
        if isinstance(v, list):
            return [Result(item) for item in v]
        return [self]

    def to_int(self) -> int:
        v = self._value
        if isinstance(v, bool):
            return int(v)
        if isinstance(v, (int, float)):
            return int(v)
        if isinstance(v, str):
            try:
                return int(float(v))
            except ValueError:
                return 0
        return 0

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Result({self.raw!r})"


@dataclass
class _Segment:
    key: str = ""
    pattern: re.Pattern[str] | None = None
    modifier: str | None = None
    arg: str = ""
    sep: str = ""


def _scan_json(text: str, start: int) -> int:
    """Return the index just past the JSON value starting at ``start``."""
    n = len(text)
    if text[start] == '"':
        i = start + 1
        while i < n:
            if text[i] == "\\":
                i += 2
                continue
            if text[i] == '"':
                return i + 1
            i += 1
        return n
    depth = 0
    i = start
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 1
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return n


def _split_path(path: str) -> list[_Segment]:
    segments: list[_Segment] = []
    i, n = 0, len(path)
    while i < n:
        if path[i] == "@":
            j = i + 1
            while j < n and path[j] not in ".|:":
                j += 1
            name = path[i + 1 : j]
            arg = ""
            if j < n and path[j] == ":":
                j += 1
                start = j
                if j < n and path[j] in '{["':
                    j = _scan_json(path, j)
                else:
                    while j < n and path[j] not in ".|":
                        j += 1
                arg = path[start:j]
            segment = _Segment(modifier=name, arg=arg)
        else:
            chars: list[str] = []
            regex: list[str] = []
            wild = False
            j = i
            while j < n and path[j] not in ".|":
                ch = path[j]
                if ch == "\\" and j + 1 < n:
                    j += 1
                    chars.append(path[j])
                    regex.append(re.escape(path[j]))
                elif ch == "*":
                    wild = True
                    chars.append(ch)
                    regex.append(".*")
                elif ch == "?":
                    wild = True
                    chars.append(ch)
                    regex.append(".")
                else:
                    chars.append(ch)
                    regex.append(re.escape(ch))
                j += 1
            segment = _Segment(
                key="".join(chars),
                pattern=re.compile("".join(regex), re.DOTALL) if wild else None,
            )
        if j < n:
            segment.sep = path[j]
            j += 1
        segments.append(segment)
        i = j
    return segments


def _value_modifier(fn: Callable[[Any], Any]) -> ModifierFunc:
    def modifier(text: str, arg: str) -> str:
        value = _loads(text)
        if value is _MISSING:
            return ""
        return _dumps(fn(value))

    return modifier


def _reverse(value: Any) -> Any:
    if isinstance(value, list):
        return value[::-1]
    if isinstance(value, dict):
        return dict(reversed(list(value.items())))
    return value


def _flatten(value: Any) -> Any:
    if not isinstance(value, list):
        return value
    flat: list[Any] = []
    for item in value:
        flat.extend(item if isinstance(item, list) else [item])
    return flat


_modifiers: dict[str, ModifierFunc] = {
    "this": _value_modifier(lambda v: v),
    "ugly": _value_modifier(lambda v: v),
    "pretty": _value_modifier(lambda v: v),
    "reverse": _value_modifier(_reverse),
    "flatten": _value_modifier(_flatten),
    "keys": _value_modifier(lambda v: list(v) if isinstance(v, dict) else []),
    "values": _value_modifier(lambda v: list(v.values()) if isinstance(v, dict) else []),
}


def add_modifier(name: str, func: ModifierFunc) -> None:
    """Register ``func(json_text, arg) -> json_text`` as modifier ``@name``."""
    _modifiers[name] = func


def _child(value: Any, segment: _Segment) -> Any:
    if isinstance(value, dict):
        if segment.pattern is not None:
            for key, item in value.items():
                if segment.pattern.fullmatch(key):
                    return item
            return _MISSING
        return value.get(segment.key, _MISSING)
    if isinstance(value, list) and segment.key.isascii() and segment.key.isdigit():
        index = int(segment.key)
        return value[index] if index < len(value) else _MISSING
    return _MISSING


def _walk(value: Any, segments: list[_Segment]) -> Any:
    i = 0
    while i < len(segments):
        if value is _MISSING:
            return _MISSING
        segment = segments[i]
        if segment.modifier is not None:
            func = _modifiers.get(segment.modifier)
            if func is None:
                return _MISSING
            value = _loads(func(_dumps(value), segment.arg))
            i += 1
            continue
        if isinstance(value, list) and segment.key == "#" and segment.pattern is None:
            if i + 1 < len(segments) and segment.sep == ".":
                end = next(
                    (k + 1 for k in range(i + 1, len(segments)) if segments[k].sep == "|"),
                    len(segments),
                )
                sub = segments[i + 1 : end]
                mapped = (_walk(item, sub) for item in value)
                value = [item for item in mapped if item is not _MISSING]
                i = end
                continue
            value = len(value)
            i += 1
            continue
        value = _child(value, segment)
        i += 1
    return value


def get(json_data: str | bytes, path: str) -> Result:
    """Query ``json_data`` with ``path``; a missing value yields an empty result."""
    if not path:
        return Result()
    root = _loads(json_data)
    if root is _MISSING:
        return Result()
    return Result(_walk(root, _split_path(path)))


def parse(json_data: str | bytes) -> Result:
    """Parse a whole JSON document into a result."""
    return Result(_loads(json_data))