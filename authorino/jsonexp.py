"""Boolean expressions over values selected from a JSON document."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

from authorino import jsonpath


class Operator(IntEnum):
    UNKNOWN = 0
    EQUAL = 1
    NOT_EQUAL = 2
    INCLUDES = 3
    EXCLUDES = 4
    REGEX = 5

    def __str__(self) -> str:
        return _OPERATOR_NAMES.get(self, "unknown")


_OPERATOR_NAMES = {
    Operator.EQUAL: "eq",
    Operator.NOT_EQUAL: "neq",
    Operator.INCLUDES: "incl",
    Operator.EXCLUDES: "excl",
    Operator.REGEX: "matches",
}


def operator_from_string(operator: str) -> Operator:
    for op, name in _OPERATOR_NAMES.items():
        if name == operator:
            return op
    return Operator.UNKNOWN


class Expression(Protocol):
    def matches(self, json_data: str) -> bool: ...


@dataclass(frozen=True)
class Pattern:
    selector: str
    operator: Operator
    value: str

    def matches(self, json_data: str) -> bool:
        expected = self.value
        obtained = jsonpath.get(json_data, self.selector)
        if self.operator is Operator.EQUAL:
            return expected == obtained.to_string()
        if self.operator is Operator.NOT_EQUAL:
            return expected != obtained.to_string()
        if self.operator is Operator.INCLUDES:
            return any(expected == item.to_string() for item in obtained.array())
        if self.operator is Operator.EXCLUDES:
            return all(expected != item.to_string() for item in obtained.array())
        if self.operator is Operator.REGEX:
            try:
                regex = re.compile(expected)
            except re.error as err:
                raise ValueError(f"invalid regular expression: {err}") from err
            return regex.search(obtained.to_string()) is not None
        raise ValueError("unsupported operator for json authorization")

    def __str__(self) -> str:
        return f"{self.selector} {self.operator} {self.value}"


@dataclass
class And:
    left: Expression | None = None
    right: Expression | None = None

    def matches(self, json_data: str) -> bool:
        if self.left is not None and not self.left.matches(json_data):
            return False
        if self.right is not None and not self.right.matches(json_data):
            return False
        return True

    def __str__(self) -> str:
        return f"({self.left} && {self.right})"


@dataclass
class Or:
    left: Expression | None = None
    right: Expression | None = None

    def matches(self, json_data: str) -> bool:
        if self.left is not None and self.left.matches(json_data):
            return True
        if self.right is not None:
            return self.right.matches(json_data)
        return False

    def __str__(self) -> str:
        return f"({self.left} || {self.right})"


def all_of(*args: Expression) -> Expression:
    """Conjunction of all expressions; empty is always true."""
    if not args:
        return And()
    return And(args[0], all_of(*args[1:]))


def any_of(*args: Expression) -> Expression:
    """Disjunction of all expressions; empty is always false."""
    if not args:
        return Or()
    return Or(args[0], any_of(*args[1:]))