"""Index of auth configs keyed by host names, with wildcard support.

Keys are split on dots and stored in reverse label order as a tree, so
``api.acme.com`` lives under ``com`` -> ``acme`` -> ``api``. A ``*`` label
matches any host below the longest path the tree shares with a lookup key.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

_SEPARATOR = "."
_ROOT_LABEL = ""
_WILDCARD = "*"


class AuthConfigExistsError(ValueError):
    """Raised when a key is already indexed and override was not requested."""


@dataclass
class _Entry:
    config_id: str
    config: Any


@dataclass(eq=False)
class _Node:
    label: str
    parent: _Node | None = None
    entry: _Entry | None = None
    children: dict[str, _Node] = field(default_factory=dict)

    def longest_common(self, key: str) -> tuple[_Node, str]:
        """The deepest node along ``key`` and the part of the key left over."""
        labels = key.split(_SEPARATOR)
        if labels[0] != self.label:
            raise RuntimeError("cannot traverse index tree")
        node = self
        i = 1
        while i < len(labels):
            child = node.children.get(labels[i])
            if child is None:
                break
            node = child
            i += 1
        return node, _SEPARATOR.join(labels[i:])

    def lookup(self, key: str) -> _Entry | None:
        node, tail = self.longest_common(key)
        if tail == "" and node.entry is not None:
            return node.entry
        current: _Node | None = node
        while current is not None:
            wildcard = current.children.get(_WILDCARD)
            if wildcard is not None and wildcard.entry is not None:
                return wildcard.entry
            current = current.parent
        return None

    def insert(self, key: str, entry: _Entry, override: bool) -> None:
        target, tail = self.longest_common(key)
        if tail == "":
            if not override:
                raise AuthConfigExistsError(f"authconfig already exists in the index: {key}")
            target.entry = entry
            return
        labels = tail.split(_SEPARATOR)
        top = _Node(labels[0], parent=target)
        current = top
        for label in labels[1:]:
            child = _Node(label, parent=current)
            current.children[label] = child
            current = child
        current.entry = entry
        target.children[labels[0]] = top

    def entries(self) -> list[_Entry]:
        found = [self.entry] if self.entry is not None else []
        for child in self.children.values():
            found.extend(child.entries())
        return found


def _revert_key(key: str) -> str:
    labels = key.split(_SEPARATOR)
    labels.append(_ROOT_LABEL)
    return _SEPARATOR.join(reversed(labels))


class Index:
    """Thread-safe tree index of auth configs by host."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._root = _Node(_ROOT_LABEL)
        self._keys: dict[str, list[str]] = {}

    def set(self, config_id: str, key: str, config: Any, override: bool) -> None:
        """Index ``config`` under ``key``; raises AuthConfigExistsError on clash."""
        with self._lock:
            self._root.insert(_revert_key(key), _Entry(config_id, config), override)
            self._keys.setdefault(config_id, []).append(key)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._root.lookup(_revert_key(key))
            return entry.config if entry is not None else None

    def delete(self, config_id: str) -> None:
        """Remove every entry indexed for ``config_id``."""
        with self._lock:
            for key in self._keys.get(config_id, []):
                self._delete_key(config_id, key)

    def delete_key(self, config_id: str, key: str) -> None:
        with self._lock:
            self._delete_key(config_id, key)

    def list(self) -> list[Any]:
        with self._lock:
            return [entry.config for entry in self._root.entries()]

    def empty(self) -> bool:
        with self._lock:
            return not self._keys

    def find_id(self, key: str) -> str | None:
        """The id of the config that ``key`` resolves to, or None."""
        with self._lock:
            entry = self._root.lookup(_revert_key(key))
            return entry.config_id if entry is not None else None

    def find_keys(self, config_id: str) -> list[str]:
        with self._lock:
            return list(self._keys.get(config_id, []))

    def _delete_key(self, config_id: str, key: str) -> None:
        node, _ = self._root.longest_common(_revert_key(key))
        if node.entry is not None and node.entry.config_id == config_id:
            node.entry = None