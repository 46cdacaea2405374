"""Readiness checks that aggregate observable components."""

from __future__ import annotations

import threading
from typing import Protocol, Sequence
from urllib.parse import parse_qs, urlsplit


class Observable(Protocol):
    def ready(self, includes: Sequence[str], excludes: Sequence[str], verbose: bool) -> None:
        """Return normally when ready; raise otherwise."""


class Handler:
    """Readiness handler named ``name`` that checks its observables in turn."""

    def __init__(self, name: str, observables: Sequence[Observable] = ()) -> None:
        self.name = name
        self._observables: list[Observable] = list(observables)
        self._lock = threading.RLock()

    def observe(self, *args: Observable) -> None:
        with self._lock:
            self._observables.extend(args)

    def handle_readyz_check(self, url: str) -> None:
        """Check readiness for a request URL; the first failure propagates."""
        parts = urlsplit(url)
        query = parse_qs(parts.query, keep_blank_values=True)
        includes = list(query.get("include", []))
        excludes = list(query.get("exclude", []))

        if parts.path.endswith(f"/{self.name}") or parts.path.endswith(f"/{self.name}/"):
            includes.append(self.name)

        verbose = "verbose" in query

        with self._lock:
            for observable in self._observables:
                observable.ready(list(includes), list(excludes), verbose)