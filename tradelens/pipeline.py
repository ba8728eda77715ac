"""Dependency-tracked derived entities.

Each derived value declares the inputs (or other derived values) it reads.
Setting an input invalidates only its transitive dependents; everything else
keeps its cached value until asked for again.
"""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

_MISSING = object()


def _unchanged(old: Any, new: Any) -> bool:
    if old is new:
        return True
    # only compare plain values; containers of records are treated as new
    if isinstance(new, (str, int, float, bool, tuple, frozenset)):
        return type(old) is type(new) and old == new
    return False


class DerivedGraph:
    def __init__(self) -> None:
        self._inputs: dict[str, Any] = {}
        self._rules: dict[str, tuple[Callable[..., Any], tuple[str, ...]]] = {}
        self._cache: dict[str, Any] = {}
        self._dependents: dict[str, set[str]] = {}
        self.compute_counts: dict[str, int] = {}

    def define(self, name: str, fn: Callable[..., Any], inputs: tuple[str, ...] | list[str]) -> None:
        """Register ``name = fn(*inputs)``. Inputs must already be known."""
        if name in self._inputs or name in self._rules:
            raise ValueError(f"{name!r} is already defined")
        for dep in inputs:
            if dep not in self._inputs and dep not in self._rules:
                raise KeyError(f"{name!r} depends on unknown {dep!r}")
        self._rules[name] = (fn, tuple(inputs))
        for dep in inputs:
            self._dependents.setdefault(dep, set()).add(name)
        self.compute_counts[name] = 0

    def set_input(self, name: str, value: Any) -> set[str]:
        """Set an input; returns the names invalidated by the change."""
        if name in self._rules:
            raise ValueError(f"{name!r} is derived, not an input")
        old = self._inputs.get(name, _MISSING)
        self._inputs[name] = value
        if old is not _MISSING and _unchanged(old, value):
            return set()
        return self.invalidate(name)

    def invalidate(self, name: str) -> set[str]:
        dropped: set[str] = set()
        stack = list(self._dependents.get(name, ()))
        while stack:
            dep = stack.pop()
            if dep in dropped:
                continue
            dropped.add(dep)
            self._cache.pop(dep, None)
            stack.extend(self._dependents.get(dep, ()))
        if dropped:
            logger.debug("%s changed; invalidated %s", name, sorted(dropped))
        return dropped

    def get(self, name: str) -> Any:
        if name in self._inputs:
            return self._inputs[name]
        if name not in self._rules:
            raise KeyError(name)
        if name not in self._cache:
            fn, inputs = self._rules[name]
            self._cache[name] = fn(*(self.get(dep) for dep in inputs))
            self.compute_counts[name] += 1
        return self._cache[name]

    def is_cached(self, name: str) -> bool:
        return name in self._cache

    def __contains__(self, name: str) -> bool:
        return name in self._inputs or name in self._rules
