"""Locator - lazily builds and retains one instance per registered key.

Usage:
    locator.register(AuthorMapper, lambda: AuthorMapper(...))
    locator.resolve(AuthorMapper)   # built on first call, reused afterwards
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from typing import Any

from row_mapper.core.exceptions import NotFoundError


class Locator:
    """Registry of factories plus a memoization cache.

    Each key is constructed at most once, under its own lock, so two
    threads resolving the same key never build two instances while
    unrelated keys do not wait on each other.
    """

    def __init__(self) -> None:
        self._factories: dict[Hashable, Callable[[], Any]] = {}
        self._instances: dict[Hashable, Any] = {}
        self._locks: dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def register(self, key: Hashable, factory: Callable[[], Any]) -> None:
        """Register (or replace) the factory for *key*.

        Replacing a factory drops any instance already built from the old one.
        """
        with self._guard:
            self._factories[key] = factory
            self._instances.pop(key, None)
            self._locks.setdefault(key, threading.Lock())

    def has(self, key: Hashable) -> bool:
        """Check if a factory is registered for *key*."""
        return key in self._factories

    def resolve(self, key: Hashable) -> Any:
        """Return the instance for *key*, building it on first use.

        Raises:
            NotFoundError: If no factory is registered for *key*.
        """
        try:
            return self._instances[key]
        except KeyError:
            pass

        with self._guard:
            try:
                factory = self._factories[key]
            except KeyError:
                raise NotFoundError(key) from None
            lock = self._locks[key]

        with lock:
            if key not in self._instances:
                self._instances[key] = factory()
            return self._instances[key]

    @property
    def keys(self) -> list[Hashable]:
        """Registered keys, in registration order."""
        return list(self._factories)

    def __contains__(self, key: object) -> bool:
        return key in self._factories

    def __len__(self) -> int:
        """Number of registered factories."""
        return len(self._factories)
