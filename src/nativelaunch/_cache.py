"""Lock-protected detection cache with compute-once semantics per key."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, TypeVar

from nativelaunch._types import BackendKind

T = TypeVar("T")


class DetectionCache:
    """Thread-safe key -> probe result store.

    A single lock guards the mapping. Each key additionally gets its own lock
    so that concurrent misses on one key run the probe once while probes for
    other keys proceed in parallel.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, Any] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._generation = 0

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        """Return the cached value for key, computing and storing it on a miss."""
        with self._lock:
            if key in self._values:
                return self._values[key]  # type: ignore[no-any-return]
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                if key in self._values:
                    return self._values[key]  # type: ignore[no-any-return]
                generation = self._generation

            value = compute()
            if value is BackendKind.AUTO:
                raise ValueError("auto is not a detection result")

            with self._lock:
                # A clear() during compute invalidates this result for storage.
                if generation == self._generation:
                    self._values[key] = value
            return value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def clear(self) -> None:
        """Drop every cached result; the next query re-runs its probe."""
        with self._lock:
            self._values = {}
            self._key_locks = {}
            self._generation += 1

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
