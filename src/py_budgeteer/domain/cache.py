from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

__all__ = ["FingerprintCache"]

T = TypeVar("T")


@dataclass
class FingerprintCache(Generic[T]):
    """Memoization of pure computations keyed by structural fingerprints.

    ``get_or_compute`` is atomic: concurrent callers asking for the same key
    compute the value once. Keys must capture everything the value depends on;
    ``base_cache_key`` covers structure, parameters and the priced amounts, so a
    reused cache only ever skips work.
    """

    _values: dict[Hashable, T] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    hits: int = 0
    misses: int = 0

    def get_or_compute(self, key: Hashable, factory: Callable[[], T]) -> T:
        with self._lock:
            if key in self._values:
                self.hits += 1
                return self._values[key]
            self.misses += 1
            value = factory()
            self._values[key] = value
            return value

    def get(self, key: Hashable) -> T | None:
        with self._lock:
            return self._values.get(key)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._values
