"""Run-scoped memo cache with single-flight population.

Successful computations are memoized for the lifetime of the cache.
Concurrent callers asking for the same uncached key share one
computation: the first caller runs it, the others wait on its future and
observe the same value or the same exception. Failures are never
memoized, so a later call for that key computes again.

The lock only guards the two dictionaries. It is never held while a
computation runs, so cached keys stay readable while a slow lookup for
another key is in flight.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from concurrent.futures import Future
from dataclasses import dataclass
from threading import Lock
from typing import Generic, TypeVar

from loguru import logger

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheStats:
    """Counters for one cache instance."""

    hits: int
    misses: int
    shared: int
    failures: int
    size: int


class SingleFlightCache(Generic[K, V]):
    """Unbounded memo cache; no eviction.

    Usage::

        cache: SingleFlightCache[str, str] = SingleFlightCache(name="HP labels")
        label = cache.get_or_compute("HP:0001250", lambda: provider.fetch_label("HP:0001250"))
    """

    def __init__(self, name: str = "cache") -> None:
        self.name = name
        self._values: dict[K, V] = {}
        self._in_flight: dict[K, Future[V]] = {}
        self._lock = Lock()
        self._hits = 0
        self._misses = 0
        self._shared = 0
        self._failures = 0

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the cached value for ``key``, computing it at most once.

        Args:
            key: Cache key.
            compute: Zero-argument callable producing the value.

        Returns:
            The memoized or freshly computed value.

        Raises:
            BaseException: Whatever ``compute`` raised, interrupts included,
                for this call and every call that was waiting on the same
                in-flight computation.
        """
        with self._lock:
            if key in self._values:
                self._hits += 1
                logger.debug("{} hit: {}", self.name, key)
                return self._values[key]
            future = self._in_flight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._in_flight[key] = future
                self._misses += 1
            else:
                self._shared += 1

        if not leader:
            logger.debug("{} waiting on in-flight lookup: {}", self.name, key)
            return future.result()

        logger.debug("{} miss: {}", self.name, key)
        try:
            value = compute()
        except BaseException as exc:
            # settle the future for interrupts too; followers block on it
            with self._lock:
                self._in_flight.pop(key, None)
                self._failures += 1
            future.set_exception(exc)
            raise

        with self._lock:
            self._values[key] = value
            self._in_flight.pop(key, None)
        future.set_result(value)
        return value

    def peek(self, key: K) -> V | None:
        """Return the memoized value without computing, or None."""
        with self._lock:
            return self._values.get(key)

    def clear(self) -> None:
        """Drop every memoized value. In-flight computations are unaffected."""
        with self._lock:
            self._values.clear()

    @property
    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                shared=self._shared,
                failures=self._failures,
                size=len(self._values),
            )

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
