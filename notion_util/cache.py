"""
Compute-once caches with single-flight resolution.

Collection descriptors and today's note id are expensive to resolve (one
or more round trips) and never change for the life of a process, so they
are resolved once per key and kept until the owning object goes away.
There is no expiry and no invalidation.

Concurrent callers asking for the same uncached key share one in-flight
computation instead of each doing the work.  This matters for today's
note, where a duplicate resolution would create a duplicate page.
A failed computation is not cached; the next caller retries.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class OnceCache(Generic[K, V]):
    """Key -> value store where each key is computed at most once at a time."""

    def __init__(self, name: str = "cache"):
        self._name = name
        self._values: dict[K, V] = {}
        self._inflight: dict[K, asyncio.Future] = {}

    def get(self, key: K) -> Optional[V]:
        return self._values.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def set(self, key: K, value: V) -> None:
        self._values[key] = value

    async def get_or_compute(self, key: K, compute: Callable[[], Awaitable[V]]) -> V:
        """Return the cached value for ``key``, computing it if needed.

        If another task is already computing ``key``, wait for its result
        (or its exception) instead of starting a second computation.
        """
        if key in self._values:
            return self._values[key]

        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("%s: joining in-flight resolution of %r", self._name, key)
            return await asyncio.shield(pending)

        pending = asyncio.ensure_future(compute())
        self._inflight[key] = pending
        # Settled by the computation, not by whichever caller started it
        pending.add_done_callback(lambda fut: self._settle(key, fut))
        return await asyncio.shield(pending)

    def _settle(self, key: K, fut: asyncio.Future) -> None:
        if self._inflight.get(key) is fut:
            del self._inflight[key]
        if fut.cancelled() or fut.exception() is not None:
            return
        self._values[key] = fut.result()
        logger.debug("%s: cached %r", self._name, key)
