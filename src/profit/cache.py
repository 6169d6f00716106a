"""
Profit Share Cache

In-process memo of the product -> partner -> percentage map.

- Whole-snapshot replacement: readers see the old map or the new one, never a mix
- Explicit invalidation after any share configuration is saved
- Time-based expiry as a fallback against stale reads
- Injectable clock for deterministic TTL tests

Example:
    cache = ProfitShareCache(loader=load_profit_share_snapshot, ttl_seconds=300)
    snapshot = await cache.get()
    cache.invalidate()
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Mapping, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class ProfitShareSnapshot:
    """Known partners plus the percentage map for every configured product"""
    partners: Tuple[str, ...]
    shares: Mapping[str, Mapping[str, float]] = field(default_factory=dict)

    def for_product(self, product_id: str) -> Optional[Mapping[str, float]]:
        return self.shares.get(product_id)


SnapshotLoader = Callable[[], Awaitable[ProfitShareSnapshot]]


class ProfitShareCache:
    """
    TTL cache holding a single ProfitShareSnapshot.

    Refreshes are serialized by a lock so concurrent readers wait for the
    in-flight load instead of issuing their own.
    """

    def __init__(
        self,
        loader: SnapshotLoader,
        ttl_seconds: float = 300.0,
        clock: Clock = time.monotonic,
    ):
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: Optional[ProfitShareSnapshot] = None
        self._loaded_at = 0.0
        self._generation = 0
        self._lock = asyncio.Lock()
        self.refresh_count = 0

    def _is_fresh(self) -> bool:
        if self._snapshot is None:
            return False
        return (self._clock() - self._loaded_at) < self.ttl_seconds

    async def get(self) -> ProfitShareSnapshot:
        """Current snapshot, loading it when missing or expired"""
        if self._is_fresh():
            return self._snapshot

        async with self._lock:
            # Another waiter may have refreshed while we queued
            if self._is_fresh():
                return self._snapshot

            generation = self._generation
            snapshot = await self._loader()
            self.refresh_count += 1

            # An invalidate() during the load means the result may already be stale
            if generation == self._generation:
                self._snapshot = snapshot
                self._loaded_at = self._clock()

            logger.debug(
                "Profit share cache refreshed",
                products=len(snapshot.shares),
                partners=list(snapshot.partners),
            )
            return snapshot

    def invalidate(self) -> None:
        """Drop the cached snapshot; the next get() reloads"""
        self._generation += 1
        self._snapshot = None
        self._loaded_at = 0.0
        logger.debug("Profit share cache invalidated")

    @property
    def is_loaded(self) -> bool:
        return self._is_fresh()
