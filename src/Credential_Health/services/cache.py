"""Bounded in-memory TTL cache for credential health results.

Entries expire lazily on read: no background sweep runs. When the cache is
full, inserting a new key evicts the single oldest entry by insertion time.
All operations are serialized through one asyncio lock so concurrent batch
checks cannot interleave the capacity check with the insert.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Callable
from typing import Final, TypeAlias

from pydantic import BaseModel, ConfigDict

from Credential_Health.models.health import HealthResult
from Credential_Health.utils.exceptions import CacheStateError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_TTL: Final[datetime.timedelta] = datetime.timedelta(minutes=5)
DEFAULT_MAX_ENTRIES: Final[int] = 50

Clock: TypeAlias = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    """Default clock: the current aware UTC time."""
    return datetime.datetime.now(datetime.UTC)


class CacheEntry(BaseModel):
    """A cached health result with the time it was inserted."""

    model_config = ConfigDict(frozen=True)

    result: HealthResult
    inserted_at: datetime.datetime

    def is_expired(self, now: datetime.datetime, ttl: datetime.timedelta) -> bool:
        """Return True once the entry is at least *ttl* old."""
        return now - self.inserted_at >= ttl


class HealthCache:
    """TTL + capacity bounded store of the last known result per service.

    Usage::

        cache = HealthCache(ttl=datetime.timedelta(minutes=5), max_entries=50)

        cached = await cache.get("stripe-secret-key")
        if cached is None:
            result = await run_check("stripe-secret-key")
            await cache.put("stripe-secret-key", result)

    Keys are expected to be canonical service identifiers; normalization is
    the caller's responsibility.
    """

    def __init__(
        self,
        *,
        ttl: datetime.timedelta = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock = utc_now,
    ) -> None:
        if max_entries < 1:
            msg = f"max_entries must be >= 1, got {max_entries}"
            raise ValueError(msg)
        if ttl <= datetime.timedelta(0):
            msg = f"ttl must be positive, got {ttl}"
            raise ValueError(msg)

        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        # Bumped by invalidate / invalidate_all so in-flight writers can detect them
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._lock = asyncio.Lock()

        logger.info(
            "HealthCache initialized: ttl=%ss, max_entries=%d",
            int(ttl.total_seconds()),
            max_entries,
        )

    @property
    def ttl(self) -> datetime.timedelta:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    async def get(self, key: str) -> HealthResult | None:
        """Return the cached result for *key*, or None on miss or expiry.

        Expired entries are removed as a side effect.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss: %s", key)
                return None
            if entry.is_expired(self._clock(), self._ttl):
                del self._entries[key]
                logger.debug("Cache expired: %s", key)
                return None
            logger.debug("Cache hit: %s", key)
            return entry.result

    async def put(self, key: str, result: HealthResult) -> None:
        """Store *result* under *key*, evicting the oldest entry if full.

        Replacing an existing key never evicts anything.

        Raises:
            CacheStateError: If the size bookkeeping is found corrupted.
        """
        async with self._lock:
            self._store(key, result)

    async def generation(self, key: str) -> tuple[int, int]:
        """Token identifying the current invalidation state of *key*.

        Read it before starting a slow computation and hand it back to
        :meth:`put_if_generation` afterwards.
        """
        async with self._lock:
            return self._epoch, self._generations.get(key, 0)

    async def put_if_generation(
        self,
        key: str,
        generation: tuple[int, int],
        result: HealthResult,
    ) -> bool:
        """Store *result* only if *key* was not invalidated since *generation*.

        Returns:
            True if the result was stored, False if the write was dropped.
        """
        async with self._lock:
            if generation != (self._epoch, self._generations.get(key, 0)):
                logger.debug("Cache write dropped: %s was invalidated meanwhile", key)
                return False
            self._store(key, result)
            return True

    async def invalidate(self, key: str) -> None:
        """Remove one key. Missing keys are ignored."""
        async with self._lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1
        logger.debug("Cache invalidated: %s", key)

    async def invalidate_all(self) -> None:
        """Drop every cached result."""
        async with self._lock:
            removed_count = len(self._entries)
            self._entries.clear()
            self._generations.clear()
            self._epoch += 1
        logger.debug("Cache cleared: %d entries removed", removed_count)

    async def size(self) -> int:
        """Number of stored entries, including ones not yet lazily expired."""
        async with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers (caller must hold the lock)
    # ------------------------------------------------------------------

    def _evict_oldest(self) -> None:
        oldest_key = min(self._entries, key=lambda k: self._entries[k].inserted_at)
        del self._entries[oldest_key]
        logger.debug("Cache full: evicted oldest entry %s", oldest_key)

    def _store(self, key: str, result: HealthResult) -> None:
        now = self._clock()
        if key in self._entries:
            # Re-insert at the end so dict order tracks insertion time on ties
            del self._entries[key]
        elif len(self._entries) >= self._max_entries:
            self._evict_oldest()
        self._entries[key] = CacheEntry(result=result, inserted_at=now)

        if len(self._entries) > self._max_entries:
            msg = (
                f"Cache holds {len(self._entries)} entries, "
                f"exceeding capacity {self._max_entries}"
            )
            raise CacheStateError(msg, service=key)

        logger.debug("Cache set: %s (status=%s)", key, result.status)
