"""Time-limited resolution cache kept in the durable key-value store."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from drive_parents.drive.models import ResolutionResult
from drive_parents.errors import StoreError

if TYPE_CHECKING:
    from drive_parents.config import AppConfig
    from drive_parents.store.blob import BlobKeyValueStore

logger = logging.getLogger(__name__)

CACHE_TTL_MS = 300_000
DEFAULT_CACHE_PREFIX = "folderInfo_"

# Stored entry keys
ENTRY_DATA = "data"
ENTRY_TIMESTAMP = "timestamp"


def _now_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class CacheEntry:
    """A resolution result and the epoch-millisecond time it was fetched."""

    value: ResolutionResult
    fetched_at: float

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at < CACHE_TTL_MS

    def to_dict(self) -> dict[str, Any]:
        return {ENTRY_DATA: self.value.to_dict(), ENTRY_TIMESTAMP: self.fetched_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            value=ResolutionResult.from_dict(data[ENTRY_DATA]),
            fetched_at=float(data[ENTRY_TIMESTAMP]),
        )


class ResultCache:
    """Per-file resolution cache with a fixed five-minute TTL.

    Each entry is stored under ``prefix + file_id`` so that cache keys can be
    told apart from anything else in the store. Stale or unreadable entries
    are treated as misses and dropped when encountered.
    """

    def __init__(
        self,
        store: BlobKeyValueStore,
        prefix: str = DEFAULT_CACHE_PREFIX,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        """Initialise the cache.

        Args:
            store: Durable key-value store holding the entries.
            prefix: Key namespace for cache entries.
            clock: Returns the current time in epoch milliseconds.
        """
        self._store = store
        self._prefix = prefix
        self._clock = clock

    def _key(self, file_id: str) -> str:
        return f"{self._prefix}{file_id}"

    def _read_entry(self, key: str) -> CacheEntry | None:
        raw = self._store.get(key)
        if raw is None:
            return None
        try:
            return CacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            logger.warning("[result_cache] dropping malformed entry; key:%s", key)
            self._store.delete(key)
            return None

    def get(self, file_id: str) -> ResolutionResult | None:
        """Return the cached result for a file if it is still fresh.

        Args:
            file_id: Drive file ID.

        Returns:
            Cached ResolutionResult, or None on a miss.
        """
        key = self._key(file_id)
        entry = self._read_entry(key)
        if entry is None:
            logger.info("[result_cache] cache miss; file_id:%s", file_id)
            return None
        if not entry.is_fresh(self._clock()):
            logger.info("[result_cache] cache entry expired; file_id:%s", file_id)
            self._store.delete(key)
            return None
        logger.info("[result_cache] cache hit; file_id:%s", file_id)
        return entry.value

    def put(self, file_id: str, result: ResolutionResult) -> None:
        """Store a result, replacing any previous entry for the file."""
        entry = CacheEntry(value=result, fetched_at=self._clock())
        self._store.set(self._key(file_id), entry.to_dict())
        logger.info("[result_cache] stored; file_id:%s", file_id)

    def invalidate(self, file_id: str) -> None:
        """Drop the entry for one file, if any."""
        self._store.delete(self._key(file_id))

    def invalidate_all(self) -> int:
        """Drop every cache entry and leave all other store keys untouched.

        Returns:
            Number of entries removed.
        """
        keys = self._store.keys(self._prefix)
        for key in keys:
            self._store.delete(key)
        logger.info("[result_cache] cleared; entry_count:%d", len(keys))
        return len(keys)

    def count(self) -> int:
        """Number of stored entries, fresh or not."""
        return len(self._store.keys(self._prefix))

    def purge_expired(self) -> int:
        """Drop every entry that is stale or unreadable.

        A single bad entry never stops the sweep: an entry that cannot be
        decoded is deleted like a stale one, and an entry that cannot be
        deleted is logged and left for the next sweep.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        removed = 0
        for key in self._store.keys(self._prefix):
            try:
                raw = self._store.get(key)
            except StoreError:
                logger.warning("[result_cache] dropping unreadable entry; key:%s", key)
                fresh = False
            else:
                if raw is None:
                    continue
                try:
                    fresh = CacheEntry.from_dict(raw).is_fresh(now)
                except (KeyError, TypeError, ValueError):
                    fresh = False
            if fresh:
                continue
            try:
                self._store.delete(key)
            except StoreError:
                logger.error("[result_cache] could not delete entry; key:%s", key)
                continue
            removed += 1
        logger.info("[result_cache] purged expired entries; entry_count:%d", removed)
        return removed


def result_cache_from_config(config: AppConfig, store: BlobKeyValueStore) -> ResultCache:
    """Construct a ResultCache from application configuration.

    Args:
        config: Application configuration instance.
        store: Durable store shared with the credential store.

    Returns:
        Configured ResultCache instance.
    """
    return ResultCache(store=store, prefix=config.cache_prefix)
