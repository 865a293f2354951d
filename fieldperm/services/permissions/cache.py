"""
Permission Cache
Read-through cache of per-table override snapshots
"""

import asyncio
from typing import Any, Dict, FrozenSet, Iterator, Optional, Tuple

from fieldperm.core.logging import get_logger
from fieldperm.core.roles import Role
from fieldperm.monitoring import record_cache_event
from fieldperm.services.permissions.models import FieldOverride
from fieldperm.services.permissions.store import FieldOverrideStore

logger = get_logger(__name__)


class TableOverrides:
    """Immutable snapshot of one table's overrides, indexed by (field, role)"""

    __slots__ = ("table_id", "overrides", "_index")

    def __init__(self, table_id: str, overrides: FrozenSet[FieldOverride]):
        self.table_id = table_id
        self.overrides = overrides
        self._index: Dict[Tuple[str, Role], FieldOverride] = {o.key: o for o in overrides}

    def get(self, field_id: str, role: Role) -> Optional[FieldOverride]:
        return self._index.get((field_id, role))

    def __len__(self) -> int:
        return len(self.overrides)

    def __iter__(self) -> Iterator[FieldOverride]:
        return iter(self.overrides)


class PermissionCache:
    """
    Read-through cache of overrides keyed by table ID

    Entries never expire; they are dropped whole by invalidate(). A table's
    snapshot is replaced in a single assignment, so readers see either the
    old or the new generation of overrides, never a mix.

    A single version counter is bumped by every invalidation. A load that
    started before any invalidation is not stored after it, so a slow read
    cannot repopulate the cache with pre-mutation overrides.
    """

    def __init__(self, store: FieldOverrideStore):
        """Initialize the cache on top of an override store"""
        self._store = store
        self._entries: Dict[str, TableOverrides] = {}
        self._version = 0
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._invalidations = 0
        logger.info("PermissionCache initialized")

    async def get(self, table_id: str) -> TableOverrides:
        """
        Overrides of a table, loading them from the store on a miss

        Raises:
            StoreUnavailableException: If the store load fails
        """
        async with self._lock:
            entry = self._entries.get(table_id)
            if entry is not None:
                self._hits += 1
                record_cache_event("hit")
                return entry
            self._misses += 1
            version = self._version

        record_cache_event("miss")
        logger.debug(f"Cache miss: {table_id}")
        entry = TableOverrides(table_id, await self._store.load(table_id))

        async with self._lock:
            if self._version == version:
                self._entries[table_id] = entry
            else:
                logger.debug(f"Discarding load of {table_id} that raced an invalidation")

        return entry

    async def invalidate(self, table_id: str) -> bool:
        """
        Drop the cached entry of a table

        Returns:
            True if an entry was dropped
        """
        async with self._lock:
            self._version += 1
            self._invalidations += 1
            dropped = self._entries.pop(table_id, None) is not None

        record_cache_event("invalidate")
        logger.debug(f"Cache invalidated: {table_id}")
        return dropped

    async def invalidate_all(self) -> int:
        """
        Drop every cached entry (session teardown, role-context switch)

        Returns:
            Number of entries dropped
        """
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._version += 1
            self._invalidations += 1

        record_cache_event("invalidate")
        logger.info(f"Cache cleared: {count} entries")
        return count

    async def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics

        Returns:
            Dictionary with cache stats
        """
        async with self._lock:
            return {
                "total_entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "invalidations": self._invalidations,
            }
