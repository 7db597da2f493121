"""In-process keyed store.

Used by the test suite and for single-process deployments. Predicates are
evaluated for real, so it behaves like the networked backends under
concurrent callers within one event loop.
"""

import asyncio
from datetime import datetime

from correlator.services.store.base import (
    AbsentOrExpired,
    Conflict,
    KeyedStore,
    PutResult,
    StoreRecord,
    Written,
)


class MemoryStore(KeyedStore):
    """Partition key -> insertion-ordered {sort key: record}."""

    name = "memory"

    def __init__(self) -> None:
        self._partitions: dict[str, dict[str, StoreRecord]] = {}
        self._lock = asyncio.Lock()

    async def conditional_put(self, record: StoreRecord, condition: AbsentOrExpired) -> PutResult:
        # Yield first so that concurrent callers actually interleave here
        await asyncio.sleep(0)
        async with self._lock:
            partition = self._partitions.setdefault(record.partition_key, {})
            existing = partition.get(record.sort_key)
            if not condition.allows(existing):
                return Conflict(existing=existing)
            partition[record.sort_key] = record
            return Written(record=record)

    async def put(self, record: StoreRecord) -> None:
        await asyncio.sleep(0)
        async with self._lock:
            self._partitions.setdefault(record.partition_key, {})[record.sort_key] = record

    async def get(self, partition_key: str, sort_key: str) -> StoreRecord | None:
        return self._partitions.get(partition_key, {}).get(sort_key)

    async def get_all(self, partition_key: str) -> list[StoreRecord]:
        return list(self._partitions.get(partition_key, {}).values())

    async def purge_expired(self, now: datetime) -> int:
        """Drop records that are no longer live at ``now``. Returns the count removed."""
        removed = 0
        async with self._lock:
            for partition_key in list(self._partitions):
                partition = self._partitions[partition_key]
                for sort_key in [sk for sk, rec in partition.items() if not rec.is_live_at(now)]:
                    del partition[sort_key]
                    removed += 1
                if not partition:
                    del self._partitions[partition_key]
        return removed

    def __len__(self) -> int:
        return sum(len(partition) for partition in self._partitions.values())
