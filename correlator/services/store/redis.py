"""Keyed store on Redis.

Layout, under a configurable prefix:
  - ``{prefix}:{len(pk)}:{pk}:{sk}`` -> JSON record, with a physical TTL of
    ``expires_at - now + grace``
  - ``{prefix}:idx:{pk}`` -> set of sort keys written under the partition

Both writes run as one Lua script so the predicate check, the record write
and the index update are atomic on the server.
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from redis.asyncio import Redis
from redis.exceptions import RedisError

from correlator.core.exceptions import DecodeError, StorageError
from correlator.services.store.base import (
    AbsentOrExpired,
    Conflict,
    Failed,
    KeyedStore,
    PutResult,
    StoreRecord,
    Written,
)


# KEYS[1] record key, KEYS[2] partition index key
# ARGV[1] record JSON, ARGV[2] sort key, ARGV[3] physical TTL in ms,
# ARGV[4] "1" to apply the predicate, ARGV[5] predicate moment in epoch microseconds
# Epoch microseconds stay below 2^53 so Lua numbers hold them exactly
PUT_SCRIPT = """
if ARGV[4] == '1' then
  local current = redis.call('GET', KEYS[1])
  if current then
    local stored = cjson.decode(current)
    if tonumber(stored['expires_at']) > tonumber(ARGV[5]) then
      return current
    end
  end
end
redis.call('SET', KEYS[1], ARGV[1], 'PX', ARGV[3])
redis.call('SADD', KEYS[2], ARGV[2])
local ttl = tonumber(ARGV[3])
if redis.call('PTTL', KEYS[2]) < ttl then
  redis.call('PEXPIRE', KEYS[2], ttl)
end
return false
"""


EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MICROSECOND = timedelta(microseconds=1)


def _to_us(moment: datetime) -> int:
    return (moment - EPOCH) // _MICROSECOND


def _from_us(value: int | float | None) -> datetime | None:
    if value is None:
        return None
    return EPOCH + int(value) * _MICROSECOND


def encode_record(record: StoreRecord) -> str:
    return json.dumps(
        {
            "pk": record.partition_key,
            "sk": record.sort_key,
            "expires_at": _to_us(record.expires_at),
            "created_at": _to_us(record.created_at) if record.created_at else None,
            "data": record.data,
        },
        separators=(",", ":"),
    )


def decode_record(raw: str, partition_key: str, sort_key: str) -> StoreRecord:
    try:
        doc = json.loads(raw)
        return StoreRecord(
            partition_key=doc["pk"],
            sort_key=doc["sk"],
            expires_at=_from_us(doc["expires_at"]),
            created_at=_from_us(doc.get("created_at")),
            data=doc.get("data") or {},
        )
    except (ValueError, KeyError, TypeError) as e:
        raise DecodeError(partition_key, sort_key, f"corrupt store envelope: {e}") from e


class RedisStore(KeyedStore):
    """Keyed store backed by Redis strings and per-partition index sets."""

    name = "redis"

    def __init__(
        self,
        redis: Redis,
        prefix: str = "correlator",
        grace: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] | None = None,
    ):
        self.redis = redis
        self.prefix = prefix
        self.grace = grace
        self._clock = clock or (lambda: datetime.now(UTC))
        self._put_script = redis.register_script(PUT_SCRIPT)

    def _record_key(self, partition_key: str, sort_key: str) -> str:
        # Length prefix keeps (pk, sk) pairs unambiguous whatever they contain
        return f"{self.prefix}:{len(partition_key)}:{partition_key}:{sort_key}"

    def _index_key(self, partition_key: str) -> str:
        return f"{self.prefix}:idx:{partition_key}"

    def _physical_ttl_ms(self, record: StoreRecord) -> int:
        remaining = record.expires_at - self._clock()
        ttl = max(remaining, timedelta(0)) + self.grace
        return max(int(ttl.total_seconds() * 1000), 1)

    async def _run_put(self, record: StoreRecord, condition: AbsentOrExpired | None):
        return await self._put_script(
            keys=[
                self._record_key(record.partition_key, record.sort_key),
                self._index_key(record.partition_key),
            ],
            args=[
                encode_record(record),
                record.sort_key,
                self._physical_ttl_ms(record),
                "1" if condition is not None else "0",
                _to_us(condition.at) if condition is not None else 0,
            ],
        )

    async def conditional_put(self, record: StoreRecord, condition: AbsentOrExpired) -> PutResult:
        """
        Run the predicate and the write in one script.

        Raises:
            DecodeError: the conflicting record at the key is not a valid envelope
        """
        try:
            current = await self._run_put(record, condition)
        except RedisError as e:
            return Failed(
                StorageError("conditional_put", record.partition_key, record.sort_key, str(e))
            )

        if current is None:
            return Written(record=record)
        return Conflict(existing=decode_record(current, record.partition_key, record.sort_key))

    async def put(self, record: StoreRecord) -> None:
        try:
            await self._run_put(record, None)
        except RedisError as e:
            raise StorageError("put", record.partition_key, record.sort_key, str(e)) from e

    async def get(self, partition_key: str, sort_key: str) -> StoreRecord | None:
        try:
            raw = await self.redis.get(self._record_key(partition_key, sort_key))
        except RedisError as e:
            raise StorageError("get", partition_key, sort_key, str(e)) from e
        if raw is None:
            return None
        return decode_record(raw, partition_key, sort_key)

    async def get_all(self, partition_key: str) -> list[StoreRecord]:
        try:
            sort_keys = sorted(await self.redis.smembers(self._index_key(partition_key)))
            if not sort_keys:
                return []
            values = await self.redis.mget(
                [self._record_key(partition_key, sk) for sk in sort_keys]
            )
        except RedisError as e:
            raise StorageError("get_all", partition_key, None, str(e)) from e

        records = []
        for sort_key, raw in zip(sort_keys, values):
            if raw is None:
                # Evicted by TTL after the index was read
                continue
            records.append(decode_record(raw, partition_key, sort_key))
        return records

    async def close(self) -> None:
        await self.redis.aclose()
