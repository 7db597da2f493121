"""Keyed conditional store backends."""

from datetime import timedelta

from correlator.core.config import Settings
from correlator.services.store.base import (
    AbsentOrExpired,
    Conflict,
    Failed,
    KeyedStore,
    PutResult,
    StoreRecord,
    Written,
)
from correlator.services.store.memory import MemoryStore


def create_store(config: Settings) -> KeyedStore:
    """Build the store selected by ``STORE_BACKEND``."""
    if config.STORE_BACKEND == "memory":
        return MemoryStore()

    if config.STORE_BACKEND == "redis":
        import redis.asyncio as redis

        from correlator.services.store.redis import RedisStore

        client = redis.from_url(config.REDIS_URL, decode_responses=True)
        return RedisStore(
            client,
            prefix=config.REDIS_KEY_PREFIX,
            grace=timedelta(seconds=config.STORE_EXPIRY_GRACE_SECONDS),
        )

    from correlator.db.session import create_engine, create_session_maker
    from correlator.services.store.postgres import PostgresStore

    engine = create_engine(config)
    return PostgresStore(create_session_maker(engine), engine=engine)


__all__ = [
    "AbsentOrExpired",
    "Conflict",
    "Failed",
    "KeyedStore",
    "MemoryStore",
    "PutResult",
    "StoreRecord",
    "Written",
    "create_store",
]
