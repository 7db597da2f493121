"""Keyed store on a single Postgres table.

The conditional write is one ``INSERT ... ON CONFLICT DO UPDATE ... WHERE``
statement: Postgres locks the conflicting row and only replaces it when the
WHERE clause (stored row expired) holds, which makes the predicate atomic
with the write without explicit locking.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from correlator.core.exceptions import StorageError
from correlator.core.logging import get_logger
from correlator.models.store_record import StoreRecordRow
from correlator.services.store.base import (
    AbsentOrExpired,
    Conflict,
    Failed,
    KeyedStore,
    PutResult,
    StoreRecord,
    Written,
)

logger = get_logger(__name__)


def _to_record(row: StoreRecordRow) -> StoreRecord:
    return StoreRecord(
        partition_key=row.partition_key,
        sort_key=row.sort_key,
        expires_at=row.expires_at,
        created_at=row.created_at,
        data=dict(row.data or {}),
    )


def _row_values(record: StoreRecord) -> dict:
    return {
        "partition_key": record.partition_key,
        "sort_key": record.sort_key,
        "expires_at": record.expires_at,
        "created_at": record.created_at,
        "data": record.data,
    }


class PostgresStore(KeyedStore):
    """Keyed store backed by the ``store_records`` table."""

    name = "postgres"

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ):
        self._session_maker = session_maker
        self._engine = engine

    async def conditional_put(self, record: StoreRecord, condition: AbsentOrExpired) -> PutResult:
        stmt = pg_insert(StoreRecordRow).values(**_row_values(record))
        stmt = stmt.on_conflict_do_update(
            index_elements=[StoreRecordRow.partition_key, StoreRecordRow.sort_key],
            set_={
                "expires_at": stmt.excluded.expires_at,
                "created_at": stmt.excluded.created_at,
                "data": stmt.excluded.data,
            },
            where=StoreRecordRow.expires_at <= condition.at,
        ).returning(StoreRecordRow.partition_key)

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                written = result.first() is not None
                existing = None
                if not written:
                    existing = await session.get(
                        StoreRecordRow, (record.partition_key, record.sort_key)
                    )
                await session.commit()
        except SQLAlchemyError as e:
            return Failed(
                StorageError("conditional_put", record.partition_key, record.sort_key, str(e))
            )

        if written:
            return Written(record=record)
        return Conflict(existing=_to_record(existing) if existing is not None else None)

    async def put(self, record: StoreRecord) -> None:
        stmt = pg_insert(StoreRecordRow).values(**_row_values(record))
        stmt = stmt.on_conflict_do_update(
            index_elements=[StoreRecordRow.partition_key, StoreRecordRow.sort_key],
            set_={
                "expires_at": stmt.excluded.expires_at,
                "created_at": stmt.excluded.created_at,
                "data": stmt.excluded.data,
            },
        )
        try:
            async with self._session_maker() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError("put", record.partition_key, record.sort_key, str(e)) from e

    async def get(self, partition_key: str, sort_key: str) -> StoreRecord | None:
        try:
            async with self._session_maker() as session:
                row = await session.get(StoreRecordRow, (partition_key, sort_key))
        except SQLAlchemyError as e:
            raise StorageError("get", partition_key, sort_key, str(e)) from e
        return _to_record(row) if row is not None else None

    async def get_all(self, partition_key: str) -> list[StoreRecord]:
        query = select(StoreRecordRow).where(StoreRecordRow.partition_key == partition_key)
        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StorageError("get_all", partition_key, None, str(e)) from e
        return [_to_record(row) for row in rows]

    async def purge_expired(self, before: datetime) -> int:
        """
        Delete rows that expired before ``before``.

        Postgres has no native TTL, so a scheduled task should call this.
        Pass a cutoff comfortably in the past: late alerts are evaluated
        against their event time and still need the expired entry to exist
        until they can no longer arrive. Returns the number of deleted rows.
        """
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    delete(StoreRecordRow).where(StoreRecordRow.expires_at < before)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError("purge_expired", "*", None, str(e)) from e

        removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d expired store records", removed)
        return removed

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
