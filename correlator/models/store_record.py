"""Generic keyed record table backing the postgres store."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from correlator.db.base import Base


class StoreRecordRow(Base):
    """One (partition key, sort key) record.

    Every entity the correlator persists lives in this table; the partition
    key prefix tells them apart. Rows are never updated except when a
    conditional write replaces an expired row under the same key.
    """

    __tablename__ = "store_records"

    partition_key: Mapped[str] = mapped_column(String(512), primary_key=True)
    sort_key: Mapped[str] = mapped_column(String(512), primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_store_records_expires_at", "expires_at"),
    )
