"""
Append-only logs scoped to a report.

Two instances exist: alert snapshots (every alert that joined the report) and
report sections (every inspection result). Entries are written unconditionally
under a fresh sub-key, never updated, and read back as an unordered set.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Generic, TypeVar

from pydantic import BaseModel

from correlator.schemas.alert import Alert
from correlator.schemas.records import (
    AlertSnapshot,
    ReportSectionEntry,
    alert_log_partition,
    decode,
    encode,
    require_key_part,
    section_log_partition,
)
from correlator.schemas.report import ReportSection
from correlator.services.store.base import KeyedStore
from correlator.utils.ids import IdFactory, new_token
from correlator.utils.timeutil import as_utc, utcnow

EntryT = TypeVar("EntryT", bound=BaseModel)


class AppendOnlyLog(Generic[EntryT]):
    """Unconditional writes and whole-partition reads of one entry type."""

    entry_model: type[EntryT]

    def __init__(
        self,
        store: KeyedStore,
        partition: Callable[[str], str],
        entry_model: type[EntryT],
        ttl: timedelta,
        token_factory: IdFactory = new_token,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self._partition = partition
        self.entry_model = entry_model
        self.ttl = ttl
        self._new_token = token_factory
        self._clock = clock or utcnow

    async def append(
        self,
        report_id: str,
        sub_key: str,
        entry: EntryT,
        expires_at: datetime,
    ) -> None:
        """
        Write ``entry`` under ``sub_key``. The caller guarantees ``sub_key`` is
        unique for this report, so appends never overwrite each other.

        Raises:
            MalformedInputError: empty report id or sub key
            StorageError: the store failed; nothing is retried here
        """
        require_key_part("sub_key", sub_key)
        record = encode(
            entry,
            self._partition(report_id),
            sub_key,
            expires_at=expires_at,
            created_at=self._clock(),
        )
        await self.store.put(record)

    async def fetch_all(self, report_id: str) -> list[EntryT]:
        """
        Read and decode every entry of ``report_id``.

        An empty list is a valid answer. One undecodable record fails the whole
        fetch with DecodeError naming that record.
        """
        records = await self.store.get_all(self._partition(report_id))
        return [decode(record, self.entry_model) for record in records]


class AlertSnapshotLog(AppendOnlyLog[AlertSnapshot]):
    """Archive of every alert that joined a report."""

    def __init__(
        self,
        store: KeyedStore,
        ttl: timedelta = timedelta(hours=3),
        token_factory: IdFactory = new_token,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(store, alert_log_partition, AlertSnapshot, ttl, token_factory, clock)

    async def save(self, report_id: str, alert: Alert) -> str:
        """Archive ``alert``; it expires ``ttl`` after its own event timestamp."""
        sub_key = self._new_token()
        await self.append(
            report_id,
            sub_key,
            AlertSnapshot(alert=alert),
            expires_at=as_utc(alert.timestamp) + self.ttl,
        )
        return sub_key

    async def fetch(self, report_id: str) -> list[Alert]:
        return [snapshot.alert for snapshot in await self.fetch_all(report_id)]


class ReportSectionLog(AppendOnlyLog[ReportSectionEntry]):
    """Inspection results, grouped by attribute hash through the sub-key."""

    def __init__(
        self,
        store: KeyedStore,
        ttl: timedelta = timedelta(hours=24),
        token_factory: IdFactory = new_token,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(
            store, section_log_partition, ReportSectionEntry, ttl, token_factory, clock
        )

    async def save(self, section: ReportSection) -> str:
        """Record an inspection result; it expires ``ttl`` after the write."""
        sub_key = f"{section.attribute.hash()}/{self._new_token()}"
        await self.append(
            section.report_id,
            sub_key,
            ReportSectionEntry(section=section),
            expires_at=self._clock() + self.ttl,
        )
        return sub_key

    async def fetch(self, report_id: str) -> list[ReportSection]:
        return [entry.section for entry in await self.fetch_all(report_id)]

    async def fetch_grouped(self, report_id: str) -> dict[str, list[ReportSection]]:
        """Sections keyed by the hash of the attribute they describe."""
        grouped: dict[str, list[ReportSection]] = {}
        for section in await self.fetch(report_id):
            grouped.setdefault(section.attribute.hash(), []).append(section)
        return grouped
