"""
Correlation map: one report identity per alert identity and time window.

The first alert of a window wins a conditional write that only succeeds when
no live correlation entry exists. Every other alert of that window loses the
write and reads back the winner's entry.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from correlator.core.exceptions import StorageError
from correlator.schemas.records import (
    CORRELATION_SORT_KEY,
    CorrelationEntry,
    correlation_partition,
    decode,
    encode,
)
from correlator.schemas.report import Report, ReportStatus
from correlator.services.store.base import AbsentOrExpired, Conflict, Failed, KeyedStore
from correlator.utils.ids import IdFactory, new_report_id
from correlator.utils.timeutil import as_utc, utcnow

DEFAULT_WINDOW = timedelta(hours=3)


class CorrelationMap:
    """Allocates report identities per (alert identity, window)."""

    def __init__(
        self,
        store: KeyedStore,
        window: timedelta = DEFAULT_WINDOW,
        id_factory: IdFactory = new_report_id,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.window = window
        self._new_id = id_factory
        self._clock = clock or utcnow

    async def acquire_report(self, alert_identity: str, event_timestamp: datetime) -> Report:
        """
        Return the report for ``alert_identity`` at ``event_timestamp``.

        Status is NEW when this call opened the window, MORE when an entry
        that is still live at ``event_timestamp`` already existed. A live entry
        means its expiry is strictly after the event timestamp, so an alert
        stamped exactly at the previous expiry opens a new window.

        Raises:
            MalformedInputError: empty alert identity
            StorageError: the store failed; nothing is retried here
        """
        partition_key = correlation_partition(alert_identity)
        event_timestamp = as_utc(event_timestamp)
        now = self._clock()
        candidate = CorrelationEntry(report_id=self._new_id())
        record = encode(
            candidate,
            partition_key,
            CORRELATION_SORT_KEY,
            expires_at=event_timestamp + self.window,
            created_at=now,
        )

        outcome = await self.store.conditional_put(record, AbsentOrExpired(at=event_timestamp))

        if isinstance(outcome, Failed):
            raise outcome.error

        if isinstance(outcome, Conflict):
            existing = outcome.existing
            if existing is None:
                existing = await self.store.get(partition_key, CORRELATION_SORT_KEY)
            if existing is None:
                # Rejected by a live entry that is gone on read-back
                raise StorageError(
                    "get",
                    partition_key,
                    CORRELATION_SORT_KEY,
                    "correlation entry rejected the write but could not be read back",
                )
            entry = decode(existing, CorrelationEntry)
            return Report(
                id=entry.report_id,
                status=ReportStatus.MORE,
                created_at=existing.created_at or now,
            )

        return Report(id=candidate.report_id, status=ReportStatus.NEW, created_at=now)
