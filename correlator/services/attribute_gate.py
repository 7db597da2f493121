"""Attribute dedup gate: admit each attribute of a report for inspection at most once."""

from collections.abc import Callable
from datetime import datetime, timedelta

from correlator.schemas.alert import Attribute
from correlator.schemas.records import AttributeAdmission, attribute_gate_partition, encode
from correlator.services.store.base import AbsentOrExpired, Failed, KeyedStore, Written
from correlator.utils.timeutil import as_utc, utcnow

DEFAULT_TTL = timedelta(hours=3)


class AttributeGate:
    """Per-report admission of attributes, keyed by attribute hash."""

    def __init__(
        self,
        store: KeyedStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.ttl = ttl
        self._clock = clock or utcnow

    async def admit(self, report_id: str, attribute: Attribute) -> bool:
        """
        Return True if this call admitted ``attribute`` for ``report_id``.

        Only the admitting caller should inspect the attribute. A False result
        means a prior or concurrent call already admitted the same key, type
        and value within the admission TTL.

        Raises:
            MalformedInputError: empty report id
            StorageError: the store failed; the attribute is neither admitted
                nor rejected
        """
        partition_key = attribute_gate_partition(report_id)
        now = self._clock()
        observed_at = as_utc(attribute.timestamp) if attribute.timestamp else now
        record = encode(
            AttributeAdmission(
                attr_key=attribute.key,
                attr_type=attribute.type,
                attr_value=attribute.value,
                timestamp=observed_at,
            ),
            partition_key,
            attribute.hash(),
            expires_at=now + self.ttl,
            created_at=now,
        )

        outcome = await self.store.conditional_put(record, AbsentOrExpired(at=now))

        if isinstance(outcome, Failed):
            raise outcome.error

        return isinstance(outcome, Written)

    async def admit_all(self, report_id: str, attributes: list[Attribute]) -> list[Attribute]:
        """Admit attributes one by one and return those admitted, in input order."""
        admitted = []
        for attribute in attributes:
            if await self.admit(report_id, attribute):
                admitted.append(attribute)
        return admitted
