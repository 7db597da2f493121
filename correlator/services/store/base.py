"""Keyed conditional store interface.

A store maps (partition key, sort key) to a record. It offers unconditional
reads of one record or a whole partition, unconditional writes, and one kind
of conditional write: "write only if no record exists at this key, or the
existing record has expired at a given moment". The predicate is evaluated
atomically with the write by the backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from correlator.core.exceptions import StorageError


@dataclass(frozen=True)
class StoreRecord:
    """Base record shape shared by every persisted entity."""

    partition_key: str
    sort_key: str
    expires_at: datetime
    created_at: datetime | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def is_live_at(self, moment: datetime) -> bool:
        """A record is live while its expiry is strictly after ``moment``."""
        return self.expires_at > moment


@dataclass(frozen=True)
class AbsentOrExpired:
    """Predicate: no record at the key, or the stored record is not live at ``at``.

    ``expires_at == at`` counts as expired.
    """

    at: datetime

    def allows(self, existing: StoreRecord | None) -> bool:
        return existing is None or not existing.is_live_at(self.at)


@dataclass(frozen=True)
class Written:
    """The conditional write took effect."""

    record: StoreRecord


@dataclass(frozen=True)
class Conflict:
    """The predicate failed; a live record already holds the key.

    ``existing`` carries that record when the backend could read it as part of
    the rejected write, otherwise it is None and the caller reads it back.
    """

    existing: StoreRecord | None = None


@dataclass(frozen=True)
class Failed:
    """The store could not evaluate or apply the write."""

    error: StorageError


PutResult = Written | Conflict | Failed


class KeyedStore(ABC):
    """Abstract keyed conditional store.

    Read and unconditional write operations raise ``StorageError``;
    ``conditional_put`` reports every storage outcome, failures included,
    through its return value. A conflicting record that cannot be decoded
    raises ``DecodeError``.
    """

    name: str = "base"

    @abstractmethod
    async def conditional_put(self, record: StoreRecord, condition: AbsentOrExpired) -> PutResult:
        """Write ``record`` only if ``condition`` holds for the current stored record."""

    @abstractmethod
    async def put(self, record: StoreRecord) -> None:
        """Write ``record`` unconditionally, replacing anything at its key."""

    @abstractmethod
    async def get(self, partition_key: str, sort_key: str) -> StoreRecord | None:
        """Read one record, or None if the key is absent."""

    @abstractmethod
    async def get_all(self, partition_key: str) -> list[StoreRecord]:
        """Read every record under ``partition_key``, in no particular order."""

    async def close(self) -> None:
        """Release backend resources. Default is a no-op."""
        return None
