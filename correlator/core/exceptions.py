"""Custom exceptions for the correlator.

A conditional write losing its predicate is not an error and never raises;
see ``correlator.services.store.base.Conflict``.
"""

from typing import Any


class CorrelatorError(Exception):
    """Base class for every error the correlator raises."""

    @property
    def details(self) -> dict[str, Any]:
        """Structured context for logging and retry decisions."""
        return {}


class StorageError(CorrelatorError):
    """Raised when the keyed store is unreachable, times out or rejects a request."""

    def __init__(
        self,
        operation: str,
        partition_key: str,
        sort_key: str | None = None,
        reason: str = "unknown",
    ):
        self.operation = operation
        self.partition_key = partition_key
        self.sort_key = sort_key
        self.reason = reason
        location = partition_key if sort_key is None else f"{partition_key}, {sort_key}"
        super().__init__(f"Storage {operation} failed for ({location}): {reason}")

    @property
    def details(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "partition_key": self.partition_key,
            "sort_key": self.sort_key,
            "reason": self.reason,
        }


class DecodeError(CorrelatorError):
    """Raised when a stored record cannot be parsed into its entity shape."""

    def __init__(self, partition_key: str, sort_key: str, reason: str):
        self.partition_key = partition_key
        self.sort_key = sort_key
        self.reason = reason
        super().__init__(f"Cannot decode record ({partition_key}, {sort_key}): {reason}")

    @property
    def details(self) -> dict[str, Any]:
        return {
            "partition_key": self.partition_key,
            "sort_key": self.sort_key,
            "reason": self.reason,
        }


class MalformedInputError(CorrelatorError):
    """Raised for invalid caller input, before any storage or network call."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")

    @property
    def details(self) -> dict[str, Any]:
        return {"field": self.field, "value": repr(self.value), "reason": self.reason}


class WorkflowTriggerError(CorrelatorError):
    """Raised when the workflow endpoint could not accept a report notification."""

    def __init__(self, report_id: str, reason: str, status_code: int | None = None):
        self.report_id = report_id
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Workflow trigger failed for report {report_id}: {reason}")

    @property
    def details(self) -> dict[str, Any]:
        return {
            "report_id": self.report_id,
            "reason": self.reason,
            "status_code": self.status_code,
        }
