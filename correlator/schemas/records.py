"""
Stored entity shapes and their encoding into store records.

Key design (partition key, sort key -> payload):
  - correlation/{alert identity}, fixed             -> report id
  - alertlog/{report id},       {random}            -> alert snapshot
  - attrgate/{report id},       {attribute hash}    -> admitted attribute
  - sectionlog/{report id},     {attr hash}/{random} -> inspection result
"""

from datetime import datetime
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from correlator.core.exceptions import DecodeError, MalformedInputError
from correlator.schemas.alert import Alert
from correlator.schemas.report import ReportSection
from correlator.services.store.base import StoreRecord

CORRELATION_PREFIX = "correlation/"
ALERT_LOG_PREFIX = "alertlog/"
ATTRIBUTE_GATE_PREFIX = "attrgate/"
SECTION_LOG_PREFIX = "sectionlog/"

CORRELATION_SORT_KEY = "fixed"

EntityT = TypeVar("EntityT", bound=BaseModel)


class CorrelationEntry(BaseModel):
    """Maps an alert identity to the report of its current window."""

    report_id: str


class AlertSnapshot(BaseModel):
    alert: Alert


class AttributeAdmission(BaseModel):
    """Marks an attribute as already handed to inspection for a report."""

    attr_key: str
    attr_type: str
    attr_value: str
    timestamp: datetime  # observation time, or admission time when unknown


class ReportSectionEntry(BaseModel):
    section: ReportSection


def require_key_part(field: str, value: str) -> str:
    """Reject values that cannot be used inside a partition key."""
    if not isinstance(value, str) or not value:
        raise MalformedInputError(field, value, "must be a non-empty string")
    return value


def correlation_partition(alert_identity: str) -> str:
    return CORRELATION_PREFIX + require_key_part("alert_identity", alert_identity)


def alert_log_partition(report_id: str) -> str:
    return ALERT_LOG_PREFIX + require_key_part("report_id", report_id)


def attribute_gate_partition(report_id: str) -> str:
    return ATTRIBUTE_GATE_PREFIX + require_key_part("report_id", report_id)


def section_log_partition(report_id: str) -> str:
    return SECTION_LOG_PREFIX + require_key_part("report_id", report_id)


def encode(
    entity: BaseModel,
    partition_key: str,
    sort_key: str,
    expires_at: datetime,
    created_at: datetime | None = None,
) -> StoreRecord:
    return StoreRecord(
        partition_key=partition_key,
        sort_key=sort_key,
        expires_at=expires_at,
        created_at=created_at,
        data=entity.model_dump(mode="json"),
    )


def decode(record: StoreRecord, model: type[EntityT]) -> EntityT:
    """Parse a record payload, raising DecodeError on any mismatch."""
    try:
        return model.model_validate(record.data)
    except ValidationError as e:
        raise DecodeError(
            record.partition_key,
            record.sort_key,
            f"not a valid {model.__name__}: {e.error_count()} error(s), first: {e.errors()[0]['msg']}",
        ) from e
