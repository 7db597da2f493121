"""Report schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from correlator.schemas.alert import Alert, Attribute


class ReportStatus(str, Enum):
    NEW = "new"  # first alert of a correlation window
    MORE = "more"  # joined an existing window


class Report(BaseModel):
    """Result of acquiring a report for an alert."""

    id: str
    status: ReportStatus
    created_at: datetime


class ReportSection(BaseModel):
    """One inspection result about one attribute of a report."""

    report_id: str
    attribute: Attribute
    author: str  # inspector name
    type: str = ""  # e.g. "host", "user", "binary"
    content: dict[str, Any] = Field(default_factory=dict)


class CompiledReport(BaseModel):
    """Everything collected under one report, for the aggregation step."""

    id: str
    alerts: list[Alert]
    sections: dict[str, list[ReportSection]]  # attribute hash -> sections

    @property
    def attributes(self) -> list[Attribute]:
        """Distinct attributes across all alerts, in first-seen order."""
        seen: dict[str, Attribute] = {}
        for alert in self.alerts:
            for attr in alert.attributes:
                seen.setdefault(attr.hash(), attr)
        return list(seen.values())


class WorkflowTriggerPayload(BaseModel):
    """Body sent to the workflow collaborator."""

    report_id: str
    status: ReportStatus
    created_at: datetime
