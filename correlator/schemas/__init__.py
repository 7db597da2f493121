from correlator.schemas.alert import Alert, Attribute, AttributeType
from correlator.schemas.report import (
    CompiledReport,
    Report,
    ReportSection,
    ReportStatus,
    WorkflowTriggerPayload,
)

__all__ = [
    "Alert",
    "Attribute",
    "AttributeType",
    "CompiledReport",
    "Report",
    "ReportSection",
    "ReportStatus",
    "WorkflowTriggerPayload",
]
