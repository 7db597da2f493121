"""
Correlation pipeline.

Wires the correlation map, attribute gate, both report logs and the workflow
trigger into the calls an alert receiver, an inspector and an aggregator make.
"""

from datetime import timedelta

from correlator.core.config import Settings
from correlator.core.exceptions import MalformedInputError
from correlator.core.logging import get_logger
from correlator.schemas.alert import Alert, Attribute
from correlator.schemas.report import CompiledReport, Report, ReportSection
from correlator.services.attribute_gate import AttributeGate
from correlator.services.correlation import CorrelationMap
from correlator.services.report_log import AlertSnapshotLog, ReportSectionLog
from correlator.services.store import KeyedStore, create_store
from correlator.services.workflow import WorkflowTrigger

logger = get_logger(__name__)


def validate_alert(alert: Alert) -> None:
    """Alerts without identity fields cannot be correlated."""
    for field in ("detector", "rule_name", "alert_key"):
        value = getattr(alert, field)
        if not value or not value.strip():
            raise MalformedInputError(field, value, "required to correlate the alert")


class CorrelationPipeline:
    def __init__(
        self,
        store: KeyedStore,
        correlation: CorrelationMap,
        gate: AttributeGate,
        alert_log: AlertSnapshotLog,
        section_log: ReportSectionLog,
        workflow: WorkflowTrigger | None = None,
    ):
        self.store = store
        self.correlation = correlation
        self.gate = gate
        self.alert_log = alert_log
        self.section_log = section_log
        self.workflow = workflow

    async def receive_alert(self, alert: Alert) -> Report:
        """
        Correlate ``alert`` into a report, archive it and notify the workflow.

        The snapshot is written for both NEW and MORE so the aggregator sees
        every alert of the window. The workflow is notified in both cases too;
        it decides what a MORE means for a running execution.
        """
        validate_alert(alert)
        report = await self.correlation.acquire_report(alert.alert_id(), alert.timestamp)
        await self.alert_log.save(report.id, alert)

        logger.info(
            "Alert %s/%s/%s -> report %s (%s)",
            alert.detector,
            alert.rule_name,
            alert.alert_key,
            report.id,
            report.status.value,
        )

        if self.workflow is not None:
            await self.workflow.notify(report)
        return report

    async def offer_attributes(self, report_id: str, attributes: list[Attribute]) -> list[Attribute]:
        """Return only the attributes this call admitted for inspection."""
        admitted = await self.gate.admit_all(report_id, attributes)
        if len(admitted) < len(attributes):
            logger.info(
                "Report %s: %d of %d attributes already inspected",
                report_id,
                len(attributes) - len(admitted),
                len(attributes),
            )
        return admitted

    async def record_section(self, section: ReportSection) -> None:
        await self.section_log.save(section)

    async def compile_report(self, report_id: str) -> CompiledReport:
        """Gather every alert and section of a report for aggregation."""
        alerts = await self.alert_log.fetch(report_id)
        sections = await self.section_log.fetch_grouped(report_id)
        return CompiledReport(id=report_id, alerts=alerts, sections=sections)

    async def close(self) -> None:
        if self.workflow is not None:
            await self.workflow.close()
        await self.store.close()


def build_pipeline(config: Settings) -> CorrelationPipeline:
    """Construct the pipeline described by ``config``."""
    store = create_store(config)
    workflow = None
    if config.WORKFLOW_URL:
        workflow = WorkflowTrigger(config.WORKFLOW_URL, timeout=config.WORKFLOW_TIMEOUT_SECONDS)

    return CorrelationPipeline(
        store=store,
        correlation=CorrelationMap(
            store, window=timedelta(seconds=config.CORRELATION_WINDOW_SECONDS)
        ),
        gate=AttributeGate(store, ttl=timedelta(seconds=config.ATTRIBUTE_TTL_SECONDS)),
        alert_log=AlertSnapshotLog(
            store, ttl=timedelta(seconds=config.ALERT_SNAPSHOT_TTL_SECONDS)
        ),
        section_log=ReportSectionLog(
            store, ttl=timedelta(seconds=config.REPORT_SECTION_TTL_SECONDS)
        ),
        workflow=workflow,
    )
