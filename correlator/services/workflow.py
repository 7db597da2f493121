"""
Workflow trigger.

Notifies the workflow collaborator that a report exists so it can run the
collect -> inspect -> aggregate -> review stages. The body is the report
triple: {report_id, status, created_at}.
"""

from urllib.parse import urlparse

import httpx

from correlator.core.exceptions import MalformedInputError, WorkflowTriggerError
from correlator.core.logging import get_logger
from correlator.schemas.report import Report, WorkflowTriggerPayload
from correlator.utils.ids import parse_report_id

logger = get_logger(__name__)


def validate_workflow_url(url: str) -> str:
    """
    Check the endpoint is an absolute http(s) URL with a hostname.

    Raises:
        MalformedInputError: the URL cannot be used as a workflow endpoint
    """
    if not isinstance(url, str) or not url.strip():
        raise MalformedInputError("workflow_url", url, "must be a non-empty string")

    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        raise MalformedInputError("workflow_url", url, "URL scheme must be http or https")
    if not parsed.hostname:
        raise MalformedInputError("workflow_url", url, "URL must have a hostname")
    return url.strip()


class WorkflowTrigger:
    """POSTs report notifications to the workflow endpoint. No retries."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = validate_workflow_url(url)
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def notify(self, report: Report) -> None:
        """
        Send ``report`` to the workflow endpoint.

        Raises:
            MalformedInputError: the report id is not a valid identity; nothing is sent
            WorkflowTriggerError: transport failure or non-2xx response
        """
        report_id = parse_report_id(report.id)
        payload = WorkflowTriggerPayload(
            report_id=report_id,
            status=report.status,
            created_at=report.created_at,
        )

        try:
            response = await self._get_client().post(
                self.url,
                json=payload.model_dump(mode="json"),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise WorkflowTriggerError(report_id, f"request failed: {e}") from e

        if response.status_code >= 300:
            raise WorkflowTriggerError(
                report_id,
                f"endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.info("Workflow triggered for report %s (%s)", report_id, report.status.value)

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
