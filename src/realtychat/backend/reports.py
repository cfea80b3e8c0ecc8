"""Content reports and their administrative triage."""

import logging

from ..guard import ModerationReport
from ..transport import ApiClient, invalid_response
from .models import ContentReport, ReportStatus

logger = logging.getLogger(__name__)


class ReportResource:
    def __init__(self, api: ApiClient):
        self._api = api

    async def create(self, report: ContentReport | ModerationReport) -> ContentReport:
        """File a report. Accepts user reports and guard-generated ones."""
        if isinstance(report, ModerationReport):
            payload = report.to_payload()
        else:
            payload = report.model_dump(mode="json", by_alias=True, exclude_none=True)
        data = await self._api.request_json("POST", "/report-message/create", json=payload)
        created = data.get("report") or data.get("data") or payload
        with invalid_response("/report-message/create"):
            return ContentReport.model_validate(created)

    async def list_all(self, status: ReportStatus | None = None) -> list[ContentReport]:
        params = {"status": status.value} if status else None
        data = await self._api.request_json("GET", "/report-message/getreports", params=params)
        with invalid_response("/report-message/getreports"):
            return [ContentReport.model_validate(r) for r in data.get("reports") or data.get("data") or []]

    async def update(
        self,
        report: ContentReport,
        status: ReportStatus,
        admin_notes: str | None = None,
    ) -> ContentReport:
        """Move a pending report to resolved or dismissed.

        Raises:
            ValueError: If the report has no id or the transition is not allowed
        """
        if report.id is None:
            raise ValueError("Report has no id")
        if not report.status.can_transition_to(status):
            raise ValueError(
                f"Cannot move report from {report.status.value} to {status.value}"
            )
        body = {"status": status.value}
        if admin_notes:
            body["adminNotes"] = admin_notes
        await self._api.request_json("PUT", f"/report-message/update/{report.id}", json=body)
        logger.info("Report %s marked %s", report.id, status.value)
        return report.model_copy(update={"status": status, "admin_notes": admin_notes or report.admin_notes})

    async def delete(self, report_id: str) -> None:
        await self._api.request_json("DELETE", f"/report-message/delete/{report_id}")
