"""Administrative review of reports and ratings.

Only admin and rootadmin callers may use these screens; the backend
checks again on every call.
"""

import logging

from ..backend import BackendClient, ContentReport, Rating, ReportStatus
from ..ratelimit import CallerRole

logger = logging.getLogger(__name__)

ADMIN_ROLES = (CallerRole.ADMIN, CallerRole.ROOTADMIN)


class AdminReview:
    """Triage of content reports and the aggregate ratings view."""

    def __init__(self, backend: BackendClient, role: CallerRole):
        if role not in ADMIN_ROLES:
            raise PermissionError("Administrative review requires an admin account")
        self._backend = backend
        self._role = role

    async def reports(self, status: ReportStatus | None = ReportStatus.PENDING) -> list[ContentReport]:
        return await self._backend.reports.list_all(status)

    async def resolve(self, report: ContentReport, notes: str | None = None) -> ContentReport:
        return await self._backend.reports.update(report, ReportStatus.RESOLVED, notes)

    async def dismiss(self, report: ContentReport, notes: str | None = None) -> ContentReport:
        return await self._backend.reports.update(report, ReportStatus.DISMISSED, notes)

    async def delete_report(self, report_id: str) -> None:
        await self._backend.reports.delete(report_id)
        logger.info("Deleted report %s", report_id)

    async def ratings(self) -> list[Rating]:
        return await self._backend.ratings.list_all()

    async def rating_summary(self) -> dict[str, int]:
        """Counts of up and down ratings across all sessions."""
        summary = {"up": 0, "down": 0}
        for rating in await self.ratings():
            summary[rating.rating.value] += 1
        return summary

    async def delete_rating(self, rating_id: str) -> None:
        await self._backend.ratings.delete(rating_id)
