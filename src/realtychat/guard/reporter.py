"""Fire-and-forget delivery of moderation reports.

Reports go through an asyncio queue drained by one worker task, so the
chat path never waits on the moderation endpoint. Delivery is
at-most-once: a failed report is logged and dropped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .models import ModerationReport

logger = logging.getLogger(__name__)

Deliver = Callable[[ModerationReport], Awaitable[object]]


class ModerationReporter:
    """Best-effort background sender for ModerationReport records.

    Usage:
        reporter = ModerationReporter(backend.reports.create)
        reporter.submit(report)      # returns immediately
        await reporter.close()       # flushes what is queued, then stops
    """

    def __init__(self, deliver: Deliver, max_pending: int = 100):
        self._deliver = deliver
        self._queue: asyncio.Queue[ModerationReport] = asyncio.Queue(maxsize=max_pending)
        self._worker: asyncio.Task | None = None
        self.delivered = 0
        self.failed = 0
        self.dropped = 0

    def submit(self, report: ModerationReport) -> None:
        """Queue a report without blocking. A full queue drops the report.

        Must be called from a running event loop, which hosts the delivery worker.

        Raises:
            RuntimeError: If no event loop is running
        """
        try:
            self._queue.put_nowait(report)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Moderation queue full, dropping report (%s)", report.category)
            return
        self._ensure_worker()

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            report = await self._queue.get()
            try:
                await self._deliver(report)
                self.delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.failed += 1
                logger.error("Failed to deliver moderation report: %s", e)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued report has been attempted."""
        if self._worker is None:
            return
        await self._queue.join()

    async def close(self) -> None:
        """Flush pending reports and stop the worker."""
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
