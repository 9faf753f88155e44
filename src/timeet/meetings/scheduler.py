"""Scheduled meeting start via APScheduler.

Each meeting gets one date-triggered job (id ``meeting-start-<uuid>``) that
calls the bound start handler -- normally ``MeetingService.start_meeting``
-- at the meeting's start time. Jobs live in memory; on startup the service
re-registers every still-scheduled meeting.

Registration is fire-and-forget: failures are logged and never propagate
to the request that created the meeting.

Exports:
    MeetingScheduler: AsyncIOScheduler wrapper for meeting start triggers.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import structlog
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from src.timeet.core.errors import TimeetError

logger = structlog.get_logger(__name__)

StartHandler = Callable[[uuid.UUID], Awaitable[object]]


class MeetingScheduler:
    """Registers one-shot start jobs for meetings.

    Args:
        start_handler: Coroutine function called with the meeting id when
            the job fires. May be bound later with ``bind_start_handler``.
        misfire_grace_seconds: How late a job may still run after the
            process was busy or asleep.
        scheduler: Pre-built AsyncIOScheduler (tests inject their own).
    """

    def __init__(
        self,
        start_handler: StartHandler | None = None,
        misfire_grace_seconds: int = 300,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._start_handler = start_handler
        self._misfire_grace_seconds = misfire_grace_seconds
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

    @staticmethod
    def job_id(meeting_id: uuid.UUID) -> str:
        return f"meeting-start-{meeting_id}"

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def bind_start_handler(self, start_handler: StartHandler) -> None:
        self._start_handler = start_handler

    def start(self) -> None:
        """Start the underlying scheduler. Requires a running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("meeting_scheduler.started")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("meeting_scheduler.stopped")

    def schedule_meeting_start(self, meeting_id: uuid.UUID, start_time: datetime) -> None:
        """Register (or replace) the start job for a meeting.

        Start times already in the past run as soon as the scheduler runs.
        """
        now = datetime.now(timezone.utc)
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=timezone.utc)
        run_date = max(start_time, now)
        try:
            self._scheduler.add_job(
                self._fire,
                trigger=DateTrigger(run_date=run_date),
                args=[meeting_id],
                id=self.job_id(meeting_id),
                name=f"Start meeting {meeting_id}",
                replace_existing=True,
                misfire_grace_time=self._misfire_grace_seconds,
            )
        except Exception:
            logger.warning(
                "meeting_scheduler.schedule_failed",
                meeting_id=str(meeting_id),
                exc_info=True,
            )
            return
        logger.info(
            "meeting_scheduler.start_scheduled",
            meeting_id=str(meeting_id),
            run_date=run_date.isoformat(),
        )

    def cancel_meeting_start(self, meeting_id: uuid.UUID) -> None:
        """Drop a pending start job. Unknown ids are ignored."""
        try:
            self._scheduler.remove_job(self.job_id(meeting_id))
        except JobLookupError:
            return
        logger.info("meeting_scheduler.start_cancelled", meeting_id=str(meeting_id))

    def has_pending_start(self, meeting_id: uuid.UUID) -> bool:
        return self._scheduler.get_job(self.job_id(meeting_id)) is not None

    async def _fire(self, meeting_id: uuid.UUID) -> None:
        """Job body: run the start handler, logging domain rejections."""
        if self._start_handler is None:
            logger.warning("meeting_scheduler.no_handler", meeting_id=str(meeting_id))
            return
        try:
            await self._start_handler(meeting_id)
        except TimeetError as exc:
            # Meeting was cancelled, ended early, or deleted before start time
            logger.warning(
                "meeting_scheduler.start_rejected",
                meeting_id=str(meeting_id),
                code=exc.code.value,
                errors=exc.errors,
            )
        except Exception:
            logger.error(
                "meeting_scheduler.start_failed",
                meeting_id=str(meeting_id),
                exc_info=True,
            )
