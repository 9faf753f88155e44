"""Meeting lifecycle service.

Owns creation, membership, host transfer, start/end/cancel, and reporting.
Every public method runs inside exactly one unit of work; scheduler calls
happen only after that unit of work has committed, so a rolled-back meeting
never gets a start job.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from src.timeet.agendas.schemas import Agenda, AgendaStatus, AgendaType
from src.timeet.config import get_settings
from src.timeet.core.durations import duration_diff, format_duration
from src.timeet.core.errors import ForbiddenError, NotFoundError
from src.timeet.core.monitoring import meeting_status_transitions_total, meetings_created_total
from src.timeet.core.unit_of_work import UnitOfWork
from src.timeet.meetings.scheduler import MeetingScheduler
from src.timeet.meetings.schemas import (
    AgendaReportItem,
    Meeting,
    MeetingCreate,
    MeetingMemberInfo,
    MeetingRemainingTime,
    MeetingReport,
    MeetingStatus,
)
from src.timeet.members.schemas import Member, MemberDetail

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_meeting_or_raise(uow: UnitOfWork, meeting_id: uuid.UUID) -> Meeting:
    """Load a meeting inside an open unit of work or raise NotFound."""
    meeting = await uow.meetings.get(meeting_id)
    if meeting is None:
        raise NotFoundError("MeetingId", "Meeting not found")
    return meeting


def _report_item(agenda: Agenda, now: datetime) -> AgendaReportItem:
    actual = agenda.calculate_current_duration(now)
    return AgendaReportItem(
        agenda_id=agenda.id,
        title=agenda.title,
        order_num=agenda.order_num,
        allocated_duration=agenda.allocated_duration,
        actual_duration=actual,
        diff=format_duration(duration_diff(actual, agenda.allocated_duration)),
    )


class MeetingService:
    """Meeting aggregate operations.

    Args:
        uow_factory: Zero-argument callable returning a fresh UnitOfWork.
        scheduler: MeetingScheduler used to trigger scheduled starts.
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        scheduler: MeetingScheduler,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._scheduler = scheduler
        self._clock = clock

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def create_meeting(self, request: MeetingCreate, member: Member) -> Meeting:
        """Create a meeting hosted by ``member`` and schedule its start.

        The creator becomes the first participant and the host.
        """
        now = self._clock()
        async with self._uow_factory() as uow:
            meeting = request.to_meeting(host_member_id=member.id, now=now)
            meeting = await uow.meetings.add(meeting)
            participant = meeting.add_participant(member.id, now)
            await uow.participants.add(participant)

        meetings_created_total.inc()
        logger.info(
            "meeting.created",
            meeting_id=str(meeting.id),
            host_member_id=str(member.id),
            start_time=meeting.start_time.isoformat(),
        )
        self._scheduler.schedule_meeting_start(meeting.id, meeting.start_time)
        return meeting

    async def start_meeting(self, meeting_id: uuid.UUID) -> Meeting:
        """Move a scheduled meeting to in progress (scheduler callback)."""
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            meeting.start(self._clock())
            await uow.meetings.save(meeting)

        meeting_status_transitions_total.labels(status=meeting.status.value).inc()
        logger.info("meeting.started", meeting_id=str(meeting_id))
        return meeting

    async def end_meeting(self, meeting_id: uuid.UUID, member_id: uuid.UUID) -> Meeting:
        """End a meeting and close out its agendas. Host only.

        Running or paused agendas are completed; pending agendas are
        cancelled; completed and cancelled agendas are left alone.

        Raises:
            NotFoundError: Meeting does not exist.
            ForbiddenError: ``member_id`` is not the host.
        """
        now = self._clock()
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            if not meeting.is_host(member_id):
                raise ForbiddenError("MemberId", "Member is not the host of the meeting")

            meeting.end(now)
            await uow.meetings.save(meeting)

            agendas = await uow.agendas.list_by_meeting(meeting_id)
            touched = []
            for agenda in agendas:
                if agenda.status in (AgendaStatus.IN_PROGRESS, AgendaStatus.PAUSED):
                    agenda.complete(now)
                    touched.append(agenda)
                elif agenda.status == AgendaStatus.PENDING:
                    agenda.cancel()
                    touched.append(agenda)
            await uow.agendas.save_all(touched)

        self._scheduler.cancel_meeting_start(meeting_id)
        meeting_status_transitions_total.labels(status=meeting.status.value).inc()
        logger.info(
            "meeting.ended",
            meeting_id=str(meeting_id),
            member_id=str(member_id),
            agendas_closed=len(touched),
        )
        return meeting

    async def cancel_meeting(self, meeting_id: uuid.UUID) -> Meeting:
        """Cancel a meeting. Agendas are left as they are."""
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            meeting.cancel()
            await uow.meetings.save(meeting)

        self._scheduler.cancel_meeting_start(meeting_id)
        meeting_status_transitions_total.labels(status=meeting.status.value).inc()
        logger.info("meeting.cancelled", meeting_id=str(meeting_id))
        return meeting

    async def restore_schedules(self) -> int:
        """Re-register start jobs for every meeting still scheduled.

        Returns:
            Number of jobs registered.
        """
        async with self._uow_factory() as uow:
            meetings = await uow.meetings.list_by_status(MeetingStatus.SCHEDULED)

        for meeting in meetings:
            self._scheduler.schedule_meeting_start(meeting.id, meeting.start_time)
        logger.info("meeting.schedules_restored", count=len(meetings))
        return len(meetings)

    # ── Membership ───────────────────────────────────────────────────────

    async def add_participant_to_meeting(
        self, meeting_id: uuid.UUID, member: Member
    ) -> Meeting:
        """Add ``member`` to the meeting. Joining twice is a no-op.

        A member who left earlier is reactivated on their old record.
        """
        now = self._clock()
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            if meeting.find_participant(member.id) is not None:
                logger.debug(
                    "meeting.participant_already_joined",
                    meeting_id=str(meeting_id),
                    member_id=str(member.id),
                )
                return meeting

            previous = await uow.participants.find_by_meeting_and_member(
                meeting_id, member.id, include_removed=True
            )
            if previous is not None:
                previous.rejoin(now)
                await uow.participants.save(previous)
                meeting.participants.append(previous)
            else:
                participant = meeting.add_participant(member.id, now)
                await uow.participants.add(participant)

        logger.info(
            "meeting.participant_added",
            meeting_id=str(meeting_id),
            member_id=str(member.id),
            rejoined=previous is not None,
        )
        return meeting

    async def remove_participant(self, meeting_id: uuid.UUID, member: Member) -> Meeting:
        """Hand off the host role if ``member`` holds it.

        The participant record itself is left for the leave flow.
        """
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            if meeting.is_host(member.id):
                meeting.assign_new_host()
                await uow.meetings.save(meeting)
        return meeting

    async def leave_meeting(self, meeting_id: uuid.UUID, member_id: uuid.UUID) -> Meeting:
        """Remove a member from a meeting, reassigning the host if needed.

        Host reassignment and participant removal commit together.

        Raises:
            NotFoundError: Meeting, member, or active participant missing.
        """
        now = self._clock()
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            if await uow.members.get(member_id) is None:
                raise NotFoundError("MemberId", "Member not found")

            participant = await uow.participants.find_by_meeting_and_member(
                meeting_id, member_id
            )
            if participant is None:
                raise NotFoundError("ParticipantId", "Participant not found")

            if meeting.is_host(member_id):
                meeting.assign_new_host()
                await uow.meetings.save(meeting)

            meeting.drop_participant(participant, now)
            await uow.participants.save(participant)

        logger.info(
            "meeting.participant_left",
            meeting_id=str(meeting_id),
            member_id=str(member_id),
            host_member_id=str(meeting.host_member_id) if meeting.host_member_id else None,
        )
        return meeting

    # ── Queries ──────────────────────────────────────────────────────────

    async def find_by_id(self, meeting_id: uuid.UUID) -> Meeting:
        async with self._uow_factory() as uow:
            return await get_meeting_or_raise(uow, meeting_id)

    async def get_meeting_members(self, meeting_id: uuid.UUID) -> MeetingMemberInfo:
        """Host detail plus the other active members.

        Raises:
            NotFoundError: Meeting missing, or host id set but member missing.
        """
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            if not meeting.participants:
                return MeetingMemberInfo(host=None, members=[])

            member_ids = [p.member_id for p in meeting.participants]
            if meeting.host_member_id is not None:
                member_ids.append(meeting.host_member_id)
            members = await uow.members.get_many(list(dict.fromkeys(member_ids)))

        host = None
        if meeting.host_member_id is not None:
            host_member = members.get(meeting.host_member_id)
            if host_member is None:
                raise NotFoundError("HostMemberId", "Host member not found")
            host = MemberDetail.from_member(host_member)

        others = [
            MemberDetail.from_member(members[p.member_id])
            for p in meeting.participants
            if p.member_id != meeting.host_member_id and p.member_id in members
        ]
        return MeetingMemberInfo(host=host, members=others)

    async def get_remaining_time(self, meeting_id: uuid.UUID) -> MeetingRemainingTime:
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
        return MeetingRemainingTime(
            meeting_id=meeting.id,
            status=meeting.status,
            remaining_duration=meeting.remaining_time(self._clock()),
        )

    async def create_report(self, meeting_id: uuid.UUID) -> MeetingReport:
        """Summarize completed regular agendas against the plan."""
        now = self._clock()
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            agendas = await uow.agendas.list_by_meeting(meeting_id)

        items = [
            _report_item(agenda, now)
            for agenda in agendas
            if agenda.type == AgendaType.AGENDA and agenda.status == AgendaStatus.COMPLETED
        ]
        total_diff = duration_diff(
            meeting.total_actual_duration, meeting.total_estimated_duration
        )
        return MeetingReport(
            meeting_id=meeting.id,
            total_diff=format_duration(total_diff),
            agendas=items,
            memos=get_settings().REPORT_MEMO_PLACEHOLDER,
        )
