"""Agenda service -- agenda lifecycle, ordering, and meeting duration upkeep.

Every agenda change that affects planned time (creation, MODIFY, cancel)
also moves the owning meeting's ``total_actual_duration``. Both writes go
through ``adjust_meeting_total_actual_duration`` inside the caller's unit of
work, so they commit or roll back as one.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime, timedelta

import structlog

from src.timeet.agendas.schemas import (
    STATUS_CHANGE_ACTIONS,
    Agenda,
    AgendaAction,
    AgendaActionRequest,
    AgendaActionResult,
    AgendaCreate,
    AgendaInfo,
    AgendaStatus,
)
from src.timeet.core.durations import parse_time_of_day
from src.timeet.core.errors import BadRequestError, ErrorCode, NotFoundError
from src.timeet.core.monitoring import agenda_transitions_total
from src.timeet.core.unit_of_work import UnitOfWork
from src.timeet.meetings.service import get_meeting_or_raise, utcnow
from src.timeet.members.schemas import Member

logger = structlog.get_logger(__name__)


async def adjust_meeting_total_actual_duration(
    uow: UnitOfWork, meeting_id: uuid.UUID, delta: timedelta
) -> timedelta:
    """Move a meeting's running total by ``delta`` within an open unit of work.

    Negative deltas subtract; the total never drops below zero.

    Returns:
        The meeting's new total actual duration.
    """
    meeting = await get_meeting_or_raise(uow, meeting_id)
    total = meeting.adjust_total_actual_duration(delta)
    await uow.meetings.save(meeting)
    logger.debug(
        "meeting.total_actual_duration_adjusted",
        meeting_id=str(meeting_id),
        delta_seconds=delta.total_seconds(),
        total_seconds=total.total_seconds(),
    )
    return total


def _parse_action(token: str) -> AgendaAction:
    try:
        action = AgendaAction(token.strip().upper())
    except ValueError:
        raise BadRequestError("Action", "Invalid action") from None
    if action not in STATUS_CHANGE_ACTIONS:
        raise BadRequestError("Action", "Invalid action")
    return action


class AgendaService:
    """Agenda operations within a meeting.

    Args:
        uow_factory: Zero-argument callable returning a fresh UnitOfWork.
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    async def _get_agenda_or_raise(
        self, uow: UnitOfWork, meeting_id: uuid.UUID, agenda_id: uuid.UUID
    ) -> Agenda:
        agenda = await uow.agendas.get_by_id_and_meeting(agenda_id, meeting_id)
        if agenda is None:
            raise NotFoundError("AgendaId", "Agenda not found")
        return agenda

    # ── Creation ─────────────────────────────────────────────────────────

    async def create_agenda(
        self, meeting_id: uuid.UUID, request: AgendaCreate, member: Member
    ) -> Agenda:
        """Append an agenda to the meeting and add its time to the meeting total.

        Raises:
            NotFoundError: Meeting does not exist.
            BadRequestError: ``member`` is not an active participant.
        """
        now = self._clock()
        async with self._uow_factory() as uow:
            await get_meeting_or_raise(uow, meeting_id)
            participant = await uow.participants.find_by_meeting_and_member(
                meeting_id, member.id
            )
            if participant is None:
                raise BadRequestError(
                    "MemberId", "Member is not a participant of the meeting"
                )

            order_num = await uow.agendas.count_by_meeting(meeting_id) + 1
            agenda = request.to_agenda(meeting_id, order_num, now)
            await uow.agendas.add(agenda)
            await adjust_meeting_total_actual_duration(
                uow, meeting_id, agenda.allocated_duration
            )

        logger.info(
            "agenda.created",
            meeting_id=str(meeting_id),
            agenda_id=str(agenda.id),
            order_num=order_num,
            allocated_seconds=agenda.allocated_duration.total_seconds(),
        )
        return agenda

    # ── State Machine ────────────────────────────────────────────────────

    async def change_agenda_status(
        self,
        meeting_id: uuid.UUID,
        agenda_id: uuid.UUID,
        action_request: AgendaActionRequest,
    ) -> AgendaActionResult:
        """Apply START, PAUSE, RESUME, END, or MODIFY to an agenda.

        The agenda enforces its own transition table. MODIFY extends the
        allocation by ``modified_duration`` and adds the same amount to the
        meeting total.

        Raises:
            NotFoundError: Agenda not in this meeting.
            BadRequestError: Unknown action, unparseable duration, or an
                action the agenda's current status does not allow.
        """
        now = self._clock()
        async with self._uow_factory() as uow:
            agenda = await self._get_agenda_or_raise(uow, meeting_id, agenda_id)
            action = _parse_action(action_request.action)

            if action == AgendaAction.START:
                agenda.start(now)
            elif action == AgendaAction.PAUSE:
                agenda.pause(now)
            elif action == AgendaAction.RESUME:
                agenda.resume(now)
            elif action == AgendaAction.END:
                agenda.complete(now)
            elif action == AgendaAction.MODIFY:
                if not action_request.modified_duration:
                    raise BadRequestError(
                        "ModifiedDuration", "modified_duration is required for MODIFY"
                    )
                delta = parse_time_of_day(action_request.modified_duration)
                agenda.extend_duration(delta)
                await adjust_meeting_total_actual_duration(uow, meeting_id, delta)

            await uow.agendas.save(agenda)

        agenda_transitions_total.labels(action=action.value).inc()
        logger.info(
            "agenda.status_changed",
            meeting_id=str(meeting_id),
            agenda_id=str(agenda_id),
            action=action.value,
            status=agenda.status.value,
        )
        return AgendaActionResult(
            agenda=agenda,
            current_duration=agenda.calculate_current_duration(now),
            remaining_duration=agenda.calculate_remaining_time(now),
        )

    async def cancel_agenda(self, meeting_id: uuid.UUID, agenda_id: uuid.UUID) -> Agenda:
        """Cancel a pending agenda and give its time back to the meeting.

        Raises:
            NotFoundError: Agenda not in this meeting.
            BadRequestError: Agenda is not pending.
        """
        async with self._uow_factory() as uow:
            agenda = await self._get_agenda_or_raise(uow, meeting_id, agenda_id)
            if agenda.status != AgendaStatus.PENDING:
                raise BadRequestError(
                    "AgendaStatus",
                    "Agenda is not PENDING status",
                    code=ErrorCode.WRONG_REQUEST_TRANSMISSION,
                )
            agenda.cancel()
            await uow.agendas.save(agenda)
            await adjust_meeting_total_actual_duration(
                uow, meeting_id, -agenda.allocated_duration
            )

        agenda_transitions_total.labels(action=AgendaAction.CANCEL.value).inc()
        logger.info(
            "agenda.cancelled",
            meeting_id=str(meeting_id),
            agenda_id=str(agenda_id),
        )
        return agenda

    # ── Meeting Total Helpers ────────────────────────────────────────────

    async def add_meeting_total_actual_duration(
        self, meeting_id: uuid.UUID, additional: timedelta
    ) -> timedelta:
        async with self._uow_factory() as uow:
            return await adjust_meeting_total_actual_duration(uow, meeting_id, additional)

    async def subtract_meeting_total_actual_duration(
        self, meeting_id: uuid.UUID, subtracted: timedelta
    ) -> timedelta:
        async with self._uow_factory() as uow:
            return await adjust_meeting_total_actual_duration(uow, meeting_id, -subtracted)

    # ── Queries & Ordering ───────────────────────────────────────────────

    async def find_all(self, meeting_id: uuid.UUID) -> list[Agenda]:
        async with self._uow_factory() as uow:
            return await uow.agendas.list_by_meeting(meeting_id)

    async def find_agendas(self, meeting_id: uuid.UUID) -> AgendaInfo:
        """The meeting with its agendas sorted by order number."""
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            agendas = await uow.agendas.list_by_meeting(meeting_id)
        agendas.sort(key=lambda a: a.order_num)
        return AgendaInfo(meeting=meeting, agendas=agendas)

    async def change_agenda_order(
        self, meeting_id: uuid.UUID, agenda_ids: list[uuid.UUID]
    ) -> AgendaInfo:
        """Renumber agendas to follow ``agenda_ids`` (position 1 first).

        The list must name every agenda of the meeting exactly once.

        Raises:
            NotFoundError: Meeting missing, or an id not in this meeting.
            BadRequestError: Duplicate ids or a count mismatch.
        """
        async with self._uow_factory() as uow:
            meeting = await get_meeting_or_raise(uow, meeting_id)
            agendas = await uow.agendas.list_by_meeting(meeting_id)

            if len(set(agenda_ids)) != len(agenda_ids):
                raise BadRequestError("AgendaIds", "Agenda Ids are not unique")
            if len(agenda_ids) != len(agendas):
                raise BadRequestError(
                    "AgendaIds",
                    f"Expected {len(agendas)} agenda ids, got {len(agenda_ids)}",
                )

            by_id = {agenda.id: agenda for agenda in agendas}
            for position, agenda_id in enumerate(agenda_ids, start=1):
                agenda = by_id.get(agenda_id)
                if agenda is None:
                    raise NotFoundError("AgendaId", f"Agenda Id {agenda_id} not found")
                agenda.order_num = position

            await uow.agendas.save_all(agendas)

        agendas.sort(key=lambda a: a.order_num)
        logger.info(
            "agenda.reordered",
            meeting_id=str(meeting_id),
            order=[str(a.id) for a in agendas],
        )
        return AgendaInfo(meeting=meeting, agendas=agendas)
