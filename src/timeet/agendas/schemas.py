"""Pydantic v2 schemas and state machine for meeting agendas.

AGENDA_TRANSITIONS is the single source of truth for what each action does
in each status. Agenda's mutating methods all route through it, so an
illegal request (starting a completed agenda, pausing a pending one) raises
InvalidAgendaTransitionError before any field changes.
"""

from __future__ import annotations

import uuid
from datetime import datetime, time, timedelta
from enum import Enum

from pydantic import BaseModel, Field

from src.timeet.core.durations import ZERO, clamp_non_negative, time_of_day_to_duration
from src.timeet.core.errors import BadRequestError, ErrorCode
from src.timeet.meetings.schemas import Meeting


# ── Enums ────────────────────────────────────────────────────────────────────


class AgendaStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AgendaType(str, Enum):
    """Regular discussion item vs. a break between items."""

    AGENDA = "agenda"
    BREAK = "break"


class AgendaAction(str, Enum):
    START = "START"
    PAUSE = "PAUSE"
    RESUME = "RESUME"
    END = "END"
    MODIFY = "MODIFY"
    CANCEL = "CANCEL"


# Actions a client may request through a status change; CANCEL has its own
# endpoint with a stricter precondition message.
STATUS_CHANGE_ACTIONS: frozenset[AgendaAction] = frozenset(
    {
        AgendaAction.START,
        AgendaAction.PAUSE,
        AgendaAction.RESUME,
        AgendaAction.END,
        AgendaAction.MODIFY,
    }
)


# ── Transition Table ─────────────────────────────────────────────────────────

AGENDA_TRANSITIONS: dict[AgendaStatus, dict[AgendaAction, AgendaStatus]] = {
    AgendaStatus.PENDING: {
        AgendaAction.START: AgendaStatus.IN_PROGRESS,
        AgendaAction.MODIFY: AgendaStatus.PENDING,
        AgendaAction.CANCEL: AgendaStatus.CANCELLED,
    },
    AgendaStatus.IN_PROGRESS: {
        AgendaAction.PAUSE: AgendaStatus.PAUSED,
        AgendaAction.END: AgendaStatus.COMPLETED,
        AgendaAction.MODIFY: AgendaStatus.IN_PROGRESS,
    },
    AgendaStatus.PAUSED: {
        AgendaAction.RESUME: AgendaStatus.IN_PROGRESS,
        AgendaAction.END: AgendaStatus.COMPLETED,
        AgendaAction.MODIFY: AgendaStatus.PAUSED,
    },
    AgendaStatus.COMPLETED: {},  # Terminal
    AgendaStatus.CANCELLED: {},  # Terminal
}


class InvalidAgendaTransitionError(BadRequestError):
    """Raised when an action is not allowed in the agenda's current status."""

    def __init__(self, from_status: AgendaStatus, action: AgendaAction) -> None:
        self.from_status = from_status
        self.action = action
        allowed = ", ".join(a.value for a in AGENDA_TRANSITIONS[from_status]) or "none"
        super().__init__(
            "AgendaStatus",
            f"Cannot {action.value} an agenda in {from_status.value} status "
            f"(allowed: {allowed})",
            code=ErrorCode.WRONG_REQUEST_TRANSMISSION,
        )


def next_agenda_status(current: AgendaStatus, action: AgendaAction) -> AgendaStatus:
    """Look up the status an action leads to.

    Raises:
        InvalidAgendaTransitionError: If the action is not allowed from ``current``.
    """
    target = AGENDA_TRANSITIONS[current].get(action)
    if target is None:
        raise InvalidAgendaTransitionError(current, action)
    return target


# ── Agenda Entity ────────────────────────────────────────────────────────────


class Agenda(BaseModel):
    """A timed item within a meeting.

    Elapsed time is tracked as ``current_duration`` (time banked from
    finished run segments) plus the open segment starting at
    ``segment_started_at`` while the agenda is in progress.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    meeting_id: uuid.UUID
    title: str
    type: AgendaType = AgendaType.AGENDA
    status: AgendaStatus = AgendaStatus.PENDING
    order_num: int = Field(default=0, ge=0)
    allocated_duration: timedelta = ZERO
    current_duration: timedelta = ZERO
    segment_started_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def _apply(self, action: AgendaAction) -> None:
        self.status = next_agenda_status(self.status, action)

    def _close_segment(self, now: datetime) -> None:
        if self.segment_started_at is not None:
            self.current_duration += clamp_non_negative(now - self.segment_started_at)
            self.segment_started_at = None

    def start(self, now: datetime) -> None:
        self._apply(AgendaAction.START)
        self.segment_started_at = now

    def pause(self, now: datetime) -> None:
        self._apply(AgendaAction.PAUSE)
        self._close_segment(now)

    def resume(self, now: datetime) -> None:
        self._apply(AgendaAction.RESUME)
        self.segment_started_at = now

    def complete(self, now: datetime) -> None:
        self._apply(AgendaAction.END)
        self._close_segment(now)

    def cancel(self) -> None:
        self._apply(AgendaAction.CANCEL)

    def extend_duration(self, delta: timedelta) -> None:
        self._apply(AgendaAction.MODIFY)
        self.allocated_duration = clamp_non_negative(self.allocated_duration + delta)

    def calculate_current_duration(self, now: datetime) -> timedelta:
        """Elapsed time including the open run segment, if any."""
        if self.status == AgendaStatus.IN_PROGRESS and self.segment_started_at is not None:
            return self.current_duration + clamp_non_negative(now - self.segment_started_at)
        return self.current_duration

    def calculate_remaining_time(self, now: datetime) -> timedelta:
        return clamp_non_negative(self.allocated_duration - self.calculate_current_duration(now))


# ── Request Models ───────────────────────────────────────────────────────────


class AgendaCreate(BaseModel):
    """Request schema for adding an agenda to a meeting."""

    title: str = Field(min_length=1, max_length=200)
    type: AgendaType = AgendaType.AGENDA
    allocated_duration: time = Field(
        description="Planned length as a time of day, e.g. 00:15:00",
    )

    @property
    def allocated(self) -> timedelta:
        return time_of_day_to_duration(self.allocated_duration)

    def to_agenda(self, meeting_id: uuid.UUID, order_num: int, now: datetime) -> Agenda:
        return Agenda(
            meeting_id=meeting_id,
            title=self.title,
            type=self.type,
            order_num=order_num,
            allocated_duration=self.allocated,
            created_at=now,
            updated_at=now,
        )


class AgendaActionRequest(BaseModel):
    """Status change request. ``modified_duration`` is required for MODIFY."""

    action: str
    modified_duration: str | None = None


class AgendaOrderRequest(BaseModel):
    agenda_ids: list[uuid.UUID]


# ── Read Models ──────────────────────────────────────────────────────────────


class AgendaActionResult(BaseModel):
    agenda: Agenda
    current_duration: timedelta
    remaining_duration: timedelta


class AgendaInfo(BaseModel):
    """A meeting together with its agendas in display order."""

    meeting: Meeting
    agendas: list[Agenda] = Field(default_factory=list)
