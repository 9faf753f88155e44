"""Pydantic v2 schemas for the meeting domain.

Meeting is the aggregate root: it owns its active Participants and guards
its own lifecycle through VALID_MEETING_TRANSITIONS. Services mutate these
objects in memory and hand them back to the repositories to persist.
"""

from __future__ import annotations

import uuid
from datetime import datetime, time, timedelta
from enum import Enum

import structlog
from pydantic import BaseModel, Field

from src.timeet.core.durations import ZERO, clamp_non_negative, time_of_day_to_duration
from src.timeet.core.errors import BadRequestError, ErrorCode
from src.timeet.members.schemas import MemberDetail

logger = structlog.get_logger(__name__)


# ── Enums ────────────────────────────────────────────────────────────────────


class MeetingStatus(str, Enum):
    """Lifecycle status of a meeting."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    ENDED = "ended"
    CANCELLED = "cancelled"


# ── Transition Rules ─────────────────────────────────────────────────────────

VALID_MEETING_TRANSITIONS: dict[MeetingStatus, set[MeetingStatus]] = {
    MeetingStatus.SCHEDULED: {
        MeetingStatus.IN_PROGRESS,
        MeetingStatus.ENDED,
        MeetingStatus.CANCELLED,
    },
    MeetingStatus.IN_PROGRESS: {MeetingStatus.ENDED, MeetingStatus.CANCELLED},
    MeetingStatus.ENDED: set(),  # Terminal
    MeetingStatus.CANCELLED: set(),  # Terminal
}


class InvalidMeetingTransitionError(BadRequestError):
    """Raised when a meeting status change violates the transition rules."""

    def __init__(self, from_status: MeetingStatus, to_status: MeetingStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            "MeetingStatus",
            f"Cannot move meeting from {from_status.value} to {to_status.value}",
            code=ErrorCode.WRONG_REQUEST_TRANSMISSION,
        )


# ── Participant ──────────────────────────────────────────────────────────────


class Participant(BaseModel):
    """Membership of a member in a meeting. Soft-removed on leave."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    meeting_id: uuid.UUID
    member_id: uuid.UUID
    joined_at: datetime
    removed: bool = False
    removed_at: datetime | None = None

    def remove(self, now: datetime) -> None:
        self.removed = True
        self.removed_at = now

    def rejoin(self, now: datetime) -> None:
        self.removed = False
        self.removed_at = None
        self.joined_at = now


# ── Meeting Aggregate ────────────────────────────────────────────────────────


class Meeting(BaseModel):
    """Meeting aggregate with its active participants."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    description: str | None = None
    location: str | None = None
    start_time: datetime
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    status: MeetingStatus = MeetingStatus.SCHEDULED
    host_member_id: uuid.UUID | None = None
    total_estimated_duration: timedelta = ZERO
    total_actual_duration: timedelta = ZERO
    participants: list[Participant] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # ── Membership ───────────────────────────────────────────────────────

    def is_host(self, member_id: uuid.UUID) -> bool:
        return self.host_member_id is not None and self.host_member_id == member_id

    def find_participant(self, member_id: uuid.UUID) -> Participant | None:
        """Return the active participant record for a member, if any."""
        for participant in self.participants:
            if participant.member_id == member_id and not participant.removed:
                return participant
        return None

    def add_participant(self, member_id: uuid.UUID, now: datetime) -> Participant:
        participant = Participant(meeting_id=self.id, member_id=member_id, joined_at=now)
        self.participants.append(participant)
        return participant

    def drop_participant(self, participant: Participant, now: datetime) -> None:
        """Soft-remove a participant and detach it from the active list."""
        participant.remove(now)
        self.participants = [p for p in self.participants if p.id != participant.id]

    def assign_new_host(self) -> uuid.UUID | None:
        """Hand the host role to the longest-standing other participant.

        Candidates are active participants other than the current host,
        ordered by join time then participant id. With no candidates the
        meeting is left without a host.

        Returns:
            The new host's member id, or None.
        """
        previous = self.host_member_id
        candidates = sorted(
            (
                p
                for p in self.participants
                if not p.removed and p.member_id != previous
            ),
            key=lambda p: (p.joined_at, str(p.id)),
        )
        self.host_member_id = candidates[0].member_id if candidates else None
        logger.info(
            "meeting.host_reassigned",
            meeting_id=str(self.id),
            previous_host=str(previous) if previous else None,
            new_host=str(self.host_member_id) if self.host_member_id else None,
        )
        return self.host_member_id

    # ── Lifecycle ────────────────────────────────────────────────────────

    def _transition(self, to_status: MeetingStatus) -> None:
        allowed = VALID_MEETING_TRANSITIONS[self.status]
        if to_status not in allowed:
            raise InvalidMeetingTransitionError(self.status, to_status)
        self.status = to_status

    def start(self, now: datetime) -> None:
        self._transition(MeetingStatus.IN_PROGRESS)
        self.actual_start_time = now

    def end(self, now: datetime) -> None:
        self._transition(MeetingStatus.ENDED)
        self.actual_end_time = now

    def cancel(self) -> None:
        self._transition(MeetingStatus.CANCELLED)

    # ── Duration Bookkeeping ─────────────────────────────────────────────

    def adjust_total_actual_duration(self, delta: timedelta) -> timedelta:
        """Add a (possibly negative) delta to the running total, floored at zero."""
        updated = self.total_actual_duration + delta
        if updated < ZERO:
            logger.warning(
                "meeting.total_actual_duration_clamped",
                meeting_id=str(self.id),
                current=self.total_actual_duration.total_seconds(),
                delta=delta.total_seconds(),
            )
        self.total_actual_duration = clamp_non_negative(updated)
        return self.total_actual_duration

    def remaining_time(self, now: datetime) -> timedelta:
        """Time left before the planned agenda total runs out."""
        if self.status == MeetingStatus.SCHEDULED:
            return self.total_actual_duration
        if self.status == MeetingStatus.IN_PROGRESS:
            started = self.actual_start_time or self.start_time
            planned_end = started + self.total_actual_duration
            return clamp_non_negative(planned_end - now)
        return ZERO


# ── Request Models ───────────────────────────────────────────────────────────


class MeetingCreate(BaseModel):
    """Request schema for creating a meeting."""

    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    location: str | None = Field(None, max_length=500)
    start_time: datetime
    estimated_total_duration: time = Field(
        description="Planned length as a time of day, e.g. 01:30:00",
    )

    def to_meeting(self, host_member_id: uuid.UUID, now: datetime) -> Meeting:
        return Meeting(
            title=self.title,
            description=self.description,
            location=self.location,
            start_time=self.start_time,
            host_member_id=host_member_id,
            total_estimated_duration=time_of_day_to_duration(self.estimated_total_duration),
            created_at=now,
            updated_at=now,
        )


# ── Read Models ──────────────────────────────────────────────────────────────


class MeetingMemberInfo(BaseModel):
    """Host plus the other active members of a meeting."""

    host: MemberDetail | None = None
    members: list[MemberDetail] = Field(default_factory=list)


class MeetingRemainingTime(BaseModel):
    meeting_id: uuid.UUID
    status: MeetingStatus
    remaining_duration: timedelta


class AgendaReportItem(BaseModel):
    """One completed agenda line in an end-of-meeting report."""

    agenda_id: uuid.UUID
    title: str
    order_num: int
    allocated_duration: timedelta
    actual_duration: timedelta
    diff: str


class MeetingReport(BaseModel):
    meeting_id: uuid.UUID
    total_diff: str
    agendas: list[AgendaReportItem] = Field(default_factory=list)
    memos: str
