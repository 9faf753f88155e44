"""Meeting repositories -- async persistence for meetings and participants.

Both repositories are bound to the AsyncSession of the enclosing unit of
work and never commit themselves; the unit of work decides. Rows are
converted to Pydantic schemas on load and written back field-by-field on
save, so the identity map keeps the loaded version counter for optimistic
locking.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.timeet.core.errors import NotFoundError
from src.timeet.meetings.models import MeetingModel, ParticipantModel
from src.timeet.meetings.schemas import Meeting, MeetingStatus, Participant

logger = structlog.get_logger(__name__)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _model_to_participant(model: ParticipantModel) -> Participant:
    """Convert ParticipantModel to Participant schema."""
    return Participant(
        id=model.id,
        meeting_id=model.meeting_id,
        member_id=model.member_id,
        joined_at=model.joined_at,
        removed=bool(model.removed),
        removed_at=model.removed_at,
    )


def _model_to_meeting(
    model: MeetingModel, participants: list[ParticipantModel]
) -> Meeting:
    """Convert MeetingModel plus its active participant rows to a Meeting."""
    return Meeting(
        id=model.id,
        title=model.title,
        description=model.description,
        location=model.location,
        start_time=model.start_time,
        actual_start_time=model.actual_start_time,
        actual_end_time=model.actual_end_time,
        status=MeetingStatus(model.status),
        host_member_id=model.host_member_id,
        total_estimated_duration=model.total_estimated_duration,
        total_actual_duration=model.total_actual_duration,
        participants=[_model_to_participant(p) for p in participants],
        created_at=model.created_at,
        updated_at=model.updated_at or model.created_at,
    )


def _apply_meeting(model: MeetingModel, meeting: Meeting) -> None:
    model.title = meeting.title
    model.description = meeting.description
    model.location = meeting.location
    model.start_time = meeting.start_time
    model.actual_start_time = meeting.actual_start_time
    model.actual_end_time = meeting.actual_end_time
    model.status = meeting.status.value
    model.host_member_id = meeting.host_member_id
    model.total_estimated_duration = meeting.total_estimated_duration
    model.total_actual_duration = meeting.total_actual_duration


def _apply_participant(model: ParticipantModel, participant: Participant) -> None:
    model.meeting_id = participant.meeting_id
    model.member_id = participant.member_id
    model.joined_at = participant.joined_at
    model.removed = participant.removed
    model.removed_at = participant.removed_at


# ── Meetings ────────────────────────────────────────────────────────────────


class MeetingRepository:
    """Meeting aggregate persistence.

    Args:
        session: AsyncSession owned by the enclosing unit of work.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _active_participants(self, meeting_id: uuid.UUID) -> list[ParticipantModel]:
        stmt = (
            select(ParticipantModel)
            .where(
                ParticipantModel.meeting_id == meeting_id,
                ParticipantModel.removed.is_(False),
            )
            .order_by(ParticipantModel.joined_at, ParticipantModel.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get(self, meeting_id: uuid.UUID) -> Meeting | None:
        """Load a meeting with its active participants.

        Returns:
            Meeting if found, None otherwise.
        """
        model = await self._session.get(MeetingModel, meeting_id)
        if model is None:
            return None
        participants = await self._active_participants(meeting_id)
        return _model_to_meeting(model, participants)

    async def list_by_status(self, status: MeetingStatus) -> list[Meeting]:
        """All meetings in a status, ordered by scheduled start."""
        stmt = (
            select(MeetingModel)
            .where(MeetingModel.status == status.value)
            .order_by(MeetingModel.start_time)
        )
        result = await self._session.execute(stmt)
        meetings = []
        for model in result.scalars().all():
            participants = await self._active_participants(model.id)
            meetings.append(_model_to_meeting(model, participants))
        return meetings

    async def add(self, meeting: Meeting) -> Meeting:
        """Insert the meeting row. Participants are added separately."""
        model = MeetingModel(id=meeting.id)
        _apply_meeting(model, meeting)
        self._session.add(model)
        await self._session.flush()
        meeting.created_at = model.created_at or meeting.created_at
        logger.debug("meeting.inserted", meeting_id=str(meeting.id))
        return meeting

    async def save(self, meeting: Meeting) -> Meeting:
        """Write the meeting's scalar fields back to its row.

        Raises:
            NotFoundError: If the row no longer exists.
        """
        model = await self._session.get(MeetingModel, meeting.id)
        if model is None:
            raise NotFoundError("MeetingId", "Meeting not found")
        _apply_meeting(model, meeting)
        await self._session.flush()
        return meeting


# ── Participants ────────────────────────────────────────────────────────────


class ParticipantRepository:
    """Participant row persistence.

    Args:
        session: AsyncSession owned by the enclosing unit of work.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_meeting_and_member(
        self,
        meeting_id: uuid.UUID,
        member_id: uuid.UUID,
        include_removed: bool = False,
    ) -> Participant | None:
        """Find a member's participant record in a meeting.

        Args:
            meeting_id: Meeting UUID.
            member_id: Member UUID.
            include_removed: Also return a soft-removed record.

        Returns:
            Participant if found, None otherwise.
        """
        conditions = [
            ParticipantModel.meeting_id == meeting_id,
            ParticipantModel.member_id == member_id,
        ]
        if not include_removed:
            conditions.append(ParticipantModel.removed.is_(False))
        stmt = select(ParticipantModel).where(*conditions)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return _model_to_participant(model)

    async def add(self, participant: Participant) -> Participant:
        model = ParticipantModel(id=participant.id)
        _apply_participant(model, participant)
        self._session.add(model)
        await self._session.flush()
        return participant

    async def save(self, participant: Participant) -> Participant:
        model = await self._session.get(ParticipantModel, participant.id)
        if model is None:
            raise NotFoundError("ParticipantId", "Participant not found")
        _apply_participant(model, participant)
        await self._session.flush()
        return participant
