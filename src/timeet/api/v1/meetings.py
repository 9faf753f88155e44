"""REST endpoints for meeting lifecycle and membership.

Durations are rendered as ``H:MM:SS`` strings. Domain errors propagate to
the handlers in ``api/errors.py``; only authentication problems are raised
here as HTTPException.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.timeet.api.deps import get_current_member, get_meeting_service, require_host
from src.timeet.core.durations import format_duration
from src.timeet.meetings.schemas import (
    Meeting,
    MeetingCreate,
    MeetingMemberInfo,
    MeetingReport,
)
from src.timeet.meetings.service import MeetingService
from src.timeet.members.schemas import Member

router = APIRouter(prefix="/meetings", tags=["meetings"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class MeetingResponse(BaseModel):
    """Meeting data with ISO datetimes and formatted durations."""

    id: str
    title: str
    description: str | None = None
    location: str | None = None
    start_time: str
    actual_start_time: str | None = None
    actual_end_time: str | None = None
    status: str
    host_member_id: str | None = None
    total_estimated_duration: str
    total_actual_duration: str
    participant_member_ids: list[str] = Field(default_factory=list)


class RemainingTimeResponse(BaseModel):
    meeting_id: str
    status: str
    remaining_duration: str
    remaining_seconds: int


class ReportAgendaResponse(BaseModel):
    agenda_id: str
    title: str
    order_num: int
    allocated_duration: str
    actual_duration: str
    diff: str


class ReportResponse(BaseModel):
    meeting_id: str
    total_diff: str
    agendas: list[ReportAgendaResponse] = Field(default_factory=list)
    memos: str


# ── Conversion Helpers ───────────────────────────────────────────────────────


def meeting_to_response(m: Meeting) -> MeetingResponse:
    """Convert Meeting schema to MeetingResponse."""
    return MeetingResponse(
        id=str(m.id),
        title=m.title,
        description=m.description,
        location=m.location,
        start_time=m.start_time.isoformat(),
        actual_start_time=m.actual_start_time.isoformat() if m.actual_start_time else None,
        actual_end_time=m.actual_end_time.isoformat() if m.actual_end_time else None,
        status=m.status.value,
        host_member_id=str(m.host_member_id) if m.host_member_id else None,
        total_estimated_duration=format_duration(m.total_estimated_duration),
        total_actual_duration=format_duration(m.total_actual_duration),
        participant_member_ids=[str(p.member_id) for p in m.participants],
    )


def _report_to_response(r: MeetingReport) -> ReportResponse:
    return ReportResponse(
        meeting_id=str(r.meeting_id),
        total_diff=r.total_diff,
        agendas=[
            ReportAgendaResponse(
                agenda_id=str(a.agenda_id),
                title=a.title,
                order_num=a.order_num,
                allocated_duration=format_duration(a.allocated_duration),
                actual_duration=format_duration(a.actual_duration),
                diff=a.diff,
            )
            for a in r.agendas
        ],
        memos=r.memos,
    )


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("", response_model=MeetingResponse, status_code=status.HTTP_201_CREATED)
async def create_meeting(
    body: MeetingCreate,
    member: Member = Depends(get_current_member),
    service: MeetingService = Depends(get_meeting_service),
) -> MeetingResponse:
    """Create a meeting hosted by the caller."""
    meeting = await service.create_meeting(body, member)
    return meeting_to_response(meeting)


@router.get("/{meeting_id}", response_model=MeetingResponse)
async def get_meeting(
    meeting_id: uuid.UUID,
    member: Member = Depends(get_current_member),
    service: MeetingService = Depends(get_meeting_service),
) -> MeetingResponse:
    meeting = await service.find_by_id(meeting_id)
    return meeting_to_response(meeting)


@router.patch("/{meeting_id}/end", response_model=MeetingResponse)
async def end_meeting(
    meeting_id: uuid.UUID,
    member: Member = Depends(get_current_member),
    service: MeetingService = Depends(get_meeting_service),
) -> MeetingResponse:
    """End the meeting (host only) and close out its agendas."""
    meeting = await service.end_meeting(meeting_id, member.id)
    return meeting_to_response(meeting)


@router.patch("/{meeting_id}/cancel", response_model=MeetingResponse)
async def cancel_meeting(
    meeting_id: uuid.UUID,
    member: Member = Depends(require_host),
    service: MeetingService = Depends(get_meeting_service),
) -> MeetingResponse:
    """Cancel the meeting (host only). Agendas are left as they are."""
    meeting = await service.cancel_meeting(meeting_id)
    return meeting_to_response(meeting)


@router.post("/{meeting_id}/participants", response_model=MeetingResponse)
async def join_meeting(
    meeting_id: uuid.UUID,
    member: Member = Depends(get_current_member),
    service: MeetingService = Depends(get_meeting_service),
) -> MeetingResponse:
    """Join the meeting as the calling member. Joining twice is a no-op."""
    meeting = await service.add_participant_to_meeting(meeting_id, member)
    return meeting_to_response(meeting)


@router.delete("/{meeting_id}/participants/me", response_model=MeetingResponse)
async def leave_meeting(
    meeting_id: uuid.UUID,
    member: Member = Depends(get_current_member),
    service: MeetingService = Depends(get_meeting_service),
) -> MeetingResponse:
    """Leave the meeting; the host role passes on if the caller held it."""
    meeting = await service.leave_meeting(meeting_id, member.id)
    return meeting_to_response(meeting)


@router.get("/{meeting_id}/members", response_model=MeetingMemberInfo)
async def get_meeting_members(
    meeting_id: uuid.UUID,
    member: Member = Depends(get_current_member),
    service: MeetingService = Depends(get_meeting_service),
) -> MeetingMemberInfo:
    return await service.get_meeting_members(meeting_id)


@router.get("/{meeting_id}/remaining-time", response_model=RemainingTimeResponse)
async def get_remaining_time(
    meeting_id: uuid.UUID,
    member: Member = Depends(get_current_member),
    service: MeetingService = Depends(get_meeting_service),
) -> RemainingTimeResponse:
    remaining = await service.get_remaining_time(meeting_id)
    return RemainingTimeResponse(
        meeting_id=str(remaining.meeting_id),
        status=remaining.status.value,
        remaining_duration=format_duration(remaining.remaining_duration),
        remaining_seconds=int(remaining.remaining_duration.total_seconds()),
    )


@router.get("/{meeting_id}/report", response_model=ReportResponse)
async def get_report(
    meeting_id: uuid.UUID,
    member: Member = Depends(get_current_member),
    service: MeetingService = Depends(get_meeting_service),
) -> ReportResponse:
    """End-of-meeting report over completed regular agendas."""
    report = await service.create_report(meeting_id)
    return _report_to_response(report)
