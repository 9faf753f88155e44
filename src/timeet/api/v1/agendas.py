"""REST endpoints for agendas within a meeting.

``/order`` is declared before ``/{agenda_id}`` so the literal segment is not
parsed as an agenda UUID.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.timeet.agendas.schemas import (
    Agenda,
    AgendaActionRequest,
    AgendaCreate,
    AgendaInfo,
    AgendaOrderRequest,
)
from src.timeet.agendas.service import AgendaService
from src.timeet.api.deps import get_agenda_service, get_current_member, require_participant
from src.timeet.api.v1.meetings import MeetingResponse, meeting_to_response
from src.timeet.core.durations import format_duration
from src.timeet.members.schemas import Member

router = APIRouter(prefix="/meetings/{meeting_id}/agendas", tags=["agendas"])


# ── Response Schemas ─────────────────────────────────────────────────────────


class AgendaResponse(BaseModel):
    id: str
    meeting_id: str
    title: str
    type: str
    status: str
    order_num: int
    allocated_duration: str
    current_duration: str


class AgendaActionResponse(BaseModel):
    agenda: AgendaResponse
    current_duration: str
    remaining_duration: str


class AgendaInfoResponse(BaseModel):
    meeting: MeetingResponse
    agendas: list[AgendaResponse] = Field(default_factory=list)


# ── Conversion Helpers ───────────────────────────────────────────────────────


def _agenda_to_response(a: Agenda) -> AgendaResponse:
    return AgendaResponse(
        id=str(a.id),
        meeting_id=str(a.meeting_id),
        title=a.title,
        type=a.type.value,
        status=a.status.value,
        order_num=a.order_num,
        allocated_duration=format_duration(a.allocated_duration),
        current_duration=format_duration(a.current_duration),
    )


def _info_to_response(info: AgendaInfo) -> AgendaInfoResponse:
    return AgendaInfoResponse(
        meeting=meeting_to_response(info.meeting),
        agendas=[_agenda_to_response(a) for a in info.agendas],
    )


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("", response_model=AgendaResponse, status_code=status.HTTP_201_CREATED)
async def create_agenda(
    meeting_id: uuid.UUID,
    body: AgendaCreate,
    member: Member = Depends(get_current_member),
    service: AgendaService = Depends(get_agenda_service),
) -> AgendaResponse:
    """Append an agenda. The caller must be a participant."""
    agenda = await service.create_agenda(meeting_id, body, member)
    return _agenda_to_response(agenda)


@router.get("", response_model=AgendaInfoResponse)
async def list_agendas(
    meeting_id: uuid.UUID,
    member: Member = Depends(get_current_member),
    service: AgendaService = Depends(get_agenda_service),
) -> AgendaInfoResponse:
    info = await service.find_agendas(meeting_id)
    return _info_to_response(info)


@router.patch("/order", response_model=AgendaInfoResponse)
async def change_agenda_order(
    meeting_id: uuid.UUID,
    body: AgendaOrderRequest,
    member: Member = Depends(require_participant),
    service: AgendaService = Depends(get_agenda_service),
) -> AgendaInfoResponse:
    """Renumber agendas in the order given. Every agenda must be listed once."""
    info = await service.change_agenda_order(meeting_id, body.agenda_ids)
    return _info_to_response(info)


@router.patch("/{agenda_id}", response_model=AgendaActionResponse)
async def change_agenda_status(
    meeting_id: uuid.UUID,
    agenda_id: uuid.UUID,
    body: AgendaActionRequest,
    member: Member = Depends(require_participant),
    service: AgendaService = Depends(get_agenda_service),
) -> AgendaActionResponse:
    """Apply START, PAUSE, RESUME, END, or MODIFY."""
    result = await service.change_agenda_status(meeting_id, agenda_id, body)
    return AgendaActionResponse(
        agenda=_agenda_to_response(result.agenda),
        current_duration=format_duration(result.current_duration),
        remaining_duration=format_duration(result.remaining_duration),
    )


@router.patch("/{agenda_id}/cancel", response_model=AgendaResponse)
async def cancel_agenda(
    meeting_id: uuid.UUID,
    agenda_id: uuid.UUID,
    member: Member = Depends(require_participant),
    service: AgendaService = Depends(get_agenda_service),
) -> AgendaResponse:
    agenda = await service.cancel_agenda(meeting_id, agenda_id)
    return _agenda_to_response(agenda)
