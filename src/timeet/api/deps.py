"""FastAPI dependency injection for services and the authenticated member.

Services live on ``app.state`` (built in the lifespan, or by tests) so
endpoints stay free of wiring code.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import Depends, HTTPException, Request, status

from src.timeet.agendas.service import AgendaService
from src.timeet.core.errors import BadRequestError, ForbiddenError
from src.timeet.core.security import verify_token
from src.timeet.meetings.service import MeetingService, get_meeting_or_raise
from src.timeet.members.schemas import Member


def _get_state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} not initialized",
        )
    return value


def get_meeting_service(request: Request) -> MeetingService:
    return _get_state(request, "meeting_service")


def get_agenda_service(request: Request) -> AgendaService:
    return _get_state(request, "agenda_service")


def get_current_member_id(request: Request) -> uuid.UUID:
    """Read the member id from the Bearer JWT ``sub`` claim.

    Raises:
        HTTPException(401): Missing, invalid, or non-UUID subject.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(auth_header[7:], token_type="access")
    try:
        return uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token subject is not a member id",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


async def get_current_member(
    request: Request,
    member_id: uuid.UUID = Depends(get_current_member_id),
) -> Member:
    """Load the authenticated member.

    Raises:
        HTTPException(401): The token names a member that does not exist.
    """
    uow_factory = _get_state(request, "uow_factory")
    async with uow_factory() as uow:
        member = await uow.members.get(member_id)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Member not found",
        )
    return member


async def require_host(
    meeting_id: uuid.UUID,
    request: Request,
    member: Member = Depends(get_current_member),
) -> Member:
    """The authenticated member, provided they host the meeting.

    Raises:
        NotFoundError: Meeting does not exist.
        ForbiddenError: Member is not the host.
    """
    uow_factory = _get_state(request, "uow_factory")
    async with uow_factory() as uow:
        meeting = await get_meeting_or_raise(uow, meeting_id)
    if not meeting.is_host(member.id):
        raise ForbiddenError("MemberId", "Member is not the host of the meeting")
    return member


async def require_participant(
    meeting_id: uuid.UUID,
    request: Request,
    member: Member = Depends(get_current_member),
) -> Member:
    """The authenticated member, provided they actively participate in the meeting.

    Raises:
        NotFoundError: Meeting does not exist.
        BadRequestError: Member is not an active participant.
    """
    uow_factory = _get_state(request, "uow_factory")
    async with uow_factory() as uow:
        await get_meeting_or_raise(uow, meeting_id)
        participant = await uow.participants.find_by_meeting_and_member(
            meeting_id, member.id
        )
    if participant is None:
        raise BadRequestError("MemberId", "Member is not a participant of the meeting")
    return member
