"""Agenda repository -- async persistence for agenda items.

Bound to the unit-of-work session like the meeting repositories; flushes but
never commits.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.timeet.agendas.models import AgendaModel
from src.timeet.agendas.schemas import Agenda, AgendaStatus, AgendaType
from src.timeet.core.errors import NotFoundError


def _model_to_agenda(model: AgendaModel) -> Agenda:
    """Convert AgendaModel to Agenda schema."""
    return Agenda(
        id=model.id,
        meeting_id=model.meeting_id,
        title=model.title,
        type=AgendaType(model.type),
        status=AgendaStatus(model.status),
        order_num=model.order_num,
        allocated_duration=model.allocated_duration,
        current_duration=model.current_duration,
        segment_started_at=model.segment_started_at,
        created_at=model.created_at,
        updated_at=model.updated_at or model.created_at,
    )


def _apply_agenda(model: AgendaModel, agenda: Agenda) -> None:
    model.meeting_id = agenda.meeting_id
    model.title = agenda.title
    model.type = agenda.type.value
    model.status = agenda.status.value
    model.order_num = agenda.order_num
    model.allocated_duration = agenda.allocated_duration
    model.current_duration = agenda.current_duration
    model.segment_started_at = agenda.segment_started_at


class AgendaRepository:
    """Agenda persistence.

    Args:
        session: AsyncSession owned by the enclosing unit of work.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_by_meeting(self, meeting_id: uuid.UUID) -> list[Agenda]:
        """All agendas of a meeting, by order number."""
        stmt = (
            select(AgendaModel)
            .where(AgendaModel.meeting_id == meeting_id)
            .order_by(AgendaModel.order_num, AgendaModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [_model_to_agenda(m) for m in result.scalars().all()]

    async def count_by_meeting(self, meeting_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(AgendaModel).where(
            AgendaModel.meeting_id == meeting_id
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def get_by_id_and_meeting(
        self, agenda_id: uuid.UUID, meeting_id: uuid.UUID
    ) -> Agenda | None:
        """Get an agenda only if it belongs to the given meeting."""
        stmt = select(AgendaModel).where(
            AgendaModel.id == agenda_id,
            AgendaModel.meeting_id == meeting_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return _model_to_agenda(model)

    async def add(self, agenda: Agenda) -> Agenda:
        model = AgendaModel(id=agenda.id)
        _apply_agenda(model, agenda)
        self._session.add(model)
        await self._session.flush()
        return agenda

    async def save(self, agenda: Agenda) -> Agenda:
        model = await self._session.get(AgendaModel, agenda.id)
        if model is None:
            raise NotFoundError("AgendaId", "Agenda not found")
        _apply_agenda(model, agenda)
        await self._session.flush()
        return agenda

    async def save_all(self, agendas: list[Agenda]) -> list[Agenda]:
        for agenda in agendas:
            model = await self._session.get(AgendaModel, agenda.id)
            if model is None:
                raise NotFoundError("AgendaId", f"Agenda Id {agenda.id} not found")
            _apply_agenda(model, agenda)
        await self._session.flush()
        return agendas
