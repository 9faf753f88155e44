"""Member repository -- read access to member identity rows."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.timeet.members.models import MemberModel
from src.timeet.members.schemas import Member


def _model_to_member(model: MemberModel) -> Member:
    """Convert MemberModel to Member schema."""
    return Member(
        id=model.id,
        nickname=model.nickname,
        email=model.email,
        image_url=model.image_url,
    )


class MemberRepository:
    """Member lookups bound to a unit-of-work session.

    Args:
        session: AsyncSession owned by the enclosing unit of work.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, member_id: uuid.UUID) -> Member | None:
        model = await self._session.get(MemberModel, member_id)
        if model is None:
            return None
        return _model_to_member(model)

    async def get_many(self, member_ids: list[uuid.UUID]) -> dict[uuid.UUID, Member]:
        """Fetch several members at once, keyed by id. Missing ids are skipped."""
        if not member_ids:
            return {}
        stmt = select(MemberModel).where(MemberModel.id.in_(member_ids))
        result = await self._session.execute(stmt)
        return {m.id: _model_to_member(m) for m in result.scalars().all()}
