"""Unit of work -- one database transaction per service operation.

Usage:
    async with uow_factory() as uow:
        meeting = await uow.meetings.get(meeting_id)
        ...
        await uow.meetings.save(meeting)

Leaving the block normally commits; any exception rolls back every write
made through the repositories, so cross-aggregate updates (agenda status
plus meeting totals, host reassignment plus participant removal) land
together or not at all.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from types import TracebackType

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.timeet.agendas.repository import AgendaRepository
from src.timeet.core.database import get_session
from src.timeet.core.errors import ConcurrentModificationError
from src.timeet.meetings.repository import MeetingRepository, ParticipantRepository
from src.timeet.members.repository import MemberRepository

logger = structlog.get_logger(__name__)


class UnitOfWork:
    """Async context manager owning one AsyncSession and its repositories.

    Args:
        session_factory: Async generator callable yielding AsyncSession
            instances (defaults to core.database.get_session).
    """

    meetings: MeetingRepository
    participants: ParticipantRepository
    agendas: AgendaRepository
    members: MemberRepository

    def __init__(
        self,
        session_factory: Callable[..., AsyncGenerator[AsyncSession, None]] = get_session,
    ) -> None:
        self._session_factory = session_factory
        self._session_gen: AsyncGenerator[AsyncSession, None] | None = None
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> UnitOfWork:
        self._session_gen = self._session_factory()
        self.session = await self._session_gen.__anext__()
        self.meetings = MeetingRepository(self.session)
        self.participants = ParticipantRepository(self.session)
        self.agendas = AgendaRepository(self.session)
        self.members = MemberRepository(self.session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.session is None or self._session_gen is None:
            raise RuntimeError("UnitOfWork exited without being entered")
        try:
            if exc_type is None:
                await self.session.commit()
            else:
                await self.session.rollback()
        except StaleDataError as stale:
            await self.session.rollback()
            logger.warning("uow.concurrent_modification", error=str(stale))
            raise ConcurrentModificationError() from stale
        finally:
            await self._session_gen.aclose()

        if isinstance(exc, StaleDataError):
            logger.warning("uow.concurrent_modification", error=str(exc))
            raise ConcurrentModificationError() from exc


def unit_of_work_factory(
    session_factory: Callable[..., AsyncGenerator[AsyncSession, None]] = get_session,
) -> Callable[[], UnitOfWork]:
    """Build a zero-argument factory services can call per operation."""

    def _factory() -> UnitOfWork:
        return UnitOfWork(session_factory)

    return _factory
