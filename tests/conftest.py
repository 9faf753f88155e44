"""Shared test doubles for the meeting and agenda services.

Provides:
- InMemoryStore: dict-backed tables for members, meetings, participants, agendas
- InMemoryUnitOfWork: snapshot on enter, restore on exception (rollback)
- FakeMeetingScheduler: records start jobs without running APScheduler
- FakeClock: controllable UTC clock
- Fixtures wiring MeetingService and AgendaService onto those doubles
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timedelta, timezone
from types import TracebackType

import pytest

from src.timeet.agendas.schemas import Agenda
from src.timeet.agendas.service import AgendaService
from src.timeet.core.errors import NotFoundError
from src.timeet.meetings.schemas import Meeting, MeetingStatus, Participant
from src.timeet.meetings.service import MeetingService
from src.timeet.members.schemas import Member


# ── In-Memory Store ──────────────────────────────────────────────────────────


class InMemoryStore:
    """Tables shared by every unit of work of one test."""

    def __init__(self) -> None:
        self.members: dict[uuid.UUID, Member] = {}
        self.meetings: dict[uuid.UUID, Meeting] = {}
        self.participants: dict[uuid.UUID, Participant] = {}
        self.agendas: dict[uuid.UUID, Agenda] = {}
        # Failure injection: raise on the next participant save
        self.fail_participant_save = False

    def snapshot(self) -> dict:
        return copy.deepcopy(
            {
                "members": self.members,
                "meetings": self.meetings,
                "participants": self.participants,
                "agendas": self.agendas,
            }
        )

    def restore(self, snapshot: dict) -> None:
        self.members = snapshot["members"]
        self.meetings = snapshot["meetings"]
        self.participants = snapshot["participants"]
        self.agendas = snapshot["agendas"]


# ── In-Memory Repositories ───────────────────────────────────────────────────


class InMemoryMeetingRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _active(self, meeting_id: uuid.UUID) -> list[Participant]:
        rows = [
            p.model_copy(deep=True)
            for p in self._store.participants.values()
            if p.meeting_id == meeting_id and not p.removed
        ]
        return sorted(rows, key=lambda p: (p.joined_at, str(p.id)))

    def _load(self, meeting_id: uuid.UUID) -> Meeting | None:
        stored = self._store.meetings.get(meeting_id)
        if stored is None:
            return None
        meeting = stored.model_copy(deep=True)
        meeting.participants = self._active(meeting_id)
        return meeting

    async def get(self, meeting_id: uuid.UUID) -> Meeting | None:
        return self._load(meeting_id)

    async def list_by_status(self, status: MeetingStatus) -> list[Meeting]:
        ids = [
            m.id
            for m in sorted(self._store.meetings.values(), key=lambda m: m.start_time)
            if m.status == status
        ]
        return [self._load(meeting_id) for meeting_id in ids]

    async def add(self, meeting: Meeting) -> Meeting:
        self._store.meetings[meeting.id] = meeting.model_copy(
            deep=True, update={"participants": []}
        )
        return meeting

    async def save(self, meeting: Meeting) -> Meeting:
        if meeting.id not in self._store.meetings:
            raise NotFoundError("MeetingId", "Meeting not found")
        self._store.meetings[meeting.id] = meeting.model_copy(
            deep=True, update={"participants": []}
        )
        return meeting


class InMemoryParticipantRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def find_by_meeting_and_member(
        self,
        meeting_id: uuid.UUID,
        member_id: uuid.UUID,
        include_removed: bool = False,
    ) -> Participant | None:
        for p in self._store.participants.values():
            if p.meeting_id != meeting_id or p.member_id != member_id:
                continue
            if p.removed and not include_removed:
                continue
            return p.model_copy(deep=True)
        return None

    async def add(self, participant: Participant) -> Participant:
        self._store.participants[participant.id] = participant.model_copy(deep=True)
        return participant

    async def save(self, participant: Participant) -> Participant:
        if self._store.fail_participant_save:
            raise RuntimeError("participant write failed")
        if participant.id not in self._store.participants:
            raise NotFoundError("ParticipantId", "Participant not found")
        self._store.participants[participant.id] = participant.model_copy(deep=True)
        return participant


class InMemoryAgendaRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def list_by_meeting(self, meeting_id: uuid.UUID) -> list[Agenda]:
        rows = [
            a.model_copy(deep=True)
            for a in self._store.agendas.values()
            if a.meeting_id == meeting_id
        ]
        return sorted(rows, key=lambda a: a.order_num)

    async def count_by_meeting(self, meeting_id: uuid.UUID) -> int:
        return sum(1 for a in self._store.agendas.values() if a.meeting_id == meeting_id)

    async def get_by_id_and_meeting(
        self, agenda_id: uuid.UUID, meeting_id: uuid.UUID
    ) -> Agenda | None:
        agenda = self._store.agendas.get(agenda_id)
        if agenda is None or agenda.meeting_id != meeting_id:
            return None
        return agenda.model_copy(deep=True)

    async def add(self, agenda: Agenda) -> Agenda:
        self._store.agendas[agenda.id] = agenda.model_copy(deep=True)
        return agenda

    async def save(self, agenda: Agenda) -> Agenda:
        if agenda.id not in self._store.agendas:
            raise NotFoundError("AgendaId", "Agenda not found")
        self._store.agendas[agenda.id] = agenda.model_copy(deep=True)
        return agenda

    async def save_all(self, agendas: list[Agenda]) -> list[Agenda]:
        for agenda in agendas:
            await self.save(agenda)
        return agendas


class InMemoryMemberRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get(self, member_id: uuid.UUID) -> Member | None:
        member = self._store.members.get(member_id)
        return member.model_copy() if member else None

    async def get_many(self, member_ids: list[uuid.UUID]) -> dict[uuid.UUID, Member]:
        return {
            member_id: self._store.members[member_id].model_copy()
            for member_id in member_ids
            if member_id in self._store.members
        }


class InMemoryUnitOfWork:
    """Unit of work over InMemoryStore with all-or-nothing semantics."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._snapshot: dict | None = None
        self.meetings = InMemoryMeetingRepository(store)
        self.participants = InMemoryParticipantRepository(store)
        self.agendas = InMemoryAgendaRepository(store)
        self.members = InMemoryMemberRepository(store)

    async def __aenter__(self) -> InMemoryUnitOfWork:
        self._snapshot = self._store.snapshot()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and self._snapshot is not None:
            self._store.restore(self._snapshot)
        self._snapshot = None


# ── Scheduler & Clock Doubles ────────────────────────────────────────────────


class FakeMeetingScheduler:
    """Records start jobs by meeting id."""

    def __init__(self) -> None:
        self.scheduled: dict[uuid.UUID, datetime] = {}
        self.cancelled: list[uuid.UUID] = []
        self.running = True

    def schedule_meeting_start(self, meeting_id: uuid.UUID, start_time: datetime) -> None:
        self.scheduled[meeting_id] = start_time

    def cancel_meeting_start(self, meeting_id: uuid.UUID) -> None:
        self.scheduled.pop(meeting_id, None)
        self.cancelled.append(meeting_id)

    def has_pending_start(self, meeting_id: uuid.UUID) -> bool:
        return meeting_id in self.scheduled

    def shutdown(self) -> None:
        self.running = False


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ── Fixtures ─────────────────────────────────────────────────────────────────


BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow_factory(store: InMemoryStore):
    return lambda: InMemoryUnitOfWork(store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(BASE_TIME)


@pytest.fixture
def scheduler() -> FakeMeetingScheduler:
    return FakeMeetingScheduler()


@pytest.fixture
def meeting_service(uow_factory, scheduler, clock) -> MeetingService:
    return MeetingService(uow_factory, scheduler, clock=clock)


@pytest.fixture
def agenda_service(uow_factory, clock) -> AgendaService:
    return AgendaService(uow_factory, clock=clock)


def make_member(store: InMemoryStore, nickname: str) -> Member:
    member = Member(nickname=nickname, email=f"{nickname.lower()}@example.com")
    store.members[member.id] = member
    return member


@pytest.fixture
def alice(store: InMemoryStore) -> Member:
    return make_member(store, "Alice")


@pytest.fixture
def bob(store: InMemoryStore) -> Member:
    return make_member(store, "Bob")


@pytest.fixture
def carol(store: InMemoryStore) -> Member:
    return make_member(store, "Carol")
