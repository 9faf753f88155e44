"""Tests for MeetingScheduler on a real AsyncIOScheduler."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from src.timeet.core.errors import NotFoundError
from src.timeet.meetings.scheduler import MeetingScheduler


@pytest.fixture
def started():
    calls: list[uuid.UUID] = []

    async def handler(meeting_id: uuid.UUID) -> None:
        calls.append(meeting_id)

    return calls, handler


class TestJobRegistration:
    @pytest.mark.asyncio
    async def test_future_start_registers_one_job(self, started):
        calls, handler = started
        scheduler = MeetingScheduler(start_handler=handler)
        scheduler.start()
        try:
            meeting_id = uuid.uuid4()
            start = datetime.now(timezone.utc) + timedelta(hours=1)

            scheduler.schedule_meeting_start(meeting_id, start)
            scheduler.schedule_meeting_start(meeting_id, start + timedelta(minutes=5))

            assert scheduler.has_pending_start(meeting_id)
            assert scheduler.job_id(meeting_id) == f"meeting-start-{meeting_id}"
            assert calls == []
        finally:
            scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_cancel_removes_job(self, started):
        _, handler = started
        scheduler = MeetingScheduler(start_handler=handler)
        scheduler.start()
        try:
            meeting_id = uuid.uuid4()
            scheduler.schedule_meeting_start(
                meeting_id, datetime.now(timezone.utc) + timedelta(hours=1)
            )
            scheduler.cancel_meeting_start(meeting_id)
            assert not scheduler.has_pending_start(meeting_id)

            # Unknown ids are ignored
            scheduler.cancel_meeting_start(uuid.uuid4())
        finally:
            scheduler.shutdown()


class TestFiring:
    @pytest.mark.asyncio
    async def test_past_start_fires_immediately(self, started):
        calls, handler = started
        scheduler = MeetingScheduler(start_handler=handler)
        scheduler.start()
        try:
            meeting_id = uuid.uuid4()
            scheduler.schedule_meeting_start(
                meeting_id, datetime.now(timezone.utc) - timedelta(minutes=1)
            )
            for _ in range(50):
                if calls:
                    break
                await asyncio.sleep(0.05)

            assert calls == [meeting_id]
            assert not scheduler.has_pending_start(meeting_id)
        finally:
            scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_naive_start_time_treated_as_utc(self, started):
        calls, handler = started
        scheduler = MeetingScheduler(start_handler=handler)
        scheduler.start()
        try:
            meeting_id = uuid.uuid4()
            naive_past = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)
            scheduler.schedule_meeting_start(meeting_id, naive_past)
            for _ in range(50):
                if calls:
                    break
                await asyncio.sleep(0.05)

            assert calls == [meeting_id]
        finally:
            scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_rejected_start_is_swallowed(self):
        attempts: list[uuid.UUID] = []

        async def handler(meeting_id: uuid.UUID) -> None:
            attempts.append(meeting_id)
            raise NotFoundError("MeetingId", "Meeting not found")

        scheduler = MeetingScheduler(start_handler=handler)
        meeting_id = uuid.uuid4()

        await scheduler._fire(meeting_id)

        assert attempts == [meeting_id]

    @pytest.mark.asyncio
    async def test_unbound_handler_is_noop(self):
        scheduler = MeetingScheduler()
        await scheduler._fire(uuid.uuid4())
        scheduler.bind_start_handler(lambda _id: asyncio.sleep(0))
        await scheduler._fire(uuid.uuid4())
