"""Unit tests for the Meeting aggregate: transitions, host handoff, timing."""

from __future__ import annotations

import uuid
from datetime import datetime, time, timedelta, timezone

import pytest

from src.timeet.core.errors import BadRequestError, ErrorCode
from src.timeet.meetings.schemas import (
    VALID_MEETING_TRANSITIONS,
    InvalidMeetingTransitionError,
    Meeting,
    MeetingCreate,
    MeetingStatus,
)


T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _meeting(**overrides) -> Meeting:
    defaults = {
        "title": "Weekly sync",
        "start_time": T0,
        "total_actual_duration": timedelta(minutes=30),
    }
    defaults.update(overrides)
    return Meeting(**defaults)


class TestTransitions:
    def test_terminal_statuses(self):
        assert VALID_MEETING_TRANSITIONS[MeetingStatus.ENDED] == set()
        assert VALID_MEETING_TRANSITIONS[MeetingStatus.CANCELLED] == set()

    def test_start_then_end(self):
        meeting = _meeting()
        meeting.start(T0)
        assert meeting.status == MeetingStatus.IN_PROGRESS
        assert meeting.actual_start_time == T0
        meeting.end(T0 + timedelta(minutes=40))
        assert meeting.status == MeetingStatus.ENDED
        assert meeting.actual_end_time == T0 + timedelta(minutes=40)

    def test_scheduled_meeting_can_end_directly(self):
        meeting = _meeting()
        meeting.end(T0)
        assert meeting.status == MeetingStatus.ENDED

    def test_cannot_restart_ended_meeting(self):
        meeting = _meeting(status=MeetingStatus.ENDED)
        with pytest.raises(InvalidMeetingTransitionError) as exc_info:
            meeting.start(T0)
        err = exc_info.value
        assert isinstance(err, BadRequestError)
        assert err.code == ErrorCode.WRONG_REQUEST_TRANSMISSION
        assert meeting.status == MeetingStatus.ENDED
        assert meeting.actual_start_time is None

    def test_cannot_cancel_twice(self):
        meeting = _meeting()
        meeting.cancel()
        with pytest.raises(InvalidMeetingTransitionError):
            meeting.cancel()


class TestHostReassignment:
    def test_earliest_joined_other_participant_wins(self):
        host, early, late = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        meeting = _meeting(host_member_id=host)
        meeting.add_participant(host, T0)
        meeting.add_participant(late, T0 + timedelta(minutes=5))
        meeting.add_participant(early, T0 + timedelta(minutes=1))

        assert meeting.assign_new_host() == early
        assert meeting.host_member_id == early

    def test_join_time_ties_break_on_participant_id(self):
        host, a, b = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        meeting = _meeting(host_member_id=host)
        meeting.add_participant(host, T0)
        pa = meeting.add_participant(a, T0 + timedelta(minutes=1))
        pb = meeting.add_participant(b, T0 + timedelta(minutes=1))
        expected = min((pa, pb), key=lambda p: str(p.id)).member_id

        assert meeting.assign_new_host() == expected

    def test_no_candidates_clears_host(self):
        host = uuid.uuid4()
        meeting = _meeting(host_member_id=host)
        meeting.add_participant(host, T0)

        assert meeting.assign_new_host() is None
        assert meeting.host_member_id is None

    def test_drop_participant_detaches_record(self):
        member = uuid.uuid4()
        meeting = _meeting()
        participant = meeting.add_participant(member, T0)

        meeting.drop_participant(participant, T0 + timedelta(minutes=1))

        assert participant.removed is True
        assert participant.removed_at == T0 + timedelta(minutes=1)
        assert meeting.find_participant(member) is None


class TestDurations:
    def test_adjust_total_clamps_at_zero(self):
        meeting = _meeting(total_actual_duration=timedelta(minutes=5))
        assert meeting.adjust_total_actual_duration(timedelta(minutes=-10)) == timedelta(0)

    def test_remaining_time_scheduled_is_planned_total(self):
        meeting = _meeting()
        assert meeting.remaining_time(T0 + timedelta(hours=2)) == timedelta(minutes=30)

    def test_remaining_time_in_progress_counts_down(self):
        meeting = _meeting()
        meeting.start(T0)
        assert meeting.remaining_time(T0 + timedelta(minutes=12)) == timedelta(minutes=18)
        assert meeting.remaining_time(T0 + timedelta(hours=1)) == timedelta(0)

    def test_remaining_time_after_end_is_zero(self):
        meeting = _meeting()
        meeting.end(T0)
        assert meeting.remaining_time(T0) == timedelta(0)


class TestMeetingCreate:
    def test_to_meeting(self):
        host = uuid.uuid4()
        request = MeetingCreate(
            title="Planning",
            start_time=T0,
            estimated_total_duration=time(1, 30),
        )
        meeting = request.to_meeting(host_member_id=host, now=T0)
        assert meeting.status == MeetingStatus.SCHEDULED
        assert meeting.host_member_id == host
        assert meeting.total_estimated_duration == timedelta(hours=1, minutes=30)
        assert meeting.total_actual_duration == timedelta(0)
        assert meeting.participants == []

    def test_rejects_empty_title(self):
        with pytest.raises(ValueError):
            MeetingCreate(title="", start_time=T0, estimated_total_duration=time(1))
