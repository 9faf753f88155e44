"""Unit tests for duration parsing and formatting."""

from __future__ import annotations

from datetime import time, timedelta

import pytest

from src.timeet.core.durations import (
    ZERO,
    clamp_non_negative,
    duration_diff,
    format_duration,
    parse_time_of_day,
    time_of_day_to_duration,
)
from src.timeet.core.errors import BadRequestError, ErrorCode


class TestParsing:
    def test_time_of_day_becomes_duration(self):
        assert time_of_day_to_duration(time(1, 30, 15)) == timedelta(
            hours=1, minutes=30, seconds=15
        )

    def test_parse_with_seconds(self):
        assert parse_time_of_day("00:15:00") == timedelta(minutes=15)

    def test_parse_without_seconds(self):
        assert parse_time_of_day("02:05") == timedelta(hours=2, minutes=5)

    def test_parse_strips_whitespace(self):
        assert parse_time_of_day(" 00:00:30 ") == timedelta(seconds=30)

    @pytest.mark.parametrize("raw", ["abc", "25:00:00", "", "-00:10:00"])
    def test_parse_rejects_garbage(self, raw):
        with pytest.raises(BadRequestError) as exc_info:
            parse_time_of_day(raw)
        assert exc_info.value.code == ErrorCode.VALIDATION_FAILED
        assert "ModifiedDuration" in exc_info.value.errors

    def test_parse_uses_given_field_name(self):
        with pytest.raises(BadRequestError) as exc_info:
            parse_time_of_day("nope", field="AllocatedDuration")
        assert "AllocatedDuration" in exc_info.value.errors


class TestArithmetic:
    def test_diff_is_signed(self):
        assert duration_diff(timedelta(minutes=10), timedelta(minutes=15)) == timedelta(
            minutes=-5
        )

    def test_clamp(self):
        assert clamp_non_negative(timedelta(seconds=-1)) == ZERO
        assert clamp_non_negative(timedelta(seconds=5)) == timedelta(seconds=5)


class TestFormatting:
    def test_zero(self):
        assert format_duration(ZERO) == "0:00:00"

    def test_positive(self):
        assert format_duration(timedelta(hours=1, minutes=2, seconds=3)) == "1:02:03"

    def test_negative(self):
        assert format_duration(timedelta(minutes=-5)) == "-0:05:00"

    def test_over_a_day_keeps_counting_hours(self):
        assert format_duration(timedelta(hours=26)) == "26:00:00"

    def test_drops_sub_second_precision(self):
        assert format_duration(timedelta(seconds=59, milliseconds=900)) == "0:00:59"
