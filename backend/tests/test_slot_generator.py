# backend/tests/test_slot_generator.py
"""
Tests for slot generation (pure functions).
"""

from datetime import date, datetime, time

import pytest

from app.services.errors import ValidationError
from app.services.slots import expand_dates, generate_slots

NOW = datetime(2025, 7, 20, 12, 0)
DAY = date(2025, 7, 23)


def _starts(slots, session_type):
    return [s.start_time.strftime("%H:%M") for s in slots if s.session_type == session_type]


class TestGenerateSlots:
    def test_window_with_both_types(self):
        slots = generate_slots(DAY, time(7, 0), time(11, 0), ["normal", "bilan"], NOW)

        assert _starts(slots, "normal") == ["07:00", "07:30", "08:00", "08:30", "09:00", "09:30", "10:00"]
        assert _starts(slots, "bilan") == [
            "07:00", "07:30", "08:00", "08:30", "09:00", "09:30", "10:00", "10:30",
        ]

    def test_durations_and_flags(self):
        slots = generate_slots(DAY, time(9, 0), time(10, 0), ["normal", "bilan"], NOW)

        normal = [s for s in slots if s.session_type == "normal"]
        bilan = [s for s in slots if s.session_type == "bilan"]
        assert [(s.start_time, s.end_time) for s in normal] == [(time(9, 0), time(9, 55))]
        assert [(s.start_time, s.end_time) for s in bilan] == [
            (time(9, 0), time(9, 25)),
            (time(9, 30), time(9, 55)),
        ]
        assert all(s.is_free for s in bilan)
        assert not any(s.is_free for s in normal)
        assert [s.is_derived for s in bilan] == [False, True]

    def test_normal_listed_before_bilan_whatever_the_request_order(self):
        slots = generate_slots(DAY, time(9, 0), time(10, 0), ["bilan", "normal"], NOW)
        assert slots[0].session_type == "normal"

    def test_window_shorter_than_every_duration_is_empty(self):
        assert generate_slots(DAY, time(9, 0), time(9, 20), ["normal", "bilan"], NOW) == []

    def test_window_too_short_for_normal_only_keeps_bilan(self):
        slots = generate_slots(DAY, time(9, 0), time(9, 30), ["normal", "bilan"], NOW)
        assert [(s.session_type, s.start_time) for s in slots] == [("bilan", time(9, 0))]

    def test_slot_may_end_exactly_at_window_end(self):
        slots = generate_slots(DAY, time(9, 0), time(9, 55), ["normal"], NOW)
        assert len(slots) == 1
        assert slots[0].end_time == time(9, 55)

    @pytest.mark.parametrize("start,end", [(time(10, 0), time(10, 0)), (time(10, 0), time(9, 0))])
    def test_rejects_empty_or_inverted_window(self, start, end):
        with pytest.raises(ValidationError) as exc_info:
            generate_slots(DAY, start, end, ["normal"], NOW)
        assert exc_info.value.code == "InvalidWindow"

    def test_rejects_past_window(self):
        with pytest.raises(ValidationError) as exc_info:
            generate_slots(date(2025, 7, 20), time(11, 0), time(13, 0), ["normal"], NOW)
        assert exc_info.value.code == "PastDateTime"

    def test_window_starting_now_is_accepted(self):
        slots = generate_slots(date(2025, 7, 20), time(12, 0), time(13, 0), ["normal"], NOW)
        assert len(slots) == 1

    def test_rejects_unknown_session_type(self):
        with pytest.raises(ValidationError) as exc_info:
            generate_slots(DAY, time(9, 0), time(10, 0), ["yoga"], NOW)
        assert exc_info.value.code == "InvalidSessionType"

    def test_rejects_empty_session_types(self):
        with pytest.raises(ValidationError):
            generate_slots(DAY, time(9, 0), time(10, 0), [], NOW)


class TestExpandDates:
    def test_single_day(self):
        assert expand_dates(DAY) == [DAY]

    def test_range_filtered_by_weekday(self):
        # 2025-07-21 is a Monday
        dates = expand_dates(date(2025, 7, 21), date(2025, 7, 27), days_of_week=[0, 2])
        assert dates == [date(2025, 7, 21), date(2025, 7, 23)]

    def test_repeat_weeks(self):
        dates = expand_dates(date(2025, 7, 21), days_of_week=[0], repeat_weeks=2)
        assert dates == [date(2025, 7, 21), date(2025, 7, 28), date(2025, 8, 4)]

    def test_overlapping_repeats_are_deduplicated(self):
        dates = expand_dates(date(2025, 7, 21), date(2025, 7, 31), repeat_weeks=1)
        assert len(dates) == len(set(dates))
        assert dates == sorted(dates)
        assert dates[-1] == date(2025, 8, 7)

    def test_rejects_inverted_range(self):
        with pytest.raises(ValidationError):
            expand_dates(date(2025, 7, 23), date(2025, 7, 22))

    def test_rejects_bad_weekday(self):
        with pytest.raises(ValidationError):
            expand_dates(DAY, days_of_week=[7])
