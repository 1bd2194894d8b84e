# backend/app/services/slots/generator.py
"""
Slot generation.

Produces candidate slots for one coach day:
  normal: 55 min, a new start every 30 min (9:00, 9:30, 10:00, ...)
  bilan: 25 min, a new start every 30 min (9:00-9:25, 9:30-9:55, ...)

A slot is emitted only if it fits entirely inside the window.
Slots are session-type-local: a normal and a bilan slot with the same start
are distinct rows. Conflicts between them are resolved at booking time.

Pure functions: nothing here touches the database.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable

from ..errors import ValidationError
from .config import (
    SlotConfig,
    combine,
    daterange,
    get_slot_config,
    minutes_to_time,
    time_to_minutes,
)


@dataclass(frozen=True)
class SlotCandidate:
    date: date
    start_time: time
    end_time: time
    session_type: str
    duration_minutes: int
    is_free: bool
    is_derived: bool  # starts on the half hour


def validate_session_types(
    session_types: Iterable[str],
    config: SlotConfig | None = None,
) -> list[str]:
    """Return requested types in canonical order, rejecting unknown ones."""
    config = config or get_slot_config()
    requested = list(dict.fromkeys(session_types))
    if not requested:
        raise ValidationError("At least one session type is required", code="InvalidSessionType")

    unknown = [t for t in requested if t not in config.session_types]
    if unknown:
        raise ValidationError(
            f"Unknown session type(s): {', '.join(unknown)}",
            code="InvalidSessionType",
            details={"allowed": list(config.session_types)},
        )
    return [t for t in config.session_types if t in requested]


def validate_window(
    target_date: date,
    window_start: time,
    window_end: time,
    now: datetime,
) -> None:
    if window_end <= window_start:
        raise ValidationError(
            f"Window end {window_end:%H:%M} must be after start {window_start:%H:%M}",
            code="InvalidWindow",
        )
    if combine(target_date, window_start) < now:
        raise ValidationError(
            "Cannot add availability in the past. Please select a future date and time.",
            code="PastDateTime",
            details={"date": target_date.isoformat(), "start_time": window_start.isoformat()},
        )


def generate_slots(
    target_date: date,
    window_start: time,
    window_end: time,
    session_types: Iterable[str],
    now: datetime,
    config: SlotConfig | None = None,
) -> list[SlotCandidate]:
    """
    Generate candidate slots for a single day.

    Returns:
        Slots ordered by session type (normal first), then start time.
        Empty list if the window is shorter than every requested duration.

    Raises:
        ValidationError: window_end <= window_start, unknown session type,
                         or the window starts in the past.
    """
    config = config or get_slot_config()
    types = validate_session_types(session_types, config)
    validate_window(target_date, window_start, window_end, now)

    start_min = time_to_minutes(window_start)
    end_min = time_to_minutes(window_end)
    step = config.step_minutes

    slots: list[SlotCandidate] = []
    for session_type in types:
        duration = config.duration_for(session_type)
        cursor = start_min
        while cursor + duration <= end_min:
            slots.append(SlotCandidate(
                date=target_date,
                start_time=minutes_to_time(cursor),
                end_time=minutes_to_time(cursor + duration),
                session_type=session_type,
                duration_minutes=duration,
                is_free=config.is_free(session_type),
                is_derived=cursor % 60 != 0,
            ))
            cursor += step

    return slots


def expand_dates(
    start_date: date,
    end_date: date | None = None,
    days_of_week: Iterable[int] | None = None,
    repeat_weeks: int = 0,
) -> list[date]:
    """
    Dates covered by a (possibly recurring) generation request.

    Args:
        start_date: First date (inclusive)
        end_date: Last date (inclusive), defaults to start_date
        days_of_week: Weekdays to keep (0 = Monday ... 6 = Sunday), all if empty
        repeat_weeks: Extra weeks to repeat the base range for

    Returns:
        Sorted unique dates.
    """
    end_date = end_date or start_date
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date", code="InvalidWindow")
    if repeat_weeks < 0:
        raise ValidationError("repeat_weeks must be >= 0")

    weekdays = set(days_of_week or [])
    if any(d < 0 or d > 6 for d in weekdays):
        raise ValidationError("days_of_week must contain values 0..6 (Monday = 0)")

    base = [
        d for d in daterange(start_date, end_date)
        if not weekdays or d.weekday() in weekdays
    ]

    dates = {
        d + timedelta(weeks=week)
        for d in base
        for week in range(repeat_weeks + 1)
    }
    return sorted(dates)
