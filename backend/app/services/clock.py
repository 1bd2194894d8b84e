# backend/app/services/clock.py
"""
Server clock in the booking timezone.

Slots and reservations store naive wall-clock dates/times. "Now" is always
taken in settings.booking_timezone and made naive, so comparisons never mix
zones.
"""

from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from ..config import settings

Clock = Callable[[], datetime]


def local_now(tz_name: str | None = None) -> datetime:
    """Current naive wall-clock time in the booking timezone."""
    tz = ZoneInfo(tz_name or settings.booking_timezone)
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)


def get_clock() -> Clock:
    """FastAPI dependency; tests override it with a fixed clock."""
    return local_now
