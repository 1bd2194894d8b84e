# backend/app/services/slots/config.py
"""
Slot configuration: session types, durations and the generation cadence.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from functools import lru_cache

NORMAL = "normal"
BILAN = "bilan"


@dataclass(frozen=True)
class SlotConfig:
    """
    Configuration for slot generation.

    Attributes:
        step_minutes: Cursor step between two slot starts of the same type
        durations: Fixed duration per session type, in minutes
    """
    step_minutes: int = 30
    durations: dict[str, int] = field(
        default_factory=lambda: {NORMAL: 55, BILAN: 25}
    )

    def __post_init__(self):
        """Validate configuration."""
        if self.step_minutes not in (15, 30, 60):
            raise ValueError(f"step_minutes must be 15, 30, or 60, got {self.step_minutes}")
        for session_type, minutes in self.durations.items():
            if minutes <= 0:
                raise ValueError(f"duration for {session_type} must be > 0, got {minutes}")

    @property
    def session_types(self) -> tuple[str, ...]:
        return tuple(self.durations)

    def duration_for(self, session_type: str) -> int:
        try:
            return self.durations[session_type]
        except KeyError:
            raise ValueError(f"Unknown session type: {session_type}") from None

    def is_free(self, session_type: str) -> bool:
        """Bilan sessions never cost points."""
        return session_type == BILAN

    def end_time_for(self, start: time, session_type: str) -> time:
        """End of a slot of ``session_type`` starting at ``start``."""
        return add_minutes(start, self.duration_for(session_type))


@lru_cache
def get_slot_config() -> SlotConfig:
    """Get slot configuration (singleton)."""
    return SlotConfig()


# ── Time helpers ─────────────────────────────────────────────────────────


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    if not 0 <= minutes < 24 * 60:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def add_minutes(value: time, minutes: int) -> time:
    return minutes_to_time(time_to_minutes(value) + minutes)


def combine(day: date, value: time) -> datetime:
    return datetime.combine(day, value)


def daterange(start: date, end: date):
    """Dates in [start, end], inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
