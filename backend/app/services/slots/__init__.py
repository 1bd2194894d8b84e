# backend/app/services/slots/__init__.py
"""
Slots module.

Generation (pure) → SlotStore (persistence) → OverlapResolver (cross-type blocking)
"""

from .config import BILAN, NORMAL, SlotConfig, get_slot_config
from .generator import SlotCandidate, expand_dates, generate_slots
from .overlap import OverlapResolver, intervals_overlap, reservation_interval
from .store import SlotStore, display_status

__all__ = [
    "BILAN",
    "NORMAL",
    "SlotConfig",
    "get_slot_config",
    "SlotCandidate",
    "expand_dates",
    "generate_slots",
    "OverlapResolver",
    "intervals_overlap",
    "reservation_interval",
    "SlotStore",
    "display_status",
]
