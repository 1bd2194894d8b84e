# backend/app/services/slots/overlap.py
"""
Cross-type overlap resolution.

A coach can only be in one session at a time, but normal and bilan slots are
generated independently. When a reservation takes a slot, every other
available slot of the coach that intersects the reserved interval is blocked;
when it is cancelled, those slots are released again.

Intervals are half-open [start, end): a slot ending at 10:25 and another
starting at 10:25 do not overlap.
"""

import logging
from datetime import date, datetime, time

from sqlalchemy import update
from sqlalchemy.orm import Session

from ...models.generated import Reservations, TimeSlots
from .config import SlotConfig, combine, get_slot_config
from .store import AVAILABLE, BLOCKED_STATUSES, BOOKED, SlotStore

logger = logging.getLogger(__name__)


def intervals_overlap(s1: time, e1: time, s2: time, e2: time) -> bool:
    return s1 < e2 and s2 < e1


def reservation_interval(
    reservation: Reservations,
    config: SlotConfig | None = None,
) -> tuple[time, time]:
    config = config or get_slot_config()
    return reservation.time, config.end_time_for(reservation.time, reservation.session_type)


class OverlapResolver:
    def __init__(self, db: Session, config: SlotConfig | None = None):
        self.db = db
        self.config = config or get_slot_config()
        self.store = SlotStore(db, self.config)

    def claim_slot(self, slot_id: int, reservation_id: int) -> bool:
        """
        Compare-and-set available → booked for the reserved slot itself.

        Returns False if another transaction got there first.
        """
        self.db.flush()
        result = self.db.execute(
            update(TimeSlots)
            .where(TimeSlots.id == slot_id, TimeSlots.status == AVAILABLE)
            .values(status=BOOKED, reservation_id=reservation_id)
            .execution_options(synchronize_session=False)
        )
        self.db.expire_all()
        return result.rowcount == 1

    def mark_overlapping(
        self,
        coach_id: int,
        slot_date: date,
        start: time,
        end: time,
        reservation_id: int,
    ) -> int:
        """
        Block every available slot of the coach intersecting [start, end).

        One UPDATE so the whole set changes atomically. Slots already
        booked or unavailable are left untouched.

        Returns:
            Number of slots blocked.
        """
        self.db.flush()
        result = self.db.execute(
            update(TimeSlots)
            .where(
                TimeSlots.coach_id == coach_id,
                TimeSlots.date == slot_date,
                TimeSlots.status == AVAILABLE,
                TimeSlots.start_time < end,
                TimeSlots.end_time > start,
            )
            .values(status=BOOKED, reservation_id=reservation_id)
            .execution_options(synchronize_session=False)
        )
        self.db.expire_all()

        logger.info(
            f"Blocked {result.rowcount} slot(s) for coach {coach_id} on {slot_date} "
            f"{start:%H:%M}-{end:%H:%M} (reservation {reservation_id})"
        )
        return result.rowcount

    def free_overlapping(
        self,
        coach_id: int,
        slot_date: date,
        start: time,
        end: time,
        reservation_id: int,
        now: datetime,
        include_past: bool = False,
    ) -> int:
        """
        Release slots blocked by a cancelled reservation.

        A slot that still intersects another confirmed reservation of the
        coach stays blocked and is relinked to it. Past slots are only
        released when include_past is set (admin cancellations).

        Returns:
            Number of slots made available again.
        """
        slots = self.store.find_overlapping(
            coach_id, slot_date, start, end,
            statuses=BLOCKED_STATUSES, for_update=True,
        )
        others = self._active_reservations(coach_id, slot_date, exclude_id=reservation_id)

        freed = 0
        for slot in slots:
            if not include_past and combine(slot.date, slot.start_time) <= now:
                continue

            blocker = next(
                (
                    r for r in others
                    if intervals_overlap(slot.start_time, slot.end_time, *reservation_interval(r, self.config))
                ),
                None,
            )
            if blocker is not None:
                if slot.reservation_id in (None, reservation_id):
                    self.store.set_status(slot, BOOKED, blocker.id)
                continue

            self.store.set_status(slot, AVAILABLE)
            freed += 1

        self.db.flush()
        logger.info(
            f"Freed {freed} slot(s) for coach {coach_id} on {slot_date} "
            f"{start:%H:%M}-{end:%H:%M} (reservation {reservation_id})"
        )
        return freed

    def _active_reservations(
        self,
        coach_id: int,
        slot_date: date,
        exclude_id: int | None = None,
    ) -> list[Reservations]:
        query = self.db.query(Reservations).filter(
            Reservations.coach_id == coach_id,
            Reservations.date == slot_date,
            Reservations.status == "confirmed",
        )
        if exclude_id is not None:
            query = query.filter(Reservations.id != exclude_id)
        return query.all()


__all__ = [
    "OverlapResolver",
    "intervals_overlap",
    "reservation_interval",
]
