# backend/app/services/slots/store.py
"""
Persisted time slots (table coach_availability).

Status machine:
    available   → booked | overlapping | unavailable
    booked      → available | booked (relink)
    overlapping → available | booked (relink)
    unavailable → available

`overlapping` is display-only: a slot blocked because a *different* slot's
reservation intersects it. For booking eligibility it behaves like `booked`.
`reservation_id` is set iff the slot is booked/overlapping.
A slot inserted or re-enabled under a confirmed reservation goes straight
to booked.

Every method except bulk_delete runs inside the caller's transaction.
"""

import logging
from datetime import date, datetime, time
from typing import Iterable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...database import transaction_scope
from ...models.generated import Reservations, TimeSlots
from ..errors import ConflictError, DomainException, NotFoundError, StorageFailure
from .config import SlotConfig, get_slot_config
from .generator import SlotCandidate

logger = logging.getLogger(__name__)

AVAILABLE = "available"
BOOKED = "booked"
OVERLAPPING = "overlapping"
UNAVAILABLE = "unavailable"

BLOCKED_STATUSES = (BOOKED, OVERLAPPING)

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    AVAILABLE: {BOOKED, OVERLAPPING, UNAVAILABLE},
    BOOKED: {AVAILABLE, BOOKED, OVERLAPPING},
    OVERLAPPING: {AVAILABLE, BOOKED, OVERLAPPING},
    UNAVAILABLE: {AVAILABLE},
}


def display_status(slot: TimeSlots) -> str:
    """
    Status shown to clients and admins.

    A blocked slot is `booked` when it is the reservation's own slot and
    `overlapping` when it is blocked by another slot's reservation.
    """
    if slot.status not in BLOCKED_STATUSES:
        return slot.status
    reservation = slot.reservation
    if reservation is None:
        return slot.status
    if reservation.time == slot.start_time and reservation.session_type == slot.session_type:
        return BOOKED
    return OVERLAPPING


class SlotStore:
    """Slot persistence for one SQLAlchemy session."""

    def __init__(self, db: Session, config: SlotConfig | None = None):
        self.db = db
        self.config = config or get_slot_config()

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, slot_id: int, for_update: bool = False) -> TimeSlots:
        query = self.db.query(TimeSlots).filter(TimeSlots.id == slot_id)
        if for_update:
            query = query.with_for_update()
        slot = query.first()
        if not slot:
            raise NotFoundError(f"Slot {slot_id} not found", code="SlotNotFound")
        return slot

    def find_by_key(
        self,
        coach_id: int,
        slot_date: date,
        start_time: time,
        session_type: str,
        for_update: bool = False,
    ) -> Optional[TimeSlots]:
        """Look up a slot by its unique key (coach, date, start, type)."""
        query = self.db.query(TimeSlots).filter(
            TimeSlots.coach_id == coach_id,
            TimeSlots.date == slot_date,
            TimeSlots.start_time == start_time,
            TimeSlots.session_type == session_type,
        )
        if for_update:
            # Locking read: a concurrent booking of the same slot waits here
            query = query.with_for_update()
        return query.first()

    def find_overlapping(
        self,
        coach_id: int,
        slot_date: date,
        start: time,
        end: time,
        statuses: Iterable[str] | None = None,
        for_update: bool = False,
    ) -> list[TimeSlots]:
        """Slots of any session type intersecting [start, end) on the coach day."""
        query = self.db.query(TimeSlots).filter(
            TimeSlots.coach_id == coach_id,
            TimeSlots.date == slot_date,
            TimeSlots.start_time < end,
            TimeSlots.end_time > start,
        )
        if statuses is not None:
            query = query.filter(TimeSlots.status.in_(list(statuses)))
        if for_update:
            query = query.with_for_update()
        return query.order_by(TimeSlots.start_time, TimeSlots.session_type).all()

    def covering_reservation(
        self,
        coach_id: int,
        slot_date: date,
        start: time,
        end: time,
    ) -> Optional[Reservations]:
        """First confirmed reservation of the coach intersecting [start, end), if any."""
        reservations = (
            self.db.query(Reservations)
            .filter(
                Reservations.coach_id == coach_id,
                Reservations.date == slot_date,
                Reservations.status == "confirmed",
            )
            .order_by(Reservations.time, Reservations.id)
            .all()
        )
        for reservation in reservations:
            reserved_end = self.config.end_time_for(reservation.time, reservation.session_type)
            if reservation.time < end and start < reserved_end:
                return reservation
        return None

    def list_for_coach(
        self,
        coach_id: int,
        now: datetime,
        include_all: bool = False,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[TimeSlots]:
        """
        Client view: available slots strictly in the future.
        Admin view (include_all=True): every slot, past ones included.
        """
        query = self.db.query(TimeSlots).filter(TimeSlots.coach_id == coach_id)

        if start_date:
            query = query.filter(TimeSlots.date >= start_date)
        if end_date:
            query = query.filter(TimeSlots.date <= end_date)

        if not include_all:
            today = now.date()
            query = query.filter(
                TimeSlots.status == AVAILABLE,
                or_(
                    TimeSlots.date > today,
                    and_(TimeSlots.date == today, TimeSlots.start_time > now.time()),
                ),
            )

        return query.order_by(TimeSlots.date, TimeSlots.start_time, TimeSlots.session_type).all()

    # ── Write ────────────────────────────────────────────────────────────

    def insert_if_absent(
        self,
        coach_id: int,
        candidate: SlotCandidate,
    ) -> tuple[TimeSlots, bool]:
        """
        Insert a generated slot unless one already exists.

        Returns:
            (slot, created). Duplicates are skipped silently so that
            recurring generation can be re-run over populated ranges.
        """
        existing = self.find_by_key(
            coach_id, candidate.date, candidate.start_time, candidate.session_type
        )
        if existing:
            if existing.end_time != candidate.end_time:
                logger.warning(
                    f"Slot {existing.id} ({existing.session_type} {existing.date} "
                    f"{existing.start_time}) ends at {existing.end_time}, "
                    f"generator wanted {candidate.end_time}; keeping existing"
                )
            return existing, False

        # A slot generated under an existing booking is born blocked
        blocker = self.covering_reservation(
            coach_id, candidate.date, candidate.start_time, candidate.end_time
        )
        slot = TimeSlots(
            coach_id=coach_id,
            date=candidate.date,
            start_time=candidate.start_time,
            end_time=candidate.end_time,
            session_type=candidate.session_type,
            duration_minutes=candidate.duration_minutes,
            status=BOOKED if blocker else AVAILABLE,
            reservation_id=blocker.id if blocker else None,
            is_free=candidate.is_free,
            is_derived=candidate.is_derived,
        )
        if blocker:
            logger.info(
                f"New {candidate.session_type} slot {candidate.date} {candidate.start_time:%H:%M} "
                f"for coach {coach_id} blocked by reservation {blocker.id}"
            )

        try:
            with self.db.begin_nested():
                self.db.add(slot)
        except IntegrityError:
            # Inserted concurrently by another request: the unique key wins
            logger.info(
                f"Slot {candidate.session_type} {candidate.date} {candidate.start_time} "
                f"for coach {coach_id} already exists, skipped"
            )
            existing = self.find_by_key(
                coach_id, candidate.date, candidate.start_time, candidate.session_type
            )
            return existing, False

        return slot, True

    def set_status(
        self,
        slot: TimeSlots,
        status: str,
        reservation_id: int | None = None,
    ) -> TimeSlots:
        if status not in ALLOWED_TRANSITIONS.get(slot.status, set()):
            raise ConflictError(
                f"Slot {slot.id} cannot go from {slot.status} to {status}",
                code="InvalidSlotTransition",
                details={"slot_id": slot.id, "from": slot.status, "to": status},
            )

        if status in BLOCKED_STATUSES and reservation_id is None:
            raise ConflictError(
                f"Slot {slot.id} cannot be {status} without a reservation",
                code="InvalidSlotTransition",
                details={"slot_id": slot.id, "from": slot.status, "to": status},
            )

        slot.status = status
        slot.reservation_id = reservation_id if status in BLOCKED_STATUSES else None
        return slot

    def set_availability(self, slot_id: int, enabled: bool) -> TimeSlots:
        """
        Admin toggle available ↔ unavailable.

        Re-enabling a slot that a reservation landed on while it was
        disabled leaves it booked by that reservation.
        """
        slot = self.get(slot_id, for_update=True)
        target = AVAILABLE if enabled else UNAVAILABLE
        if slot.status == target:
            return slot
        if slot.status in BLOCKED_STATUSES:
            raise ConflictError(
                f"Slot {slot_id} is booked and cannot be changed",
                code="SlotUnavailable",
                details={"slot_id": slot_id, "status": slot.status},
            )
        self.set_status(slot, target)

        if target == AVAILABLE:
            blocker = self.covering_reservation(
                slot.coach_id, slot.date, slot.start_time, slot.end_time
            )
            if blocker:
                self.set_status(slot, BOOKED, blocker.id)
                logger.info(f"Slot {slot_id} re-enabled under reservation {blocker.id}, kept booked")
        return slot

    def delete(self, slot_id: int) -> None:
        """Delete a slot. Only available slots can be deleted."""
        slot = self.get(slot_id, for_update=True)
        if slot.status != AVAILABLE:
            raise ConflictError(
                f"Cannot delete a {slot.status} slot",
                code="SlotNotDeletable",
                details={"slot_id": slot_id, "status": slot.status},
            )
        self.db.delete(slot)
        self.db.flush()

    def bulk_delete(
        self,
        slot_ids: list[int],
        lock_timeout_seconds: int | None = None,
    ) -> dict:
        """
        Delete many slots in one transaction.

        Owns its transactions. If the batch fails on a storage error
        (lock timeout), falls back to per-row best-effort deletion.

        Returns:
            {"deleted": [ids], "skipped": [{id, reason}], "failed": [{id, reason}],
             "partial": bool}
        """
        ids = list(dict.fromkeys(slot_ids))
        report: dict = {"deleted": [], "skipped": [], "failed": [], "partial": False}

        try:
            with transaction_scope(self.db, lock_timeout_seconds):
                slots = (
                    self.db.query(TimeSlots)
                    .filter(TimeSlots.id.in_(ids))
                    .with_for_update()
                    .all()
                )
                by_id = {s.id: s for s in slots}

                for slot_id in ids:
                    slot = by_id.get(slot_id)
                    if slot is None:
                        report["skipped"].append({"id": slot_id, "reason": "not_found"})
                    elif slot.status != AVAILABLE:
                        report["skipped"].append({"id": slot_id, "reason": slot.status})
                    else:
                        self.db.delete(slot)
                        report["deleted"].append(slot_id)
            logger.info(f"Bulk delete: {len(report['deleted'])} deleted, {len(report['skipped'])} skipped")
            return report
        except StorageFailure as exc:
            logger.warning(f"Bulk delete of {len(ids)} slots failed ({exc.code}), deleting one by one")

        return self._delete_one_by_one(ids, lock_timeout_seconds)

    def _delete_one_by_one(
        self,
        ids: list[int],
        lock_timeout_seconds: int | None,
    ) -> dict:
        report: dict = {"deleted": [], "skipped": [], "failed": [], "partial": True}

        for slot_id in ids:
            try:
                with transaction_scope(self.db, lock_timeout_seconds):
                    self.delete(slot_id)
                report["deleted"].append(slot_id)
            except StorageFailure as exc:
                report["failed"].append({"id": slot_id, "reason": exc.code})
            except DomainException as exc:
                report["skipped"].append({"id": slot_id, "reason": exc.code})

        logger.info(
            f"Per-row delete: {len(report['deleted'])} deleted, "
            f"{len(report['skipped'])} skipped, {len(report['failed'])} failed"
        )
        return report
