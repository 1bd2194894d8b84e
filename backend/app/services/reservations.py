# backend/app/services/reservations.py
"""
Reservation create / cancel.

Each operation is one transaction:

    Requested → Validated → Committed
              ↘ Rejected   (validation, conflict, points, policy)
              ↘ Failed     (storage error, rolled back)

Field validation and the past check run before the transaction opens.
Everything that feeds the booking decision (slot status, point balance)
is read with a locking read inside the transaction that writes it.
Events are published only after commit.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..config import Settings, settings as default_settings
from ..database import transaction_scope
from ..models.generated import (
    Coaches as DBCoach,
    Reservations as DBReservation,
)
from .cancellation import ACTORS, CLIENT, ensure_can_cancel, refund_eligible
from .clock import Clock, local_now
from .errors import (
    ConflictError,
    DomainException,
    InsufficientPointsError,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from .events import (
    POINTS_UPDATED,
    RESERVATION_CANCELLED,
    RESERVATION_CONFIRMED,
    EventPublisher,
    NullEventPublisher,
)
from .points import PointLedger, cost_for
from .slots.config import SlotConfig, combine, get_slot_config
from .slots.overlap import OverlapResolver, reservation_interval
from .slots.store import AVAILABLE, SlotStore

logger = logging.getLogger(__name__)

GUEST_REQUIRED_FIELDS = ("full_name", "email", "phone")


@dataclass
class ReservationRequest:
    coach_id: int
    date: date
    time: time
    session_type: str
    user_id: Optional[int] = None
    reservation_type: str = "individual"
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    goal: Optional[str] = None
    created_by: str = "client"


@dataclass
class ReservationResult:
    reservation: DBReservation
    point_type: Optional[str] = None
    points_deducted: int = 0
    balances: Optional[dict[str, int]] = None
    slots_blocked: int = 0

    def to_dict(self) -> dict[str, Any]:
        balances = self.balances or {}
        return {
            "reservation_id": self.reservation.id,
            "status": self.reservation.status,
            "is_free": bool(self.reservation.is_free),
            "points_deducted": self.points_deducted,
            "point_type": self.point_type,
            "remaining_points": balances.get("points"),
            "remaining_solo_points": balances.get("solo_points"),
            "remaining_team_points": balances.get("team_points"),
            "slots_blocked": self.slots_blocked,
        }


@dataclass
class CancellationResult:
    reservation: DBReservation
    refunded: bool = False
    refunded_point_type: Optional[str] = None
    updated_balances: Optional[dict[str, int]] = None
    slots_freed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "reservation_id": self.reservation.id,
            "status": self.reservation.status,
            "cancelled_by": self.reservation.cancelled_by,
            "refunded": self.refunded,
            "refunded_point_type": self.refunded_point_type,
            "updated_balances": self.updated_balances,
            "slots_freed": self.slots_freed,
        }


@dataclass
class BulkReservationResult:
    created: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)
    stopped_early: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "skipped": self.skipped,
            "failed": self.failed,
            "stopped_early": self.stopped_early,
        }


class ReservationManager:
    def __init__(
        self,
        db: Session,
        publisher: EventPublisher | None = None,
        settings: Settings | None = None,
        clock: Clock | None = None,
        config: SlotConfig | None = None,
    ):
        self.db = db
        self.publisher = publisher or NullEventPublisher()
        self.settings = settings or default_settings
        self.clock = clock or local_now
        self.config = config or get_slot_config()
        self.store = SlotStore(db, self.config)
        self.resolver = OverlapResolver(db, self.config)
        self.ledger = PointLedger(db)

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, reservation_id: int) -> DBReservation:
        reservation = self.db.get(DBReservation, reservation_id)
        if not reservation:
            raise NotFoundError(
                f"Reservation {reservation_id} not found",
                code="ReservationNotFound",
            )
        return reservation

    def find(
        self,
        coach_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[DBReservation]:
        query = self.db.query(DBReservation)
        if coach_id is not None:
            query = query.filter(DBReservation.coach_id == coach_id)
        if user_id is not None:
            query = query.filter(DBReservation.user_id == user_id)
        if status is not None:
            query = query.filter(DBReservation.status == status)
        return query.order_by(DBReservation.date, DBReservation.time).all()

    # ── Create ───────────────────────────────────────────────────────────

    def create(self, request: ReservationRequest) -> ReservationResult:
        self._validate(request)

        now = self.clock()
        if combine(request.date, request.time) < now:
            raise ValidationError(
                "Cannot book a session in the past",
                code="PastDateTime",
                details={"date": request.date.isoformat(), "time": request.time.isoformat()},
            )

        with transaction_scope(self.db, self.settings.lock_wait_timeout_seconds):
            result = self._create_locked(request)

        reservation = result.reservation
        logger.info(
            f"Reservation {reservation.id} confirmed: coach {reservation.coach_id} "
            f"{reservation.date} {reservation.time:%H:%M} {reservation.session_type} "
            f"(user {reservation.user_id}, {result.slots_blocked} slot(s) blocked)"
        )
        self._publish_created(result)
        return result

    def _validate(self, request: ReservationRequest) -> None:
        if request.session_type not in self.config.session_types:
            raise ValidationError(
                f"Invalid session type: {request.session_type}",
                code="InvalidSessionType",
                details={"allowed": list(self.config.session_types)},
            )
        if request.reservation_type not in ("individual", "group"):
            raise ValidationError(
                f"Invalid reservation type: {request.reservation_type}",
                code="InvalidReservationType",
            )
        if request.user_id is None:
            missing = [f for f in GUEST_REQUIRED_FIELDS if not getattr(request, f)]
            if missing:
                raise ValidationError(
                    f"Missing required fields: {', '.join(missing)}",
                    details={"missing": missing},
                )

    def _create_locked(self, request: ReservationRequest) -> ReservationResult:
        coach = self.db.get(DBCoach, request.coach_id)
        if not coach or not coach.is_active:
            raise NotFoundError(f"Coach {request.coach_id} not found", code="CoachNotFound")

        slot = self.store.find_by_key(
            request.coach_id, request.date, request.time, request.session_type,
            for_update=True,
        )
        if slot is None or slot.status != AVAILABLE:
            raise ConflictError(
                "This time slot is no longer available",
                code="SlotUnavailable",
                details={
                    "coach_id": request.coach_id,
                    "date": request.date.isoformat(),
                    "time": request.time.isoformat(),
                    "session_type": request.session_type,
                },
            )

        user = None
        point_type = cost_for(request.session_type, request.reservation_type)
        tx = None
        if request.user_id is not None:
            user = self.ledger.get_user(request.user_id, for_update=True)
            if point_type:
                tx = self.ledger.debit(
                    user, point_type,
                    description=f"{request.session_type} session {request.date} {request.time:%H:%M}",
                )

        reservation = DBReservation(
            coach_id=request.coach_id,
            user_id=request.user_id,
            full_name=request.full_name or (user.full_name if user else None),
            email=request.email or (user.email if user else None),
            phone=request.phone or (user.phone if user else None),
            age=request.age if request.age is not None else (user.age if user else None),
            gender=request.gender or (user.gender if user else None),
            goal=request.goal or (user.goal if user else None),
            date=request.date,
            time=request.time,
            session_type=request.session_type,
            reservation_type=request.reservation_type,
            status="confirmed",
            is_free=point_type is None,
            created_by=request.created_by,
        )
        self.db.add(reservation)
        self.db.flush()
        if tx is not None:
            tx.reservation_id = reservation.id

        # Compare-and-set on the selected slot, then block the rest of the
        # interval using the slot's own bounds
        start, end = slot.start_time, slot.end_time
        if not self.resolver.claim_slot(slot.id, reservation.id):
            raise ConflictError(
                "This time slot is no longer available",
                code="SlotUnavailable",
                details={"slot_id": slot.id},
            )
        blocked = 1 + self.resolver.mark_overlapping(
            request.coach_id, request.date, start, end, reservation.id
        )

        return ReservationResult(
            reservation=reservation,
            point_type=point_type if user is not None else None,
            points_deducted=1 if tx is not None else 0,
            balances=self.ledger.balances(user) if user is not None else None,
            slots_blocked=blocked,
        )

    def _publish_created(self, result: ReservationResult) -> None:
        reservation = result.reservation
        self.publisher.notify(reservation.user_id, RESERVATION_CONFIRMED, {
            "reservation_id": reservation.id,
            "coach_id": reservation.coach_id,
            "date": reservation.date.isoformat(),
            "time": reservation.time.strftime("%H:%M"),
            "session_type": reservation.session_type,
            "email": reservation.email,
        })
        if result.points_deducted:
            self.publisher.notify(reservation.user_id, POINTS_UPDATED, {
                "reason": "reservation_confirmed",
                "reservation_id": reservation.id,
                **(result.balances or {}),
            })

    # ── Cancel ───────────────────────────────────────────────────────────

    def cancel(
        self,
        reservation_id: int,
        actor: str,
        user_id: Optional[int] = None,
        refund_points: bool = True,
    ) -> CancellationResult:
        """
        Cancel a confirmed reservation.

        Clients can only cancel their own reservations, strictly more than
        the cutoff before the session, and are always refunded when the
        session type allows it. Admins may skip the refund.
        """
        if actor not in ACTORS:
            raise ValidationError(
                f"Unknown actor: {actor}",
                code="InvalidActor",
                details={"allowed": list(ACTORS)},
            )
        if actor == CLIENT and user_id is None:
            raise ValidationError("user_id is required for client cancellations")

        now = self.clock()
        with transaction_scope(self.db, self.settings.lock_wait_timeout_seconds):
            result = self._cancel_locked(reservation_id, actor, user_id, refund_points, now)

        logger.info(
            f"Reservation {reservation_id} cancelled by {actor} "
            f"(refunded: {result.refunded_point_type or 'none'}, {result.slots_freed} slot(s) freed)"
        )
        self._publish_cancelled(result)
        return result

    def _cancel_locked(
        self,
        reservation_id: int,
        actor: str,
        user_id: Optional[int],
        refund_points: bool,
        now: datetime,
    ) -> CancellationResult:
        reservation = (
            self.db.query(DBReservation)
            .filter(DBReservation.id == reservation_id)
            .with_for_update()
            .first()
        )
        if not reservation or (actor == CLIENT and reservation.user_id != user_id):
            raise NotFoundError(
                f"Reservation {reservation_id} not found",
                code="ReservationNotFound",
            )
        if reservation.status == "cancelled":
            raise ConflictError(
                f"Reservation {reservation_id} is already cancelled",
                code="AlreadyCancelled",
            )

        ensure_can_cancel(
            actor,
            combine(reservation.date, reservation.time),
            now,
            self.settings.client_cancel_cutoff_hours,
        )

        slot = self.store.find_by_key(
            reservation.coach_id, reservation.date, reservation.time, reservation.session_type,
            for_update=True,
        )
        if slot is not None:
            start, end = slot.start_time, slot.end_time
        else:
            start, end = reservation_interval(reservation, self.config)

        freed = self.resolver.free_overlapping(
            reservation.coach_id, reservation.date, start, end,
            reservation_id=reservation.id,
            now=now,
            include_past=actor != CLIENT,
        )

        refunded_type = None
        balances = None
        decision = refund_eligible(reservation.session_type, reservation.reservation_type)
        if reservation.user_id is not None:
            user = self.ledger.get_user(reservation.user_id, for_update=True)
            if decision.refund and (actor == CLIENT or refund_points):
                self.ledger.credit(
                    user, decision.point_type, decision.amount,
                    reservation_id=reservation.id,
                    description=f"refund: reservation {reservation.id} cancelled by {actor}",
                )
                refunded_type = decision.point_type
            balances = self.ledger.balances(user)

        reservation.status = "cancelled"
        reservation.cancelled_at = now
        reservation.cancelled_by = actor
        self.db.flush()

        return CancellationResult(
            reservation=reservation,
            refunded=refunded_type is not None,
            refunded_point_type=refunded_type,
            updated_balances=balances,
            slots_freed=freed,
        )

    def _publish_cancelled(self, result: CancellationResult) -> None:
        reservation = result.reservation
        self.publisher.notify(reservation.user_id, RESERVATION_CANCELLED, {
            "reservation_id": reservation.id,
            "coach_id": reservation.coach_id,
            "date": reservation.date.isoformat(),
            "time": reservation.time.strftime("%H:%M"),
            "session_type": reservation.session_type,
            "cancelled_by": reservation.cancelled_by,
            "email": reservation.email,
        })
        if result.refunded:
            self.publisher.notify(reservation.user_id, POINTS_UPDATED, {
                "reason": "reservation_cancelled",
                "reservation_id": reservation.id,
                **(result.updated_balances or {}),
            })

    # ── Bulk (admin) ─────────────────────────────────────────────────────

    def bulk_create(
        self,
        coach_id: int,
        user_id: int,
        items: list[tuple[date, time, str]],
        reservation_type: str = "individual",
        created_by: str = "admin",
    ) -> BulkReservationResult:
        """
        Book several slots for one client, one transaction per slot.

        Stops at the first slot the client cannot pay for: that slot and
        all remaining ones are reported as skipped. Other per-slot
        rejections are skipped and the loop continues.
        """
        if not self.db.get(DBCoach, coach_id):
            raise NotFoundError(f"Coach {coach_id} not found", code="CoachNotFound")
        self.ledger.get_user(user_id)

        result = BulkReservationResult()
        for index, (slot_date, slot_time, session_type) in enumerate(items):
            item = {
                "date": slot_date.isoformat(),
                "time": slot_time.strftime("%H:%M"),
                "session_type": session_type,
            }
            request = ReservationRequest(
                coach_id=coach_id,
                date=slot_date,
                time=slot_time,
                session_type=session_type,
                user_id=user_id,
                reservation_type=reservation_type,
                created_by=created_by,
            )
            try:
                created = self.create(request)
            except InsufficientPointsError:
                for rest_date, rest_time, rest_type in items[index:]:
                    result.skipped.append({
                        "date": rest_date.isoformat(),
                        "time": rest_time.strftime("%H:%M"),
                        "session_type": rest_type,
                        "reason": "insufficient_points",
                    })
                result.stopped_early = True
                logger.warning(
                    f"Bulk booking for user {user_id} stopped: out of points after "
                    f"{len(result.created)} reservation(s)"
                )
                break
            except StorageFailure as exc:
                result.failed.append({**item, "reason": exc.code})
            except DomainException as exc:
                result.skipped.append({**item, "reason": exc.code})
            else:
                result.created.append({**item, **created.to_dict()})

        return result
