# backend/app/services/group_courses.py
"""
Group courses: a coach session with several participants paid in team points.

Booking costs 1 team point; cancellation follows the same policy as
individual sessions and refunds the team point. Deactivating a course
cancels every confirmed participant and (by default) refunds them.
"""

import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import Settings, settings as default_settings
from ..database import transaction_scope
from ..models.generated import (
    Coaches as DBCoach,
    GroupCourses as DBGroupCourse,
    GroupReservations as DBGroupReservation,
)
from .cancellation import ADMIN, ensure_can_cancel, refund_eligible
from .clock import Clock, local_now
from .errors import ConflictError, NotFoundError, PolicyRejection, ValidationError
from .events import POINTS_UPDATED, RESERVATION_CANCELLED, RESERVATION_CONFIRMED, EventPublisher, NullEventPublisher
from .points import TEAM, PointLedger
from .slots.config import NORMAL, combine

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "title", "description", "coach_id", "date", "time",
    "duration_minutes", "max_participants", "is_active",
)


class GroupCourseService:
    def __init__(
        self,
        db: Session,
        publisher: EventPublisher | None = None,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        self.db = db
        self.publisher = publisher or NullEventPublisher()
        self.settings = settings or default_settings
        self.clock = clock or local_now
        self.ledger = PointLedger(db)

    # ── Courses ──────────────────────────────────────────────────────────

    def get(self, course_id: int, for_update: bool = False) -> DBGroupCourse:
        query = self.db.query(DBGroupCourse).filter(DBGroupCourse.id == course_id)
        if for_update:
            query = query.with_for_update()
        course = query.first()
        if not course:
            raise NotFoundError(f"Group course {course_id} not found", code="GroupCourseNotFound")
        return course

    def participant_count(self, course_id: int) -> int:
        return (
            self.db.query(func.count(DBGroupReservation.id))
            .filter(
                DBGroupReservation.course_id == course_id,
                DBGroupReservation.status == "confirmed",
            )
            .scalar()
        ) or 0

    def list_courses(self, include_past: bool = False, include_inactive: bool = False) -> list[DBGroupCourse]:
        query = self.db.query(DBGroupCourse)
        if not include_inactive:
            query = query.filter(DBGroupCourse.is_active.is_(True))
        if not include_past:
            query = query.filter(DBGroupCourse.date >= self.clock().date())
        return query.order_by(DBGroupCourse.date, DBGroupCourse.time).all()

    def create(self, data: dict[str, Any]) -> DBGroupCourse:
        if not self.db.get(DBCoach, data["coach_id"]):
            raise NotFoundError(f"Coach {data['coach_id']} not found", code="CoachNotFound")

        course = DBGroupCourse(**data)
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)
        logger.info(f"Group course {course.id} created: {course.title} {course.date} {course.time:%H:%M}")
        return course

    def update(self, course_id: int, patch: dict[str, Any]) -> DBGroupCourse:
        unknown = set(patch) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        with transaction_scope(self.db, self.settings.lock_wait_timeout_seconds):
            course = self.get(course_id, for_update=True)

            if "coach_id" in patch and not self.db.get(DBCoach, patch["coach_id"]):
                raise NotFoundError(f"Coach {patch['coach_id']} not found", code="CoachNotFound")

            new_max = patch.get("max_participants")
            if new_max is not None:
                booked = self.participant_count(course_id)
                if booked > new_max:
                    raise ConflictError(
                        f"Cannot reduce max participants to {new_max}: "
                        f"{booked} confirmed participants",
                        code="CapacityBelowParticipants",
                        details={"confirmed": booked, "max_participants": new_max},
                    )

            for name, value in patch.items():
                setattr(course, name, value)

        self.db.refresh(course)
        return course

    def deactivate(self, course_id: int, refund_points: bool = True) -> dict[str, Any]:
        """Cancel a course. History is kept: the row is marked inactive."""
        now = self.clock()
        refunded: list[int] = []

        with transaction_scope(self.db, self.settings.lock_wait_timeout_seconds):
            course = self.get(course_id, for_update=True)
            if combine(course.date, course.time) < now:
                raise PolicyRejection(
                    "Cannot cancel a group course that has already taken place",
                    code="PastSession",
                )

            participants = (
                self.db.query(DBGroupReservation)
                .filter(
                    DBGroupReservation.course_id == course_id,
                    DBGroupReservation.status == "confirmed",
                )
                .with_for_update()
                .all()
            )
            for booking in participants:
                booking.status = "cancelled"
                booking.cancelled_at = now
                booking.cancelled_by = ADMIN
                if refund_points:
                    user = self.ledger.get_user(booking.user_id, for_update=True)
                    self.ledger.credit(user, TEAM, description=f"refund: group course {course_id} cancelled")
                    refunded.append(booking.user_id)

            course.is_active = False

        logger.info(f"Group course {course_id} cancelled, {len(refunded)} participant(s) refunded")
        for user_id in refunded:
            self.publisher.notify(user_id, RESERVATION_CANCELLED, {
                "group_course_id": course_id,
                "cancelled_by": ADMIN,
                "refunded_point_type": TEAM,
            })
        return {"course_id": course_id, "refunded_participants": refunded}

    # ── Participants ─────────────────────────────────────────────────────

    def participants(self, course_id: int) -> list[DBGroupReservation]:
        self.get(course_id)
        return (
            self.db.query(DBGroupReservation)
            .filter(DBGroupReservation.course_id == course_id)
            .order_by(DBGroupReservation.created_at)
            .all()
        )

    def user_bookings(self, user_id: int) -> list[DBGroupReservation]:
        return (
            self.db.query(DBGroupReservation)
            .filter(
                DBGroupReservation.user_id == user_id,
                DBGroupReservation.status == "confirmed",
            )
            .all()
        )

    def book(self, course_id: int, user_id: int) -> dict[str, Any]:
        now = self.clock()

        with transaction_scope(self.db, self.settings.lock_wait_timeout_seconds):
            course = self.get(course_id, for_update=True)
            if not course.is_active:
                raise NotFoundError(f"Group course {course_id} not found", code="GroupCourseNotFound")
            if combine(course.date, course.time) < now:
                raise PolicyRejection("Cannot book a spot in a past group course", code="PastSession")

            if self.participant_count(course_id) >= course.max_participants:
                raise ConflictError(
                    "This group course is already at maximum capacity",
                    code="CourseFull",
                    details={"max_participants": course.max_participants},
                )

            existing = self._confirmed_booking(course_id, user_id)
            if existing:
                raise ConflictError(
                    "You already have a confirmed booking for this group course",
                    code="AlreadyBooked",
                    details={"booking_id": existing.id},
                )

            user = self.ledger.get_user(user_id, for_update=True)
            self.ledger.debit(user, TEAM, description=f"group course {course_id}")

            booking = DBGroupReservation(course_id=course_id, user_id=user_id, status="confirmed")
            self.db.add(booking)
            self.db.flush()
            balances = self.ledger.balances(user)
            booking_id = booking.id

        logger.info(f"User {user_id} booked group course {course_id} (booking {booking_id})")
        self.publisher.notify(user_id, RESERVATION_CONFIRMED, {"group_course_id": course_id, "booking_id": booking_id})
        self.publisher.notify(user_id, POINTS_UPDATED, {"reason": "group_course_booked", **balances})

        return {
            "booking_id": booking_id,
            "course_id": course_id,
            "team_points_deducted": 1,
            "remaining_points": balances["points"],
            "remaining_solo_points": balances["solo_points"],
            "remaining_team_points": balances["team_points"],
        }

    def cancel(self, course_id: int, user_id: int, actor: str = "client") -> dict[str, Any]:
        now = self.clock()

        with transaction_scope(self.db, self.settings.lock_wait_timeout_seconds):
            course = self.get(course_id)
            booking = self._confirmed_booking(course_id, user_id, for_update=True)
            if not booking:
                raise NotFoundError(
                    "Booking not found or already cancelled",
                    code="ReservationNotFound",
                )

            ensure_can_cancel(
                actor,
                combine(course.date, course.time),
                now,
                self.settings.client_cancel_cutoff_hours,
            )

            decision = refund_eligible(NORMAL, "group")
            user = self.ledger.get_user(user_id, for_update=True)
            self.ledger.credit(
                user, decision.point_type, decision.amount,
                description=f"refund: group course {course_id} cancelled by {actor}",
            )

            booking.status = "cancelled"
            booking.cancelled_at = now
            booking.cancelled_by = actor
            balances = self.ledger.balances(user)

        logger.info(f"User {user_id} cancelled group course {course_id} ({actor})")
        self.publisher.notify(user_id, RESERVATION_CANCELLED, {"group_course_id": course_id, "cancelled_by": actor})
        self.publisher.notify(user_id, POINTS_UPDATED, {"reason": "group_course_cancelled", **balances})

        return {
            "course_id": course_id,
            "refunded": True,
            "refunded_point_type": decision.point_type,
            "updated_balances": balances,
        }

    def _confirmed_booking(
        self,
        course_id: int,
        user_id: int,
        for_update: bool = False,
    ) -> Optional[DBGroupReservation]:
        query = self.db.query(DBGroupReservation).filter(
            DBGroupReservation.course_id == course_id,
            DBGroupReservation.user_id == user_id,
            DBGroupReservation.status == "confirmed",
        )
        if for_update:
            query = query.with_for_update()
        return query.first()
