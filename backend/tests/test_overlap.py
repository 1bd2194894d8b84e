# backend/tests/test_overlap.py
"""
Cross-type overlap resolution on coach 24, 2025-07-23, window 07:00-11:00.
"""

from datetime import datetime, time

import pytest

from app.models.generated import TimeSlots
from app.services.slots import OverlapResolver, display_status, intervals_overlap

from conftest import COACH_ID, SCENARIO_DATE


class TestIntervalsOverlap:
    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ((time(8, 30), time(9, 25)), (time(8, 30), time(8, 55)), True),
            ((time(8, 30), time(9, 25)), (time(9, 0), time(9, 55)), True),
            ((time(8, 30), time(9, 25)), (time(8, 0), time(8, 25)), False),
            # touching endpoints do not overlap
            ((time(8, 0), time(8, 25)), (time(8, 25), time(8, 50)), False),
            ((time(8, 0), time(8, 55)), (time(8, 30), time(8, 40)), True),
        ],
    )
    def test_half_open(self, a, b, expected):
        assert intervals_overlap(*a, *b) is expected
        assert intervals_overlap(*b, *a) is expected


class TestMarkOverlapping:
    def test_bilan_booking_blocks_intersecting_normal_slots_only(self, scenario_slots, book, status_of):
        result = book("08:00", "bilan")

        assert status_of("08:00", "bilan") == "booked"
        assert status_of("08:00", "normal") == "booked"
        assert status_of("07:30", "normal") == "booked"  # 07:30-08:25
        # 5-minute gap, no intersection
        assert status_of("08:30", "bilan") == "available"
        assert status_of("07:30", "bilan") == "available"
        assert status_of("08:30", "normal") == "available"
        assert result.slots_blocked == 3

    def test_normal_booking_blocks_every_intersecting_slot(self, scenario_slots, book, status_of):
        result = book("08:30", "normal")

        for start, session_type in [
            ("08:30", "normal"),
            ("08:00", "normal"),
            ("09:00", "normal"),
            ("08:30", "bilan"),
            ("09:00", "bilan"),
        ]:
            assert status_of(start, session_type) == "booked", (start, session_type)

        for start, session_type in [
            ("07:00", "normal"),
            ("07:30", "normal"),
            ("09:30", "normal"),
            ("10:00", "normal"),
            ("08:00", "bilan"),
            ("09:30", "bilan"),
        ]:
            assert status_of(start, session_type) == "available", (start, session_type)

        assert result.slots_blocked == 5

    def test_blocked_slots_reference_the_reservation(self, db, scenario_slots, book):
        result = book("08:30", "normal")
        reservation_id = result.reservation.id

        blocked = db.query(TimeSlots).filter(TimeSlots.status == "booked").all()
        assert {s.reservation_id for s in blocked} == {reservation_id}
        available = db.query(TimeSlots).filter(TimeSlots.status == "available").all()
        assert all(s.reservation_id is None for s in available)

    def test_display_status_distinguishes_own_slot(self, db, scenario_slots, book):
        book("08:30", "normal")
        db.expire_all()

        slots = {
            (s.start_time.strftime("%H:%M"), s.session_type): s
            for s in db.query(TimeSlots).all()
        }
        assert display_status(slots[("08:30", "normal")]) == "booked"
        assert display_status(slots[("08:30", "bilan")]) == "overlapping"
        assert display_status(slots[("09:00", "normal")]) == "overlapping"
        assert display_status(slots[("07:00", "normal")]) == "available"

    def test_unavailable_slots_are_not_touched(self, db, scenario_slots, book, status_of):
        slot = (
            db.query(TimeSlots)
            .filter(TimeSlots.start_time == time(9, 0), TimeSlots.session_type == "bilan")
            .one()
        )
        slot.status = "unavailable"
        db.commit()

        book("08:30", "normal")

        assert status_of("09:00", "bilan") == "unavailable"


class TestClaimSlot:
    def test_second_claim_loses(self, db, scenario_slots, book):
        first = book("07:00", "normal")
        resolver = OverlapResolver(db)
        slot = (
            db.query(TimeSlots)
            .filter(TimeSlots.start_time == time(10, 0), TimeSlots.session_type == "normal")
            .one()
        )

        assert resolver.claim_slot(slot.id, first.reservation.id) is True
        assert resolver.claim_slot(slot.id, first.reservation.id) is False
        db.rollback()


class TestFreeOverlapping:
    def test_cancel_frees_everything_it_blocked(self, db, scenario_slots, book, manager, status_of):
        result = book("08:30", "normal")

        cancelled = manager.cancel(result.reservation.id, actor="admin")

        assert cancelled.slots_freed == 5
        assert db.query(TimeSlots).filter(TimeSlots.status != "available").count() == 0
        assert db.query(TimeSlots).filter(TimeSlots.reservation_id.isnot(None)).count() == 0

    def test_slot_still_covered_by_another_reservation_stays_booked(
        self, db, scenario_slots, book, manager, status_of
    ):
        first = book("08:00", "bilan")    # blocks normal 07:30, normal 08:00
        second = book("08:30", "normal")  # blocks bilan 08:30, normal 09:00, bilan 09:00

        cancelled = manager.cancel(first.reservation.id, actor="admin")

        assert status_of("08:00", "bilan") == "available"
        assert status_of("07:30", "normal") == "available"
        # 08:00-08:55 still intersects 08:30-09:25
        assert status_of("08:00", "normal") == "booked"
        slot = (
            db.query(TimeSlots)
            .filter(TimeSlots.start_time == time(8, 0), TimeSlots.session_type == "normal")
            .one()
        )
        assert slot.reservation_id == second.reservation.id
        assert cancelled.slots_freed == 2

    def test_client_cancel_leaves_past_slots_alone(self, db, scenario_slots, book):
        result = book("08:30", "normal")
        resolver = OverlapResolver(db)
        now = datetime(2025, 7, 23, 8, 45)

        freed_client = resolver.free_overlapping(
            COACH_ID, SCENARIO_DATE, time(8, 30), time(9, 25),
            reservation_id=result.reservation.id, now=now,
        )
        # only normal 09:00 and bilan 09:00 start after now
        assert freed_client == 2

        freed_admin = resolver.free_overlapping(
            COACH_ID, SCENARIO_DATE, time(8, 30), time(9, 25),
            reservation_id=result.reservation.id, now=now, include_past=True,
        )
        assert freed_admin == 3
        db.rollback()
