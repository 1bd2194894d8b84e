# backend/tests/test_api.py
"""
HTTP-level tests: routing, status codes and error bodies.
"""

from datetime import datetime

from app.models.generated import TimeSlots

from conftest import COACH_ID


def _reservation_body(user_id=None, start="08:30", session_type="normal", **extra):
    body = {
        "coach_id": COACH_ID,
        "date": "2025-07-23",
        "time": start,
        "session_type": session_type,
        "user_id": user_id,
    }
    body.update(extra)
    return body


class TestHealth:
    def test_health(self, api):
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json() == {"database": True}


class TestSlotsApi:
    GENERATE = {
        "start_date": "2025-07-23",
        "start_time": "07:00",
        "end_time": "11:00",
        "session_types": ["normal", "bilan"],
    }

    def test_generate_is_idempotent(self, api, coach):
        first = api.post(f"/coaches/{COACH_ID}/slots/generate", json=self.GENERATE)
        assert first.status_code == 201
        assert len(first.json()["created"]) == 15
        assert first.json()["skipped_existing"] == 0

        second = api.post(f"/coaches/{COACH_ID}/slots/generate", json=self.GENERATE)
        assert second.status_code == 201
        assert second.json()["created"] == []
        assert second.json()["skipped_existing"] == 15

    def test_generate_in_the_past(self, api, coach):
        response = api.post(
            f"/coaches/{COACH_ID}/slots/generate",
            json={**self.GENERATE, "start_date": "2025-07-19"},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "PastDateTime"

    def test_generate_unknown_coach(self, api):
        response = api.post("/coaches/999/slots/generate", json=self.GENERATE)
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "CoachNotFound"

    def test_generate_rejects_bad_weekday(self, api, coach):
        response = api.post(
            f"/coaches/{COACH_ID}/slots/generate",
            json={**self.GENERATE, "days_of_week": [9]},
        )
        assert response.status_code == 422

    def test_client_view_drops_blocked_slots(self, api, scenario_slots, client_user):
        assert len(api.get(f"/coaches/{COACH_ID}/slots").json()) == 15

        api.post("/reservations/", json=_reservation_body(client_user.id))

        slots = api.get(f"/coaches/{COACH_ID}/slots").json()
        assert len(slots) == 10
        assert all(s["status"] == "available" for s in slots)

    def test_admin_view_shows_display_status(self, api, scenario_slots, client_user):
        api.post("/reservations/", json=_reservation_body(client_user.id))

        slots = api.get(f"/coaches/{COACH_ID}/slots/all").json()
        assert len(slots) == 15
        by_key = {(s["start_time"][:5], s["session_type"]): s for s in slots}
        assert by_key[("08:30", "normal")]["display_status"] == "booked"
        assert by_key[("09:00", "bilan")]["display_status"] == "overlapping"
        assert by_key[("09:00", "bilan")]["status"] == "booked"
        assert by_key[("07:00", "normal")]["is_past"] is False

    def test_delete_slot(self, api, db, scenario_slots, client_user):
        api.post("/reservations/", json=_reservation_body(client_user.id))
        booked = db.query(TimeSlots).filter(TimeSlots.status == "booked").first()
        available = db.query(TimeSlots).filter(TimeSlots.status == "available").first()

        response = api.delete(f"/slots/{booked.id}")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "SlotNotDeletable"

        assert api.delete(f"/slots/{available.id}").status_code == 204
        assert api.delete("/slots/999").status_code == 404

    def test_bulk_delete(self, api, scenario_slots):
        ids = [s.id for s in scenario_slots[:3]]
        response = api.post("/slots/bulk-delete", json={"slot_ids": ids + [999]})

        assert response.status_code == 200
        body = response.json()
        assert body["deleted"] == ids
        assert body["skipped"] == [{"id": 999, "reason": "not_found"}]
        assert body["partial"] is False

    def test_toggle_availability(self, api, scenario_slots):
        slot_id = scenario_slots[0].id
        response = api.patch(f"/slots/{slot_id}/availability", json={"is_available": False})

        assert response.status_code == 200
        assert response.json()["status"] == "unavailable"


class TestReservationsApi:
    def test_create_returns_remaining_points(self, api, scenario_slots, client_user, publisher):
        response = api.post("/reservations/", json=_reservation_body(client_user.id))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "confirmed"
        assert body["points_deducted"] == 1
        assert body["remaining_solo_points"] == 4
        assert body["slots_blocked"] == 5
        assert len(publisher.of_type("reservation_confirmed")) == 1

    def test_double_booking_conflicts(self, api, scenario_slots, client_user):
        api.post("/reservations/", json=_reservation_body(client_user.id))

        response = api.post("/reservations/", json=_reservation_body(client_user.id))
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "SlotUnavailable"

    def test_insufficient_points(self, api, scenario_slots, broke_user):
        response = api.post("/reservations/", json=_reservation_body(broke_user.id))

        assert response.status_code == 402
        detail = response.json()["detail"]
        assert detail["code"] == "InsufficientPoints"
        assert detail["details"] == {"point_type": "solo", "balance": 0, "required": 1}

    def test_guest_missing_fields(self, api, scenario_slots):
        response = api.post(
            "/reservations/",
            json=_reservation_body(full_name="Guest", email="guest@example.com"),
        )
        assert response.status_code == 400
        assert response.json()["detail"]["details"]["missing"] == ["phone"]

    def test_cancel_with_refund(self, api, scenario_slots, client_user):
        reservation_id = api.post("/reservations/", json=_reservation_body(client_user.id)).json()["reservation_id"]

        response = api.post(
            f"/reservations/{reservation_id}/cancel",
            json={"actor": "client", "user_id": client_user.id},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["refunded"] is True
        assert body["updated_balances"] == {"points": 7, "solo_points": 5, "team_points": 2}
        assert body["slots_freed"] == 5

        detail = api.get(f"/reservations/{reservation_id}").json()
        assert detail["cancelled_by"] == "client"

    def test_cancel_within_cutoff(self, api, scenario_slots, client_user, clock):
        reservation_id = api.post("/reservations/", json=_reservation_body(client_user.id)).json()["reservation_id"]
        clock.now = datetime(2025, 7, 23, 4, 0)

        response = api.post(
            f"/reservations/{reservation_id}/cancel",
            json={"actor": "client", "user_id": client_user.id},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "WithinCutoffWindow"

    def test_list_by_user(self, api, scenario_slots, client_user):
        api.post("/reservations/", json=_reservation_body(client_user.id, start="07:00"))
        api.post("/reservations/", json=_reservation_body(client_user.id, start="10:00"))

        response = api.get("/reservations/", params={"user_id": client_user.id, "status": "confirmed"})
        assert [r["time"][:5] for r in response.json()] == ["07:00", "10:00"]

    def test_bulk(self, api, scenario_slots, client_user):
        response = api.post(
            "/reservations/bulk",
            json={
                "coach_id": COACH_ID,
                "user_id": client_user.id,
                "slots": [
                    {"date": "2025-07-23", "time": "07:00"},
                    {"date": "2025-07-23", "time": "07:30"},
                ],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["created"]) == 1
        assert body["skipped"][0]["reason"] == "SlotUnavailable"
        assert body["stopped_early"] is False


class TestPointsApi:
    def test_balance_and_history(self, api, scenario_slots, client_user):
        api.post("/reservations/", json=_reservation_body(client_user.id))

        balance = api.get(f"/points/{client_user.id}").json()
        assert balance == {"user_id": client_user.id, "points": 6, "solo_points": 4, "team_points": 2}

        history = api.get(f"/points/{client_user.id}/transactions").json()
        assert [(t["kind"], t["amount"]) for t in history] == [("debit", -1)]

    def test_remove_clamps_at_zero(self, api, client_user, publisher):
        response = api.post(
            f"/points/{client_user.id}/adjust",
            json={"point_type": "team", "action": "remove", "amount": 10},
        )

        assert response.status_code == 200
        body = response.json()
        assert (body["previous"], body["new"], body["change"]) == (2, 0, -2)
        assert body["points"] == 5
        assert publisher.of_type("points_updated")[0]["team_points"] == 0

    def test_unknown_user(self, api):
        assert api.get("/points/999").status_code == 404


class TestUsersApi:
    def test_create_and_patch(self, api):
        created = api.post("/users/", json={"username": "claire", "email": "claire@example.com"})
        assert created.status_code == 201
        user_id = created.json()["id"]
        assert created.json()["solo_points"] == 0

        patched = api.patch(f"/users/{user_id}", json={"phone": "+33600000003"})
        assert patched.status_code == 200
        assert patched.json()["phone"] == "+33600000003"

    def test_duplicate_username(self, api, client_user):
        response = api.post("/users/", json={"username": "alice"})
        assert response.status_code == 409

    def test_soft_delete(self, api, client_user):
        assert api.delete(f"/users/{client_user.id}").status_code == 204
        assert api.get("/users/").json() == []
        assert len(api.get("/users/", params={"include_inactive": True}).json()) == 1

    def test_user_reservations(self, api, scenario_slots, client_user):
        first = api.post("/reservations/", json=_reservation_body(client_user.id, start="10:00")).json()
        api.post("/reservations/", json=_reservation_body(client_user.id, start="07:00"))
        api.post(f"/reservations/{first['reservation_id']}/cancel", json={"actor": "admin"})

        everything = api.get(f"/users/{client_user.id}/reservations").json()
        assert [r["time"][:5] for r in everything] == ["07:00", "10:00"]

        confirmed = api.get(f"/users/{client_user.id}/reservations", params={"status": "confirmed"}).json()
        assert [r["time"][:5] for r in confirmed] == ["07:00"]

        assert api.get("/users/999/reservations").status_code == 404
