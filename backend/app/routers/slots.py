# backend/app/routers/slots.py
"""
Slots API endpoints.

POST   /coaches/{coach_id}/slots/generate  - Generate slots (idempotent)
GET    /coaches/{coach_id}/slots           - Client view: available future slots
GET    /coaches/{coach_id}/slots/all       - Admin view: every slot
DELETE /slots/{slot_id}                    - Delete an available slot
POST   /slots/bulk-delete                  - Delete many slots, partial report
PATCH  /slots/{slot_id}/availability       - Enable / disable a slot
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db, transaction_scope
from ..models.generated import Coaches as DBCoach
from ..schemas.slots import (
    SlotAdminRead,
    SlotAvailabilityUpdate,
    SlotBulkDeleteRequest,
    SlotBulkDeleteResponse,
    SlotGenerateRequest,
    SlotGenerateResponse,
    SlotRead,
)
from ..services.clock import Clock, get_clock
from ..services.errors import NotFoundError
from ..services.slots import SlotStore, display_status, expand_dates, generate_slots
from ..services.slots.config import combine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["slots"])


def _get_coach(coach_id: int, db: Session) -> DBCoach:
    coach = db.get(DBCoach, coach_id)
    if not coach:
        raise NotFoundError(f"Coach {coach_id} not found", code="CoachNotFound")
    return coach


@router.post(
    "/coaches/{coach_id}/slots/generate",
    response_model=SlotGenerateResponse,
    status_code=status.HTTP_201_CREATED,
)
def generate_coach_slots(
    coach_id: int,
    data: SlotGenerateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Generate slots for every date of the request.

    Re-running over an already populated range creates nothing new.
    Every date is validated before anything is written.
    """
    _get_coach(coach_id, db)
    now = clock()

    dates = expand_dates(data.start_date, data.end_date, data.days_of_week, data.repeat_weeks)
    candidates = [
        candidate
        for day in dates
        for candidate in generate_slots(day, data.start_time, data.end_time, data.session_types, now)
    ]

    store = SlotStore(db)
    created = []
    with transaction_scope(db):
        for candidate in candidates:
            slot, was_created = store.insert_if_absent(coach_id, candidate)
            if was_created:
                created.append(slot)

    logger.info(
        f"Coach {coach_id}: {len(created)} slot(s) created, "
        f"{len(candidates) - len(created)} already existed ({len(dates)} date(s))"
    )
    return SlotGenerateResponse(
        coach_id=coach_id,
        dates=dates,
        created=[SlotRead.model_validate(s) for s in created],
        skipped_existing=len(candidates) - len(created),
    )


@router.get("/coaches/{coach_id}/slots", response_model=list[SlotRead])
def list_available_slots(
    coach_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _get_coach(coach_id, db)
    return SlotStore(db).list_for_coach(
        coach_id, clock(), start_date=start_date, end_date=end_date
    )


@router.get("/coaches/{coach_id}/slots/all", response_model=list[SlotAdminRead])
def list_all_slots(
    coach_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _get_coach(coach_id, db)
    now = clock()
    slots = SlotStore(db).list_for_coach(
        coach_id, now, include_all=True, start_date=start_date, end_date=end_date
    )
    return [
        SlotAdminRead(
            **SlotRead.model_validate(slot).model_dump(),
            display_status=display_status(slot),
            is_past=combine(slot.date, slot.start_time) <= now,
        )
        for slot in slots
    ]


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(slot_id: int, db: Session = Depends(get_db)):
    with transaction_scope(db):
        SlotStore(db).delete(slot_id)


@router.post("/slots/bulk-delete", response_model=SlotBulkDeleteResponse)
def bulk_delete_slots(data: SlotBulkDeleteRequest, db: Session = Depends(get_db)):
    return SlotStore(db).bulk_delete(data.slot_ids)


@router.patch("/slots/{slot_id}/availability", response_model=SlotRead)
def update_slot_availability(
    slot_id: int,
    data: SlotAvailabilityUpdate,
    db: Session = Depends(get_db),
):
    store = SlotStore(db)
    with transaction_scope(db):
        store.set_availability(slot_id, data.is_available)
    return store.get(slot_id)
