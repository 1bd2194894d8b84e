# backend/app/routers/reservations.py
"""
Reservations API.

Create and cancel go through ReservationManager: one transaction each,
events published after commit. PATCH and DELETE are not exposed:
a reservation only changes state through /cancel.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.reservations import (
    ReservationBulkCreate,
    ReservationBulkResponse,
    ReservationCancel,
    ReservationCancelResponse,
    ReservationCreate,
    ReservationCreateResponse,
    ReservationRead,
)
from ..services.clock import Clock, get_clock
from ..services.events import EventPublisher, get_event_publisher
from ..services.reservations import ReservationManager, ReservationRequest

router = APIRouter(prefix="/reservations", tags=["reservations"])


def get_reservation_manager(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
) -> ReservationManager:
    return ReservationManager(db, publisher=publisher, clock=clock)


@router.get("/", response_model=list[ReservationRead])
def list_reservations(
    coach_id: Optional[int] = None,
    user_id: Optional[int] = None,
    status: Optional[Literal["confirmed", "cancelled"]] = None,
    manager: ReservationManager = Depends(get_reservation_manager),
):
    return manager.find(coach_id=coach_id, user_id=user_id, status=status)


@router.get("/{id}", response_model=ReservationRead)
def get_reservation(id: int, manager: ReservationManager = Depends(get_reservation_manager)):
    return manager.get(id)


@router.post("/", response_model=ReservationCreateResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    manager: ReservationManager = Depends(get_reservation_manager),
):
    result = manager.create(ReservationRequest(**data.model_dump()))
    return result.to_dict()


@router.post("/{id}/cancel", response_model=ReservationCancelResponse)
def cancel_reservation(
    id: int,
    data: ReservationCancel,
    manager: ReservationManager = Depends(get_reservation_manager),
):
    result = manager.cancel(
        id,
        actor=data.actor,
        user_id=data.user_id,
        refund_points=data.refund_points,
    )
    return result.to_dict()


@router.post("/bulk", response_model=ReservationBulkResponse)
def bulk_create_reservations(
    data: ReservationBulkCreate,
    manager: ReservationManager = Depends(get_reservation_manager),
):
    """Admin: book several slots for one client. Partial success is reported, not raised."""
    result = manager.bulk_create(
        coach_id=data.coach_id,
        user_id=data.user_id,
        items=[(item.date, item.time, item.session_type) for item in data.slots],
        reservation_type=data.reservation_type,
    )
    return result.to_dict()
