# backend/app/routers/points.py
"""
Points API: balances, history and admin adjustments.

Every change writes a point_transactions row.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db, transaction_scope
from ..schemas.points import (
    PointsAdjust,
    PointsAdjustResponse,
    PointsRead,
    PointTransactionRead,
)
from ..services.events import POINTS_UPDATED, EventPublisher, get_event_publisher
from ..services.points import PointLedger

router = APIRouter(prefix="/points", tags=["points"])


@router.get("/{user_id}", response_model=PointsRead)
def get_points(user_id: int, db: Session = Depends(get_db)):
    ledger = PointLedger(db)
    user = ledger.get_user(user_id)
    return PointsRead(user_id=user.id, **ledger.balances(user))


@router.get("/{user_id}/transactions", response_model=list[PointTransactionRead])
def get_point_transactions(
    user_id: int,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Newest first."""
    return PointLedger(db).transactions(user_id, limit=limit)


@router.post("/{user_id}/adjust", response_model=PointsAdjustResponse)
def adjust_points(
    user_id: int,
    data: PointsAdjust,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    """
    Admin adjustment of one balance.
    remove clamps at zero instead of failing.
    """
    ledger = PointLedger(db)
    column = f"{data.point_type}_points"

    with transaction_scope(db):
        previous = getattr(ledger.get_user(user_id, for_update=True), column)
        user = ledger.adjust(
            user_id,
            data.point_type,
            data.action,
            data.amount,
            description=data.description,
            created_by=data.created_by,
        )
        balances = ledger.balances(user)

    publisher.notify(user_id, POINTS_UPDATED, {"reason": "admin_adjustment", **balances})

    return PointsAdjustResponse(
        user_id=user_id,
        point_type=data.point_type,
        action=data.action,
        previous=previous,
        new=balances[column],
        change=balances[column] - previous,
        **balances,
    )
