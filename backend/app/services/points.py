# backend/app/services/points.py
"""
Point ledger.

Users hold two balances: solo points (individual sessions) and team points
(group sessions). `points` is their sum and is recomputed on every change.
Each movement is recorded in point_transactions with the resulting balance.

Runs inside the caller's transaction; nothing here commits.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.generated import (
    PointTransactions as DBPointTransaction,
    Users as DBUser,
)
from .errors import InsufficientPointsError, NotFoundError, ValidationError
from .slots.config import BILAN

logger = logging.getLogger(__name__)

SOLO = "solo"
TEAM = "team"
POINT_TYPES = (SOLO, TEAM)

ADJUST_ACTIONS = ("add", "remove", "set")


def cost_for(session_type: str, reservation_type: str = "individual") -> Optional[str]:
    """
    Point type charged for a session, or None if it is free.

    Bilan sessions are free. Individual sessions cost one solo point,
    group sessions one team point.
    """
    if session_type == BILAN:
        return None
    return TEAM if reservation_type == "group" else SOLO


def _balance_column(point_type: str) -> str:
    if point_type not in POINT_TYPES:
        raise ValidationError(
            f"Unknown point type: {point_type}",
            code="InvalidPointType",
            details={"allowed": list(POINT_TYPES)},
        )
    return f"{point_type}_points"


class PointLedger:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int, for_update: bool = False) -> DBUser:
        query = self.db.query(DBUser).filter(DBUser.id == user_id)
        if for_update:
            query = query.with_for_update()
        user = query.first()
        if not user:
            raise NotFoundError(f"User {user_id} not found", code="UserNotFound")
        return user

    @staticmethod
    def balances(user: DBUser) -> dict[str, int]:
        return {
            "points": user.points or 0,
            "solo_points": user.solo_points or 0,
            "team_points": user.team_points or 0,
        }

    def debit(
        self,
        user: DBUser,
        point_type: str,
        amount: int = 1,
        reservation_id: Optional[int] = None,
        description: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> DBPointTransaction:
        """
        Take `amount` points of `point_type` from the user.

        The user row must have been loaded with for_update=True.

        Raises:
            InsufficientPointsError: balance < amount (nothing is changed)
        """
        column = _balance_column(point_type)
        balance = getattr(user, column) or 0
        if balance < amount:
            raise InsufficientPointsError(point_type, balance, amount)

        return self._apply(
            user, point_type, balance - amount, -amount, "debit",
            reservation_id=reservation_id,
            description=description,
            created_by=created_by,
        )

    def credit(
        self,
        user: DBUser,
        point_type: str,
        amount: int = 1,
        reservation_id: Optional[int] = None,
        description: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> DBPointTransaction:
        column = _balance_column(point_type)
        balance = getattr(user, column) or 0
        return self._apply(
            user, point_type, balance + amount, amount, "credit",
            reservation_id=reservation_id,
            description=description,
            created_by=created_by,
        )

    def adjust(
        self,
        user_id: int,
        point_type: str,
        action: str,
        amount: int,
        description: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> DBUser:
        """
        Admin adjustment.

        add: balance + amount
        remove: balance - amount, clamped at 0
        set: balance = amount
        """
        if action not in ADJUST_ACTIONS:
            raise ValidationError(
                f"Unknown action: {action}",
                code="InvalidAdjustAction",
                details={"allowed": list(ADJUST_ACTIONS)},
            )
        if amount < 0:
            raise ValidationError("amount must be >= 0", code="InvalidAmount")

        column = _balance_column(point_type)
        user = self.get_user(user_id, for_update=True)
        balance = getattr(user, column) or 0

        if action == "add":
            new_balance = balance + amount
        elif action == "remove":
            new_balance = max(0, balance - amount)
        else:
            new_balance = amount

        self._apply(
            user, point_type, new_balance, new_balance - balance, "adjustment",
            description=description or f"admin {action} {amount}",
            created_by=created_by,
        )
        logger.info(f"User {user_id}: {point_type} points {balance} → {new_balance} ({action} {amount})")
        return user

    def transactions(self, user_id: int, limit: int = 100) -> list[DBPointTransaction]:
        self.get_user(user_id)
        return (
            self.db.query(DBPointTransaction)
            .filter(DBPointTransaction.user_id == user_id)
            .order_by(DBPointTransaction.id.desc())
            .limit(limit)
            .all()
        )

    def _apply(
        self,
        user: DBUser,
        point_type: str,
        new_balance: int,
        delta: int,
        kind: str,
        reservation_id: Optional[int] = None,
        description: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> DBPointTransaction:
        setattr(user, _balance_column(point_type), new_balance)
        user.points = (user.solo_points or 0) + (user.team_points or 0)

        tx = DBPointTransaction(
            user_id=user.id,
            point_type=point_type,
            amount=delta,
            kind=kind,
            balance_after=new_balance,
            reservation_id=reservation_id,
            description=description,
            created_by=created_by,
        )
        self.db.add(tx)
        return tx
