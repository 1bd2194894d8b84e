# backend/app/schemas/reservations.py

from datetime import date, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ──────────────────────────────────────────────────────────────────────────────
# Read Schemas
# ──────────────────────────────────────────────────────────────────────────────

class ReservationRead(BaseModel):
    id: int
    coach_id: int
    user_id: Optional[int] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date: date
    time: time
    session_type: str
    reservation_type: str
    status: str
    is_free: bool
    created_by: str
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None

    model_config = {"from_attributes": True}


# ──────────────────────────────────────────────────────────────────────────────
# Operation Request Schemas
# ──────────────────────────────────────────────────────────────────────────────

class ReservationCreate(BaseModel):
    """Request body for POST /reservations. Guests leave user_id empty."""
    coach_id: int
    date: date
    time: time
    session_type: str = "normal"
    reservation_type: Literal["individual", "group"] = "individual"
    user_id: Optional[int] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)
    gender: Optional[str] = None
    goal: Optional[str] = None
    created_by: Literal["client", "admin"] = "client"


class ReservationCancel(BaseModel):
    """Request body for POST /reservations/{id}/cancel"""
    actor: Literal["client", "admin", "system"] = "client"
    user_id: Optional[int] = Field(None, description="Required when actor = client")
    refund_points: bool = Field(True, description="Admin only: refund the session point")


class ReservationBulkItem(BaseModel):
    date: date
    time: time
    session_type: str = "normal"


class ReservationBulkCreate(BaseModel):
    """Request body for POST /reservations/bulk (admin)"""
    coach_id: int
    user_id: int
    reservation_type: Literal["individual", "group"] = "individual"
    slots: list[ReservationBulkItem] = Field(..., min_length=1)


# ──────────────────────────────────────────────────────────────────────────────
# Operation Response Schemas
# ──────────────────────────────────────────────────────────────────────────────

class ReservationCreateResponse(BaseModel):
    reservation_id: int
    status: str
    is_free: bool
    points_deducted: int
    point_type: Optional[str] = None
    remaining_points: Optional[int] = None
    remaining_solo_points: Optional[int] = None
    remaining_team_points: Optional[int] = None
    slots_blocked: int


class PointBalances(BaseModel):
    points: int
    solo_points: int
    team_points: int


class ReservationCancelResponse(BaseModel):
    reservation_id: int
    status: str
    cancelled_by: str
    refunded: bool
    refunded_point_type: Optional[str] = None
    updated_balances: Optional[PointBalances] = None
    slots_freed: int


class ReservationBulkResponse(BaseModel):
    created: list[dict]
    skipped: list[dict]
    failed: list[dict]
    stopped_early: bool
