# backend/app/schemas/points.py

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class PointsRead(BaseModel):
    """Response for GET /points/{user_id}"""
    user_id: int
    points: int
    solo_points: int
    team_points: int


class PointTransactionRead(BaseModel):
    id: int
    user_id: int
    point_type: str
    amount: int
    kind: str  # debit, credit, adjustment
    balance_after: int
    reservation_id: Optional[int] = None
    description: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PointsAdjust(BaseModel):
    """Request body for POST /points/{user_id}/adjust"""
    point_type: Literal["solo", "team"]
    action: Literal["add", "remove", "set"]
    amount: int = Field(..., ge=0, description="Points to add/remove, or the new balance for set")
    description: Optional[str] = None
    created_by: Optional[int] = None


class PointsAdjustResponse(BaseModel):
    user_id: int
    point_type: str
    action: str
    previous: int
    new: int
    change: int
    points: int
    solo_points: int
    team_points: int
