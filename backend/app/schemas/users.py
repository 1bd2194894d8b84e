# backend/app/schemas/users.py

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1)
    role: Literal["client", "coach", "admin"] = "client"
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)
    gender: Optional[Literal["male", "female", "other"]] = None
    goal: Optional[str] = None

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    """Profile patch. Point balances are changed through /points only."""
    is_active: Optional[bool] = None
    role: Optional[Literal["client", "coach", "admin"]] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)
    gender: Optional[Literal["male", "female", "other"]] = None
    goal: Optional[str] = None

    model_config = {"from_attributes": True}


class UserRead(BaseModel):
    id: int
    username: str
    role: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    goal: Optional[str] = None
    points: int
    solo_points: int
    team_points: int
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
