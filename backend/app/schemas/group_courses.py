# backend/app/schemas/group_courses.py

import datetime as dt
from datetime import date, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, Field


class GroupCourseCreate(BaseModel):
    coach_id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    date: date
    time: time
    duration_minutes: int = Field(60, gt=0)
    max_participants: int = Field(10, gt=0)

    model_config = {"from_attributes": True}


class GroupCourseUpdate(BaseModel):
    is_active: Optional[bool] = None
    coach_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    max_participants: Optional[int] = Field(None, gt=0)

    model_config = {"from_attributes": True}


class GroupCourseRead(BaseModel):
    id: int
    coach_id: int
    title: str
    description: Optional[str] = None
    date: date
    time: time
    duration_minutes: int
    max_participants: int
    current_participants: int = 0
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class GroupCourseDeactivate(BaseModel):
    refund_points: bool = True


class GroupBookingRequest(BaseModel):
    user_id: int


class GroupCancelRequest(BaseModel):
    user_id: int
    actor: Literal["client", "admin", "system"] = "client"


class GroupReservationRead(BaseModel):
    id: int
    course_id: int
    user_id: int
    status: str
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None

    model_config = {"from_attributes": True}
