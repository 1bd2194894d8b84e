# backend/app/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class SlotGenerateRequest(BaseModel):
    """Request body for POST /coaches/{coach_id}/slots/generate"""
    start_date: date
    end_date: Optional[date] = None  # Defaults to start_date
    start_time: time
    end_time: time
    session_types: list[str] = Field(default_factory=lambda: ["normal"], min_length=1)
    repeat_weeks: int = Field(0, ge=0, le=52)
    days_of_week: list[int] = Field(default_factory=list, description="0 = Monday ... 6 = Sunday, empty = every day")

    @field_validator("days_of_week")
    @classmethod
    def check_days_of_week(cls, value: list[int]) -> list[int]:
        if any(d < 0 or d > 6 for d in value):
            raise ValueError("days_of_week must contain values 0..6")
        return value


class SlotRead(BaseModel):
    id: int
    coach_id: int
    date: date
    start_time: time
    end_time: time
    session_type: str
    duration_minutes: int
    status: str
    is_free: bool
    is_derived: bool
    reservation_id: Optional[int] = None

    model_config = {"from_attributes": True}


class SlotAdminRead(SlotRead):
    """Admin view: every slot, with past flag and display status."""
    display_status: str
    is_past: bool


class SlotGenerateResponse(BaseModel):
    coach_id: int
    dates: list[date]
    created: list[SlotRead]
    skipped_existing: int


class SlotBulkDeleteRequest(BaseModel):
    slot_ids: list[int] = Field(..., min_length=1)


class SlotBulkDeleteItem(BaseModel):
    id: int
    reason: str


class SlotBulkDeleteResponse(BaseModel):
    deleted: list[int]
    skipped: list[SlotBulkDeleteItem]
    failed: list[SlotBulkDeleteItem]
    partial: bool


class SlotAvailabilityUpdate(BaseModel):
    """Request body for PATCH /slots/{slot_id}/availability"""
    is_available: bool
