# backend/app/schemas/coaches.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class CoachCreate(BaseModel):
    name: str
    specialty: str
    user_id: Optional[int] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    photo: Optional[str] = None

    model_config = {"from_attributes": True}


class CoachUpdate(BaseModel):
    is_active: Optional[bool] = None
    name: Optional[str] = None
    specialty: Optional[str] = None
    user_id: Optional[int] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    photo: Optional[str] = None

    model_config = {"from_attributes": True}


class CoachRead(BaseModel):
    id: int
    name: str
    specialty: str
    user_id: Optional[int] = None
    bio: Optional[str] = None
    email: Optional[str] = None
    photo: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
