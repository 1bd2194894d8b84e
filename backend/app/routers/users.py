# backend/app/routers/users.py
# Point balances are read-only here: they change through /points and bookings.
# DELETE = soft-delete (is_active)

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import Users as DBUsers
from ..schemas.reservations import ReservationRead
from ..schemas.users import (
    UserCreate,
    UserUpdate,
    UserRead,
)
from ..services.reservations import ReservationManager

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_or_404(user_id: int, db: Session) -> DBUsers:
    user = db.get(DBUsers, user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return user


def _commit_profile(db: Session, user: DBUsers) -> DBUsers:
    # username and email are unique
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Username or email already in use")
    db.refresh(user)
    return user


@router.get("/", response_model=list[UserRead])
def list_users(
    role: Optional[Literal["client", "coach", "admin"]] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    query = db.query(DBUsers)
    if not include_inactive:
        query = query.filter(DBUsers.is_active.is_(True))
    if role is not None:
        query = query.filter(DBUsers.role == role)
    return query.order_by(DBUsers.id).all()


@router.get("/{id}", response_model=UserRead)
def get_user(id: int, db: Session = Depends(get_db)):
    return _get_user_or_404(id, db)


@router.get("/{id}/reservations", response_model=list[ReservationRead])
def list_user_reservations(
    id: int,
    status: Optional[Literal["confirmed", "cancelled"]] = None,
    db: Session = Depends(get_db),
):
    """Individual reservations of one client, oldest session first."""
    _get_user_or_404(id, db)
    return ReservationManager(db).find(user_id=id, status=status)


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(data: UserCreate, db: Session = Depends(get_db)):
    user = DBUsers(**data.model_dump())
    db.add(user)
    return _commit_profile(db, user)


@router.patch("/{id}", response_model=UserRead)
def update_user(id: int, data: UserUpdate, db: Session = Depends(get_db)):
    user = _get_user_or_404(id, db)
    for name, value in data.model_dump(exclude_unset=True).items():
        setattr(user, name, value)
    return _commit_profile(db, user)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(id: int, db: Session = Depends(get_db)):
    user = _get_user_or_404(id, db)
    user.is_active = False
    db.commit()
