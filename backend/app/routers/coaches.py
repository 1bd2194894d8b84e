# backend/app/routers/coaches.py
# PATCH = explicit CoachUpdate fields only, DELETE = soft-delete (is_active)

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import (
    Coaches as DBCoaches,
    Users as DBUsers,
)
from ..schemas.coaches import (
    CoachCreate,
    CoachUpdate,
    CoachRead,
)

router = APIRouter(prefix="/coaches", tags=["coaches"])


def _check_user(user_id: int | None, db: Session) -> None:
    if user_id is not None and not db.get(DBUsers, user_id):
        raise HTTPException(status_code=400, detail="User not found")


@router.get("/", response_model=list[CoachRead])
def list_coaches(db: Session = Depends(get_db)):
    return (
        db.query(DBCoaches)
        .filter(DBCoaches.is_active.is_(True))
        .order_by(DBCoaches.name)
        .all()
    )


@router.get("/{id}", response_model=CoachRead)
def get_coach(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBCoaches, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.post("/", response_model=CoachRead, status_code=status.HTTP_201_CREATED)
def create_coach(
    data: CoachCreate,
    db: Session = Depends(get_db),
):
    _check_user(data.user_id, db)

    obj = DBCoaches(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=CoachRead)
def update_coach(
    id: int,
    data: CoachUpdate,
    db: Session = Depends(get_db),
):
    obj = db.get(DBCoaches, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    patch = data.model_dump(exclude_unset=True)
    if "user_id" in patch:
        _check_user(patch["user_id"], db)

    for field, value in patch.items():
        setattr(obj, field, value)

    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_coach(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBCoaches, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    obj.is_active = False
    db.commit()
