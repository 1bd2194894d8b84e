# backend/app/routers/group_courses.py
# DELETE = deactivate the course, cancel and refund its participants

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import GroupCourses as DBGroupCourse
from ..schemas.group_courses import (
    GroupBookingRequest,
    GroupCancelRequest,
    GroupCourseCreate,
    GroupCourseDeactivate,
    GroupCourseRead,
    GroupCourseUpdate,
    GroupReservationRead,
)
from ..services.clock import Clock, get_clock
from ..services.events import EventPublisher, get_event_publisher
from ..services.group_courses import GroupCourseService

router = APIRouter(prefix="/group-courses", tags=["group-courses"])


def get_group_course_service(
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
    clock: Clock = Depends(get_clock),
) -> GroupCourseService:
    return GroupCourseService(db, publisher=publisher, clock=clock)


def _read(service: GroupCourseService, course: DBGroupCourse) -> GroupCourseRead:
    return GroupCourseRead.model_validate(course).model_copy(
        update={"current_participants": service.participant_count(course.id)}
    )


@router.get("/", response_model=list[GroupCourseRead])
def list_group_courses(
    include_past: bool = False,
    include_inactive: bool = False,
    service: GroupCourseService = Depends(get_group_course_service),
):
    return [
        _read(service, course)
        for course in service.list_courses(include_past, include_inactive)
    ]


@router.get("/user/{user_id}", response_model=list[GroupReservationRead])
def list_user_group_bookings(
    user_id: int,
    service: GroupCourseService = Depends(get_group_course_service),
):
    return service.user_bookings(user_id)


@router.get("/{id}", response_model=GroupCourseRead)
def get_group_course(id: int, service: GroupCourseService = Depends(get_group_course_service)):
    return _read(service, service.get(id))


@router.get("/{id}/bookings", response_model=list[GroupReservationRead])
def list_group_course_bookings(
    id: int,
    service: GroupCourseService = Depends(get_group_course_service),
):
    return service.participants(id)


@router.post("/", response_model=GroupCourseRead, status_code=status.HTTP_201_CREATED)
def create_group_course(
    data: GroupCourseCreate,
    service: GroupCourseService = Depends(get_group_course_service),
):
    return _read(service, service.create(data.model_dump()))


@router.patch("/{id}", response_model=GroupCourseRead)
def update_group_course(
    id: int,
    data: GroupCourseUpdate,
    service: GroupCourseService = Depends(get_group_course_service),
):
    return _read(service, service.update(id, data.model_dump(exclude_unset=True)))


@router.delete("/{id}")
def deactivate_group_course(
    id: int,
    data: GroupCourseDeactivate | None = None,
    service: GroupCourseService = Depends(get_group_course_service),
):
    refund = data.refund_points if data else True
    return service.deactivate(id, refund_points=refund)


@router.post("/{id}/book", status_code=status.HTTP_201_CREATED)
def book_group_course(
    id: int,
    data: GroupBookingRequest,
    service: GroupCourseService = Depends(get_group_course_service),
):
    return service.book(id, data.user_id)


@router.post("/{id}/cancel")
def cancel_group_course_booking(
    id: int,
    data: GroupCancelRequest,
    service: GroupCourseService = Depends(get_group_course_service),
):
    return service.cancel(id, data.user_id, actor=data.actor)
