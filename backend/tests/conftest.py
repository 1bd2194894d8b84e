# backend/tests/conftest.py
"""
Shared fixtures.

Everything runs against an in-memory SQLite database. The app and the test
share one session so that assertions see exactly what the endpoints wrote.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EVENTS_ENABLED", "false")

from datetime import date, datetime, time  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import configure_sqlite, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.generated import Base, Coaches, TimeSlots, Users  # noqa: E402
from app.services.clock import get_clock  # noqa: E402
from app.services.events import RecordingEventPublisher, get_event_publisher  # noqa: E402
from app.services.reservations import ReservationManager, ReservationRequest  # noqa: E402
from app.services.slots import SlotStore, generate_slots  # noqa: E402

COACH_ID = 24
SCENARIO_DATE = date(2025, 7, 23)
FIXED_NOW = datetime(2025, 7, 20, 12, 0)


class FixedClock:
    """Clock whose time tests can move."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def publisher():
    return RecordingEventPublisher()


@pytest.fixture
def coach(db):
    coach = Coaches(id=COACH_ID, name="Julie Martin", specialty="Pilates", email="julie@example.com")
    db.add(coach)
    db.commit()
    return coach


@pytest.fixture
def client_user(db):
    user = Users(
        username="alice",
        email="alice@example.com",
        full_name="Alice Durand",
        phone="+33600000001",
        solo_points=5,
        team_points=2,
        points=7,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def broke_user(db):
    user = Users(username="bob", email="bob@example.com", full_name="Bob Petit", phone="+33600000002")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def scenario_slots(db, coach):
    """Coach 24 on 2025-07-23, window 07:00-11:00, normal + bilan."""
    store = SlotStore(db)
    for candidate in generate_slots(SCENARIO_DATE, time(7, 0), time(11, 0), ["normal", "bilan"], FIXED_NOW):
        store.insert_if_absent(COACH_ID, candidate)
    db.commit()
    return db.query(TimeSlots).filter(TimeSlots.coach_id == COACH_ID).all()


@pytest.fixture
def manager(db, publisher, clock):
    return ReservationManager(db, publisher=publisher, clock=clock)


@pytest.fixture
def book(manager):
    """Book a scenario slot: book("08:30", "normal", user_id=...)."""

    def _book(start: str, session_type: str = "normal", user_id: int | None = None, **extra):
        hour, minute = (int(p) for p in start.split(":"))
        if user_id is None and "full_name" not in extra:
            extra.update(full_name="Guest", email="guest@example.com", phone="+33600000000")
        return manager.create(ReservationRequest(
            coach_id=COACH_ID,
            date=SCENARIO_DATE,
            time=time(hour, minute),
            session_type=session_type,
            user_id=user_id,
            **extra,
        ))

    return _book


def slot_status(db, start: str, session_type: str) -> str:
    hour, minute = (int(p) for p in start.split(":"))
    slot = (
        db.query(TimeSlots)
        .filter(
            TimeSlots.coach_id == COACH_ID,
            TimeSlots.date == SCENARIO_DATE,
            TimeSlots.start_time == time(hour, minute),
            TimeSlots.session_type == session_type,
        )
        .one()
    )
    db.refresh(slot)
    return slot.status


@pytest.fixture
def api(db, clock, publisher):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_event_publisher] = lambda: publisher

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def status_of(db):
    """status_of("08:30", "bilan") -> current status of that scenario slot."""
    return lambda start, session_type: slot_status(db, start, session_type)
