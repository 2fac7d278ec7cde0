from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scheduler.clock import FixedClock
from vetclinic import main
from vetclinic.config import Settings
from vetclinic.database import Base, get_db
from vetclinic.models import Appointment, Pet, User
from vetclinic.service import AppointmentService
from vetclinic.store import SqlAppointmentStore, SqlDirectory

# 2025-05-31 08:00 UTC: the day before the scenarios in the tests.
NOW = datetime(2025, 5, 31, 8, 0, tzinfo=timezone.utc)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def request(**overrides):
    """A booking request for Biscuit with vet-1 on 2025-06-01 10:00 UTC."""
    fields = dict(
        pet_id="pet-1",
        veterinarian_id="vet-1",
        date_time=utc(2025, 6, 1, 10, 0),
        type="checkup",
        reason="  Limping on the left paw ",
        notes=None,
        duration=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, user_id, type, title, message, data):
        self.sent.append(dict(user_id=user_id, type=type, title=title, message=message, data=data))


class FailingNotifier:
    def notify(self, *args, **kwargs):
        raise RuntimeError("mail server down")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def people(db):
    owner = User(id="owner-1", role="pet_owner", first_name="Olivia", last_name="Reyes",
                 email="olivia@example.com", api_token="owner-token")
    other_owner = User(id="owner-2", role="pet_owner", first_name="Noah", last_name="Kim",
                       email="noah@example.com", api_token="other-token")
    vet = User(id="vet-1", role="veterinarian", first_name="Sam", last_name="Pawson",
               email="pawson@example.com", vet_application_status="approved", api_token="vet-token")
    pending_vet = User(id="vet-2", role="veterinarian", first_name="Ada", last_name="Whisker",
                       vet_application_status="pending", api_token="pending-vet-token")
    pet = Pet(id="pet-1", owner_id="owner-1", name="Biscuit", species="dog", breed="beagle")
    db.add_all([owner, other_owner, vet, pending_vet, pet])
    db.commit()
    return {"owner": owner, "other_owner": other_owner, "vet": vet, "pending_vet": pending_vet, "pet": pet}


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(db, clock, notifier, people):
    return AppointmentService(
        store=SqlAppointmentStore(db),
        directory=SqlDirectory(db),
        notifier=notifier,
        clock=clock,
        settings=Settings(),
    )


@pytest.fixture
def add_appointment(db):
    """Insert an appointment row directly, bypassing booking rules."""

    def _add(start, duration=30, status="pending", id=None, vet_id="vet-1"):
        extra = {"id": id} if id else {}
        appt = Appointment(
            **extra,
            owner_id="owner-1",
            pet_id="pet-1",
            veterinarian_id=vet_id,
            type="checkup",
            start_time=start,
            end_time=start + timedelta(minutes=duration),
            duration_minutes=duration,
            status=status,
            reason="Annual checkup",
            created_at=NOW,
            updated_at=NOW,
        )
        db.add(appt)
        db.commit()
        return appt

    return _add


@pytest.fixture
def client(engine, clock, people):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    main.app.dependency_overrides[get_db] = override_get_db
    main.app.dependency_overrides[main.get_clock] = lambda: clock
    main.app.dependency_overrides[main.get_settings] = lambda: Settings()
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}
