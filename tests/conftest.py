"""
Pytest Fixtures für die Tischbuchung.

Jeder Test bekommt eine frische SQLite-In-Memory-Datenbank und eine
stehende Uhr (FixedClock), damit Zeitgrenzen exakt testbar sind.
"""
import os
import tempfile

# Settings werden beim Import gelesen, deshalb vor allen tischbuchung-Imports setzen
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "tischbuchung-test-logs"))

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from uuid import uuid4

from tischbuchung.main import app
from tischbuchung.database import Base, get_db
from tischbuchung.dependencies import build_reservation_service, build_table_service, get_clock
from tischbuchung.models import User, Venue, Membership, MembershipRole, MembershipStatus, VenueTable, TableStatus
from tischbuchung.schemas.reservation import ReservationCreate
from tischbuchung.services.clock import FixedClock
from tischbuchung.utils.security import create_access_token


# ============ DATENBANK SETUP ============

# Eine Verbindung für alle Threads, sonst sieht der TestClient eine leere DB
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Samstag, 14.03.2026 18:00 UTC
NOW = datetime(2026, 3, 14, 18, 0, tzinfo=timezone.utc)


# ============ BASIS FIXTURES ============

@pytest.fixture(scope="function")
def db():
    """Frische Datenbank für jeden Test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    """Stehende Uhr, Tests verstellen sie mit set() / advance()"""
    return FixedClock(NOW)


@pytest.fixture(scope="function")
def client(db, clock):
    """
    FastAPI TestClient mit Test-DB und Test-Uhr.
    Der Hintergrund-Scheduler ist über SCHEDULER_ENABLED=false aus.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============ STAMMDATEN FIXTURES ============

@pytest.fixture
def venue(db):
    """Erstellt Test-Lokal"""
    v = Venue(id=uuid4(), name="Zur Linde")
    db.add(v)
    db.commit()
    db.refresh(v)
    return v


@pytest.fixture
def other_venue(db):
    """Zweites Lokal, auf das die Test-User keinen Zugriff haben"""
    v = Venue(id=uuid4(), name="Goldener Hirsch")
    db.add(v)
    db.commit()
    db.refresh(v)
    return v


def _member(db, venue, name, email, role, status=MembershipStatus.ACTIVE):
    user = User(id=uuid4(), name=name, email=email)
    db.add(user)
    db.flush()
    db.add(Membership(venue_id=venue.id, user_id=user.id, role=role, status=status))
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def owner_user(db, venue):
    """Inhaber des Test-Lokals"""
    return _member(db, venue, "Test Inhaber", "inhaber@test.com", MembershipRole.OWNER)


@pytest.fixture
def employee_user(db, venue):
    """Mitarbeiter (Service) des Test-Lokals"""
    return _member(db, venue, "Test Service", "service@test.com", MembershipRole.EMPLOYEE)


@pytest.fixture
def inactive_user(db, venue):
    """Mitgliedschaft noch nicht bestätigt"""
    return _member(db, venue, "Test Neu", "neu@test.com", MembershipRole.EMPLOYEE, MembershipStatus.PENDING)


@pytest.fixture
def outsider_user(db):
    """User ohne Mitgliedschaft"""
    user = User(id=uuid4(), name="Test Fremd", email="fremd@test.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _table(db, venue, code, capacity, status=TableStatus.FREE):
    table = VenueTable(id=uuid4(), venue_id=venue.id, code=code, capacity=capacity, sector="Innen", status=status)
    db.add(table)
    db.commit()
    db.refresh(table)
    return table


@pytest.fixture
def table_t1(db, venue):
    """Tisch T1 für 4 Personen"""
    return _table(db, venue, "T1", 4)


@pytest.fixture
def table_t2(db, venue):
    """Tisch T2 für 2 Personen"""
    return _table(db, venue, "T2", 2)


@pytest.fixture
def foreign_table(db, other_venue):
    """Tisch eines anderen Lokals"""
    return _table(db, other_venue, "X1", 6)


# ============ SERVICE FIXTURES ============

@pytest.fixture
def reservation_service(db, clock):
    return build_reservation_service(db, clock)


@pytest.fixture
def table_service(db, clock):
    return build_table_service(db, clock)


@pytest.fixture
def make_request():
    """Baut einen ReservationCreate, Zeiten relativ zu NOW in Minuten"""
    def _make(tables, start_in=60, duration=120, party_size=2, **kwargs):
        start = NOW + timedelta(minutes=start_in)
        data = dict(
            customer_name="Familie Huber",
            customer_contact="+49 171 1234567",
            customer_document="HUB-001",
            start_time=start,
            end_time=start + timedelta(minutes=duration),
            party_size=party_size,
            table_ids=[t.id for t in tables],
        )
        data.update(kwargs)
        return ReservationCreate(**data)
    return _make


# ============ AUTH TOKEN FIXTURES ============

@pytest.fixture
def owner_token(owner_user):
    return create_access_token({"sub": owner_user.email})


@pytest.fixture
def employee_token(employee_user):
    return create_access_token({"sub": employee_user.email})


@pytest.fixture
def outsider_token(outsider_user):
    return create_access_token({"sub": outsider_user.email})


# ============ HELPER FUNKTIONEN ============

def auth_header(token: str) -> dict:
    """Erstellt Authorization Header"""
    return {"Authorization": f"Bearer {token}"}
