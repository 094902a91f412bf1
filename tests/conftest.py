"""Shared test fixtures for the booking API tests."""

import os

# Configure before the application modules read the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from booking_app.auth import CurrentUser, UserRole  # noqa: E402
from booking_app.config import JWT_ALGORITHM, SECRET_KEY  # noqa: E402
from booking_app.database import Base, SessionLocal, engine  # noqa: E402
from booking_app.domain.sessions.events import (  # noqa: E402
    RefundEventPublisher,
    get_refund_publisher,
)
from booking_app.main import app  # noqa: E402
from booking_app.models import (  # noqa: E402
    ConsultationSession,
    Doctor,
    Patient,
    Period,
    PeriodStatus,
    SessionStatus,
)
from booking_app.shared.validators import utcnow  # noqa: E402

DOCTOR_USER_ID = "doctor-user-1"
PATIENT_USER_ID = "patient-user-1"


class FakeArqPool:
    """Stands in for an ArqRedis pool and records enqueued jobs."""

    def __init__(self):
        self.jobs = []
        self.closed = 0
        self.fail = False

    async def enqueue_job(self, function, *args, **kwargs):
        if self.fail:
            raise ConnectionError("Redis unavailable")
        self.jobs.append({"function": function, "args": args, "kwargs": kwargs})

    async def close(self):
        self.closed += 1


def make_token(user_id: str, role: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Sign an access token the way the identity service does."""
    payload = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=JWT_ALGORITHM)


def auth_headers(user_id: str, role: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


def future_slot(days: int = 3, hour: int = 10, minutes: int = 60) -> tuple[datetime, datetime]:
    """An aligned naive UTC slot a few days ahead."""
    start = (utcnow() + timedelta(days=days)).replace(hour=hour, minute=0, second=0, microsecond=0)
    return start, start + timedelta(minutes=minutes)


@pytest.fixture(autouse=True)
def booking_env(monkeypatch):
    """Fee and window settings used throughout the tests."""
    monkeypatch.setenv("PLATFORM_PERCENTAGE", "10")
    monkeypatch.setenv("COLLECTION_PERCENTAGE", "5")
    monkeypatch.setenv("DISBURSEMENT_PERCENTAGE", "5")
    monkeypatch.setenv("SESSION_PAYMENT_TIME_EXPIRE_IN_MINS", "15")
    monkeypatch.setenv("DOCTOR_CAN_CANCEL_BEFORE_TIME_IN_MINS", "60")
    monkeypatch.setenv("PATIENT_CAN_CANCEL_BEFORE_TIME_IN_MINS", "120")


@pytest.fixture
def db() -> Generator:
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def arq_pool() -> FakeArqPool:
    return FakeArqPool()


@pytest.fixture
def publisher(arq_pool) -> RefundEventPublisher:
    async def pool_factory():
        return arq_pool

    return RefundEventPublisher(pool_factory=pool_factory)


@pytest.fixture
def client(db, publisher) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_refund_publisher] = lambda: publisher
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def doctor(db) -> Doctor:
    doctor = Doctor(
        user_id=DOCTOR_USER_ID,
        name="Dr. Ngono",
        timezone="UTC",
        consultation_fee_per_hour=100,
        dont_book_me_before_in_mins=0,
    )
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


@pytest.fixture
def patient(db) -> Patient:
    patient = Patient(user_id=PATIENT_USER_ID, full_name="Awa Bello", email="awa@example.com")
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


@pytest.fixture
def make_period(db):
    """Factory inserting a period directly, bypassing the interval rules."""

    def _make(doctor: Doctor, start: datetime, end: datetime, status: str = PeriodStatus.AVAILABLE):
        period = Period(
            doctor_id=doctor.id,
            start_time=start,
            end_time=end,
            status=status,
            created_by=doctor.user_id,
        )
        db.add(period)
        db.commit()
        db.refresh(period)
        return period

    return _make


@pytest.fixture
def doctor_user() -> CurrentUser:
    return CurrentUser(id=DOCTOR_USER_ID, role=UserRole.DOCTOR)


@pytest.fixture
def patient_user() -> CurrentUser:
    return CurrentUser(id=PATIENT_USER_ID, role=UserRole.PATIENT)


@pytest.fixture
def doctor_headers() -> dict:
    return auth_headers(DOCTOR_USER_ID, UserRole.DOCTOR)


@pytest.fixture
def patient_headers() -> dict:
    return auth_headers(PATIENT_USER_ID, UserRole.PATIENT)


@pytest.fixture
def make_session(db):
    """Factory inserting a session for a period, marking the period occupied."""

    def _make(
        period: Period,
        patient: Patient,
        status: str = SessionStatus.CREATED,
        expires_at: datetime | None = None,
    ):
        session = ConsultationSession(
            period_id=period.id,
            patient_id=patient.id,
            doctor_id=period.doctor_id,
            total_price=121,
            doctor_price=100,
            platform_price=10,
            payment_api_price=11,
            original_fee_per_hour=100,
            platform_percentage=10,
            collection_percentage=5,
            disbursement_percentage=5,
            status=status,
            expires_at=expires_at or utcnow() + timedelta(minutes=15),
            paid_at=utcnow() if status in (SessionStatus.PAID, SessionStatus.COMPLETED) else None,
        )
        period.status = PeriodStatus.OCCUPIED
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    return _make
