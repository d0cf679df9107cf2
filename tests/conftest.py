"""Pytest configuration and fixtures for tests."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from datetime import date, datetime, timedelta
from typing import Generator, List, Optional
from contextlib import contextmanager
import uuid

from certalert.database import Base, enable_sqlite_savepoints
from certalert.exceptions import TransportError
from certalert.models.company import Company
from certalert.models.user import User, UserRole
from certalert.models.certification_type import CertificationType
from certalert.models.certification import Certification, CertificationStatus
from certalert.services.transport import NotificationTransport, OutboundMessage, TransportReceipt


def _create_test_engine():
    # One shared connection so TestClient worker threads see the same database
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    return enable_sqlite_savepoints(engine)


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a test database session for each test.
    Uses an in-memory SQLite database for fast testing.
    """
    engine = _create_test_engine()

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@contextmanager
def get_test_db_session():
    """
    Context manager for creating test database sessions.
    Used for property-based tests where fixtures don't work well.
    """
    engine = _create_test_engine()
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


class RecordingTransport(NotificationTransport):
    """In-memory transport that records messages and can be told to fail."""

    name = "recording"

    def __init__(self, fail_for: Optional[List[str]] = None, error: Exception = None):
        self.sent: List[OutboundMessage] = []
        self.fail_for = set(fail_for or [])
        self.error = error

    def send(self, message: OutboundMessage) -> TransportReceipt:
        if self.error is not None:
            raise self.error
        if self.fail_for.intersection(message.recipients):
            raise TransportError(self.name, "recipient rejected", status_code=422)
        self.sent.append(message)
        return TransportReceipt(provider=self.name, message_id=f"msg-{len(self.sent)}",
                                accepted=list(message.recipients))


def make_company(db: Session, name: str = "Acme Construction", domain: Optional[str] = "acme.test", **kwargs) -> Company:
    company = Company(
        id=str(uuid.uuid4()),
        name=name,
        domain=domain,
        phone=kwargs.pop("phone", "555-0100"),
        safety_manager_name=kwargs.pop("safety_manager_name", "Dana Reyes"),
        safety_manager_email=kwargs.pop("safety_manager_email", "dana@acme.test"),
        **kwargs
    )
    db.add(company)
    db.commit()
    return company


def make_user(
    db: Session,
    company: Company,
    role: UserRole = UserRole.WORKER,
    email: Optional[str] = None,
    first_name: str = "Sam",
    created_offset_minutes: int = 0,
    **kwargs
) -> User:
    if email is None:
        email = f"{role.value}-{uuid.uuid4().hex[:8]}@acme.test"
    user = User(
        id=str(uuid.uuid4()),
        company_id=company.id,
        email=email,
        first_name=first_name,
        last_name=kwargs.pop("last_name", "Lee"),
        role=role,
        is_active=kwargs.pop("is_active", True),
        created_at=datetime(2024, 1, 1, 8, 0) + timedelta(minutes=created_offset_minutes),
        **kwargs
    )
    db.add(user)
    db.commit()
    return user


def make_cert_type(db: Session, name: str = "Working at Heights", code: str = "WAH", **flags) -> CertificationType:
    cert_type = CertificationType(
        id=str(uuid.uuid4()),
        name=name,
        code=code,
        alert_at_60_days=flags.get("alert_at_60_days", True),
        alert_at_30_days=flags.get("alert_at_30_days", True),
        alert_at_7_days=flags.get("alert_at_7_days", True),
        alert_on_expiry=flags.get("alert_on_expiry", True),
    )
    db.add(cert_type)
    db.commit()
    return cert_type


def make_certification(
    db: Session,
    worker: User,
    cert_type: CertificationType,
    expiry_date: Optional[date],
    status: CertificationStatus = CertificationStatus.ACTIVE,
    **flags
) -> Certification:
    certification = Certification(
        id=str(uuid.uuid4()),
        worker_id=worker.id,
        certification_type_id=cert_type.id,
        company_id=worker.company_id,
        certificate_number=flags.pop("certificate_number", "WAH-0042"),
        expiry_date=expiry_date,
        status=status,
        alert_60_sent=flags.get("alert_60_sent", False),
        alert_30_sent=flags.get("alert_30_sent", False),
        alert_7_sent=flags.get("alert_7_sent", False),
        alert_expired_sent=flags.get("alert_expired_sent", False),
    )
    db.add(certification)
    db.commit()
    return certification


def make_staffed_company(db: Session):
    """Company with one worker, supervisor, admin and internal auditor."""
    company = make_company(db)
    worker = make_user(db, company, UserRole.WORKER, email="worker@acme.test", first_name="Sam")
    supervisor = make_user(db, company, UserRole.SUPERVISOR, email="super@acme.test", first_name="Pat")
    admin = make_user(db, company, UserRole.ADMIN, email="admin@acme.test", first_name="Dana")
    auditor = make_user(db, company, UserRole.INTERNAL_AUDITOR, email="audit@acme.test", first_name="Ira")
    return company, worker, supervisor, admin, auditor


@pytest.fixture
def staffed_company(test_db: Session):
    """Company, worker, supervisor, admin and auditor."""
    return make_staffed_company(test_db)


@pytest.fixture
def cert_type(test_db: Session) -> CertificationType:
    """Certification type with every tier enabled."""
    return make_cert_type(test_db)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()
