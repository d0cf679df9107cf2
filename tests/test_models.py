"""Tests for database models and store-level invariants."""
import pytest
from datetime import date, datetime
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import uuid

from certalert.models.reminder import Reminder, ReminderTier, ReminderStatus
from certalert.models.notification_log import NotificationLog
from certalert.models.certification_type import CertificationType
from tests.conftest import make_certification


def _reminder(certification, tier=ReminderTier.SEVEN_DAY) -> Reminder:
    return Reminder(
        id=str(uuid.uuid4()),
        certification_id=certification.id,
        company_id=certification.company_id,
        tier=tier,
        scheduled_date=date(2024, 3, 4),
        status=ReminderStatus.PENDING,
    )


def test_duplicate_reminder_for_same_tier_is_rejected(test_db: Session, staffed_company, cert_type):
    """The store refuses a second reminder for one certification and tier."""
    _, worker, *_ = staffed_company
    certification = make_certification(test_db, worker, cert_type, date(2024, 3, 10))

    test_db.add(_reminder(certification))
    test_db.commit()

    test_db.add(_reminder(certification))
    with pytest.raises(IntegrityError):
        test_db.commit()
    test_db.rollback()


def test_same_certification_may_have_one_reminder_per_tier(test_db: Session, staffed_company, cert_type):
    _, worker, *_ = staffed_company
    certification = make_certification(test_db, worker, cert_type, date(2024, 3, 10))

    for tier in ReminderTier:
        test_db.add(_reminder(certification, tier))
    test_db.commit()

    assert test_db.query(Reminder).filter(Reminder.certification_id == certification.id).count() == 4


def test_notification_log_rejects_updates(test_db: Session):
    """Audit entries are append-only."""
    entry = NotificationLog(
        id=str(uuid.uuid4()),
        reminder_id="r-1",
        tier="7_day",
        recipients="a@x.test, b@x.test",
        subject="URGENT",
        delivery_status="sent",
        sent_at=datetime(2024, 3, 4, 6, 0),
    )
    test_db.add(entry)
    test_db.commit()

    assert entry.recipient_list == ["a@x.test", "b@x.test"]

    entry.delivery_status = "failed"
    with pytest.raises(ValueError, match="append-only"):
        test_db.commit()
    test_db.rollback()


def test_certification_flags_are_set_per_tier(test_db: Session, staffed_company, cert_type):
    _, worker, *_ = staffed_company
    certification = make_certification(test_db, worker, cert_type, date(2024, 3, 10))
    sent_at = datetime(2024, 3, 4, 6, 0)

    certification.mark_alert_sent(ReminderTier.THIRTY_DAY, sent_at)

    assert certification.alert_30_sent is True
    assert certification.alert_sent(ReminderTier.THIRTY_DAY)
    assert not certification.alert_sent(ReminderTier.SEVEN_DAY)
    assert certification.last_alert_sent_at == sent_at


def test_certification_type_unset_flag_counts_as_enabled():
    cert_type = CertificationType(alert_at_60_days=None, alert_at_30_days=False)
    assert cert_type.alert_enabled(ReminderTier.SIXTY_DAY)
    assert not cert_type.alert_enabled(ReminderTier.THIRTY_DAY)


def test_certification_validate_rejects_expiry_before_issue(test_db: Session, staffed_company, cert_type):
    _, worker, *_ = staffed_company
    certification = make_certification(test_db, worker, cert_type, date(2024, 3, 10))
    certification.issue_date = date(2025, 1, 1)

    with pytest.raises(ValueError, match="before issue date"):
        certification.validate()
