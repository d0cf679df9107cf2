"""Expired-certification sweep: status transition for certificates expiring today."""
from datetime import date, datetime
from typing import List
from sqlalchemy.orm import Session
import logging

from certalert.exceptions import NotificationError
from certalert.models.certification import Certification, CertificationStatus
from certalert.models.reminder import ReminderTier
from certalert.services.dispatch_service import DeliveryDispatcher
from certalert.services.reminder_service import ReminderService


logger = logging.getLogger(__name__)


class ExpiredCertificationSweep:
    """Marks certifications expiring today as expired and sends the expiry notice.

    The status transition happens for every active certification whose
    expiry date is today. An expired-tier reminder is created and delivered
    only if none exists yet for the certification and its type enables
    on-expiry alerts. A second sweep on the same day finds nothing to do.
    """

    def __init__(self, db: Session, dispatcher: DeliveryDispatcher, reminder_service: ReminderService = None):
        self.db = db
        self.dispatcher = dispatcher
        self.reminder_service = reminder_service or ReminderService(db)

    def get_expiring_today(self, current_date: date) -> List[Certification]:
        return self.db.query(Certification).filter(
            Certification.status == CertificationStatus.ACTIVE,
            Certification.expiry_date == current_date
        ).order_by(Certification.id.asc()).all()

    def run(self, result, current_date: date = None) -> None:
        """Process certifications expiring today, merging counts into result.

        Args:
            result: RunResult accumulating created/sent/failed counts
            current_date: The current date (defaults to today)
        """
        if current_date is None:
            current_date = date.today()

        certifications = self.get_expiring_today(current_date)
        logger.info(f"Expired sweep found {len(certifications)} certifications expiring {current_date.isoformat()}")

        for certification in certifications:
            try:
                self._process(certification, result, current_date)
            except NotificationError as e:
                result.record_failure(f"Expired cert {certification.id}: {e.message}")
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to process expired cert {certification.id}: {str(e)}", exc_info=True)
                result.record_failure(f"Expired cert {certification.id}: {str(e)}")

    def _process(self, certification: Certification, result, current_date: date) -> None:
        already_reminded = self.reminder_service.reminder_exists(certification.id, ReminderTier.EXPIRED)
        cert_type = certification.certification_type
        alerts_enabled = cert_type is None or cert_type.alert_enabled(ReminderTier.EXPIRED)

        reminder = None
        if not already_reminded and alerts_enabled:
            reminder = self.reminder_service.create_reminder(
                certification, ReminderTier.EXPIRED, current_date
            )

        certification.status = CertificationStatus.EXPIRED
        certification.updated_at = datetime.utcnow()
        self.db.commit()
        logger.info(f"Certification {certification.id} marked expired")

        if reminder is None:
            return

        result.reminders_created += 1
        if not self.reminder_service.claim_reminder(reminder.id):
            logger.info(f"Expired reminder {reminder.id} already claimed by another run")
            return

        self.dispatcher.dispatch(reminder, current_date)
        result.emails_sent += 1
