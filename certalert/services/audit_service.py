"""Audit log sink for notification attempts."""
from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import uuid
import logging

from certalert.models.notification_log import NotificationLog


logger = logging.getLogger(__name__)


class AuditLogSink:
    """Appends NotificationLog rows. A failed write is logged and swallowed."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        reminder_id: Optional[str],
        tier: str,
        recipients: Iterable[str],
        subject: str,
        delivery_status: str,
        certification_id: Optional[str] = None,
        worker_id: Optional[str] = None,
        company_id: Optional[str] = None,
        error_message: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> Optional[NotificationLog]:
        """Write one audit entry inside a SAVEPOINT.

        Returns:
            The new entry, or None if it could not be written
        """
        entry = NotificationLog(
            id=str(uuid.uuid4()),
            reminder_id=reminder_id,
            certification_id=certification_id,
            worker_id=worker_id,
            company_id=company_id,
            tier=tier,
            recipients=", ".join(recipients),
            subject=subject or "",
            delivery_status=delivery_status,
            error_message=error_message,
            provider=provider,
            sent_at=datetime.utcnow(),
        )

        try:
            with self.db.begin_nested():
                self.db.add(entry)
        except SQLAlchemyError as e:
            logger.error(f"Failed to log notification for reminder {reminder_id}: {str(e)}")
            return None

        return entry

    def list_logs(self, company_id: Optional[str] = None, limit: int = 100) -> List[NotificationLog]:
        """Most recent audit entries first."""
        query = self.db.query(NotificationLog)
        if company_id is not None:
            query = query.filter(NotificationLog.company_id == company_id)
        return query.order_by(NotificationLog.sent_at.desc()).limit(limit).all()
