"""NotificationLog model: append-only audit trail of delivery attempts."""
from sqlalchemy import Column, String, DateTime, Text, event
from datetime import datetime
from certalert.database import Base


class NotificationLog(Base):
    """One row per delivery attempt. Rows are never updated."""

    __tablename__ = "notification_logs"

    id = Column(String(36), primary_key=True)
    # Free text: manual sends carry a synthesized "manual-..." id
    reminder_id = Column(String(64), nullable=True, index=True)
    certification_id = Column(String(36), nullable=True, index=True)
    worker_id = Column(String(36), nullable=True)
    company_id = Column(String(36), nullable=True, index=True)
    tier = Column(String(20), nullable=False)
    recipients = Column(Text, nullable=False, default="")
    subject = Column(String(500), nullable=False, default="")
    delivery_status = Column(String(20), nullable=False, default="sent")
    error_message = Column(Text, nullable=True)
    provider = Column(String(50), nullable=True)
    sent_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self) -> str:
        return f"<NotificationLog(id={self.id}, reminder_id={self.reminder_id}, status={self.delivery_status})>"

    @property
    def recipient_list(self):
        return [r.strip() for r in (self.recipients or "").split(",") if r.strip()]


@event.listens_for(NotificationLog, "before_update")
def _reject_log_updates(mapper, connection, target):
    raise ValueError("Notification log entries are append-only")
