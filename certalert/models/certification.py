"""Certification model: a worker's instance of a certification type."""
from sqlalchemy import Column, String, Date, DateTime, Enum, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, date
import enum
from certalert.database import Base
from certalert.models.reminder import ReminderTier


class CertificationStatus(str, enum.Enum):
    """Certification status enumeration."""
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"
    PENDING_VERIFICATION = "pending_verification"


# Per-tier "already notified" column names
ALERT_FLAG_COLUMNS = {
    ReminderTier.SIXTY_DAY: "alert_60_sent",
    ReminderTier.THIRTY_DAY: "alert_30_sent",
    ReminderTier.SEVEN_DAY: "alert_7_sent",
    ReminderTier.EXPIRED: "alert_expired_sent",
}


class Certification(Base):
    """Certification model representing a certificate held by a worker."""

    __tablename__ = "certifications"

    id = Column(String(36), primary_key=True)
    worker_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    certification_type_id = Column(String(36), ForeignKey("certification_types.id"), nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    certificate_number = Column(String(100), nullable=True)
    issue_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True, index=True)
    status = Column(Enum(CertificationStatus), nullable=False, default=CertificationStatus.ACTIVE, index=True)
    alert_60_sent = Column(Boolean, nullable=False, default=False)
    alert_30_sent = Column(Boolean, nullable=False, default=False)
    alert_7_sent = Column(Boolean, nullable=False, default=False)
    alert_expired_sent = Column(Boolean, nullable=False, default=False)
    last_alert_sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    worker = relationship("User", back_populates="certifications")
    certification_type = relationship("CertificationType")
    company = relationship("Company", back_populates="certifications")
    reminders = relationship("Reminder", back_populates="certification")

    def __repr__(self) -> str:
        return f"<Certification(id={self.id}, worker_id={self.worker_id}, expiry={self.expiry_date}, status={self.status})>"

    def alert_sent(self, tier: ReminderTier) -> bool:
        """Whether the given tier has already been notified."""
        return bool(getattr(self, ALERT_FLAG_COLUMNS[tier]))

    def mark_alert_sent(self, tier: ReminderTier, sent_at: datetime = None) -> None:
        """Set the tier's notified flag. Flags are never cleared here."""
        setattr(self, ALERT_FLAG_COLUMNS[tier], True)
        self.last_alert_sent_at = sent_at or datetime.utcnow()

    def validate(self) -> None:
        """Validate certification data."""
        if not self.id:
            raise ValueError("Certification ID is required")
        if not self.worker_id:
            raise ValueError("Worker ID is required")
        if not self.certification_type_id:
            raise ValueError("Certification type ID is required")
        if not self.company_id:
            raise ValueError("Company ID is required")
        if self.expiry_date is not None and not isinstance(self.expiry_date, date):
            raise ValueError("Expiry date must be a date object")
        if self.issue_date and self.expiry_date and self.expiry_date < self.issue_date:
            raise ValueError("Expiry date must not be before issue date")
