"""Reminder model: one scheduled notification per certification and tier."""
from sqlalchemy import (
    Column, String, Integer, Date, DateTime, Enum, Text, Boolean,
    ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from certalert.database import Base


class ReminderTier(str, enum.Enum):
    """Alert tiers in increasing urgency."""
    SIXTY_DAY = "60_day"
    THIRTY_DAY = "30_day"
    SEVEN_DAY = "7_day"
    EXPIRED = "expired"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)


_TIER_ORDER = [
    ReminderTier.SIXTY_DAY,
    ReminderTier.THIRTY_DAY,
    ReminderTier.SEVEN_DAY,
    ReminderTier.EXPIRED,
]


class ReminderStatus(str, enum.Enum):
    """Reminder status enumeration."""
    PENDING = "pending"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


class Reminder(Base):
    """Reminder model for certification expiry notifications."""

    __tablename__ = "certification_reminders"

    id = Column(String(36), primary_key=True)
    certification_id = Column(String(36), ForeignKey("certifications.id"), nullable=False, index=True)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    tier = Column(Enum(ReminderTier), nullable=False)
    scheduled_date = Column(Date, nullable=False, index=True)
    status = Column(Enum(ReminderStatus), nullable=False, default=ReminderStatus.PENDING, index=True)
    claimed_at = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    send_attempts = Column(Integer, nullable=False, default=0)
    acknowledged = Column(Boolean, nullable=False, default=False)
    acknowledged_at = Column(DateTime, nullable=True)
    acknowledged_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Unique constraint: one reminder per certification per tier
    __table_args__ = (
        UniqueConstraint('certification_id', 'tier', name='uq_reminder_certification_tier'),
    )

    # Relationships
    certification = relationship("Certification", back_populates="reminders")

    def __repr__(self) -> str:
        return f"<Reminder(id={self.id}, certification_id={self.certification_id}, tier={self.tier}, status={self.status})>"

    def validate(self) -> None:
        """Validate reminder data."""
        if not self.id:
            raise ValueError("Reminder ID is required")
        if not self.certification_id:
            raise ValueError("Certification ID is required")
        if not self.company_id:
            raise ValueError("Company ID is required")
        if not self.tier:
            raise ValueError("Tier is required")
        if not self.scheduled_date:
            raise ValueError("Scheduled date is required")
        if self.status == ReminderStatus.SENT and not self.sent_at:
            raise ValueError("Sent reminders must have a sent_at timestamp")
