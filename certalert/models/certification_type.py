"""CertificationType model: reference data with per-tier alert switches."""
from sqlalchemy import Column, String, Boolean, DateTime
from datetime import datetime
from certalert.database import Base
from certalert.models.reminder import ReminderTier


class CertificationType(Base):
    """A kind of certificate (e.g., Working at Heights) and its alert settings."""

    __tablename__ = "certification_types"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, index=True)
    category = Column(String(100), nullable=False, default="safety")
    alert_at_60_days = Column(Boolean, nullable=False, default=True)
    alert_at_30_days = Column(Boolean, nullable=False, default=True)
    alert_at_7_days = Column(Boolean, nullable=False, default=True)
    alert_on_expiry = Column(Boolean, nullable=False, default=True)
    required_for_work = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<CertificationType(id={self.id}, code={self.code}, name={self.name})>"

    def alert_enabled(self, tier: ReminderTier) -> bool:
        """Whether this type sends reminders for the given tier.

        A switch left unset (None) counts as enabled.
        """
        flag = {
            ReminderTier.SIXTY_DAY: self.alert_at_60_days,
            ReminderTier.THIRTY_DAY: self.alert_at_30_days,
            ReminderTier.SEVEN_DAY: self.alert_at_7_days,
            ReminderTier.EXPIRED: self.alert_on_expiry,
        }[tier]
        return flag is not False

    def validate(self) -> None:
        """Validate certification type data."""
        if not self.id:
            raise ValueError("Certification type ID is required")
        if not self.name:
            raise ValueError("Certification type name is required")
        if not self.code:
            raise ValueError("Certification type code is required")
