"""Database models package."""
from certalert.models.company import Company
from certalert.models.user import User, UserRole
from certalert.models.reminder import Reminder, ReminderTier, ReminderStatus
from certalert.models.certification_type import CertificationType
from certalert.models.certification import Certification, CertificationStatus, ALERT_FLAG_COLUMNS
from certalert.models.notification_log import NotificationLog

__all__ = [
    "Company",
    "User",
    "UserRole",
    "CertificationType",
    "Certification",
    "CertificationStatus",
    "ALERT_FLAG_COLUMNS",
    "Reminder",
    "ReminderTier",
    "ReminderStatus",
    "NotificationLog",
]
