"""Business logic services package."""
from certalert.services.threshold_service import classify_expiry, days_until_expiry
from certalert.services.reminder_service import ReminderService
from certalert.services.recipient_service import RecipientDirectory, RecipientResolver
from certalert.services.template_service import TemplateRenderer, RenderedNotification
from certalert.services.transport import (
    NotificationTransport,
    LogOnlyTransport,
    ResendTransport,
    SendGridTransport,
    build_transport
)
from certalert.services.dispatch_service import DeliveryDispatcher
from certalert.services.sweep_service import ExpiredCertificationSweep
from certalert.services.expiry_check_service import ExpiryCheckService, RunResult

__all__ = [
    "classify_expiry",
    "days_until_expiry",
    "ReminderService",
    "RecipientDirectory",
    "RecipientResolver",
    "TemplateRenderer",
    "RenderedNotification",
    "NotificationTransport",
    "LogOnlyTransport",
    "ResendTransport",
    "SendGridTransport",
    "build_transport",
    "DeliveryDispatcher",
    "ExpiredCertificationSweep",
    "ExpiryCheckService",
    "RunResult",
]
