"""Delivery dispatcher: resolves, renders and sends one reminder."""
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import date, datetime
from email.utils import formataddr
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from certalert.config import settings as default_settings
from certalert.exceptions import MissingDataError, NotificationError, TransportError
from certalert.models.certification import Certification
from certalert.models.company import Company
from certalert.models.reminder import Reminder, ReminderTier, ReminderStatus
from certalert.models.user import User
from certalert.services.audit_service import AuditLogSink
from certalert.services.recipient_service import RecipientResolver
from certalert.services.template_service import TemplateRenderer, build_context
from certalert.services.tier_policy import parse_tier
from certalert.services.transport import NotificationTransport, OutboundMessage, TransportReceipt


# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of a successful delivery."""
    reminder_id: str
    tier: ReminderTier
    recipients: List[str]
    subject: str
    provider: str
    message_id: Optional[str] = None


class DeliveryDispatcher:
    """Sends a single reminder and records the outcome.

    On success the reminder is marked sent and the certification's tier flag
    is set, both after the transport call returns. On failure the reminder is
    marked failed. Either way an audit entry is appended.
    """

    def __init__(
        self,
        db: Session,
        transport: NotificationTransport,
        resolver: RecipientResolver = None,
        renderer: TemplateRenderer = None,
        audit_sink: AuditLogSink = None,
        config=None
    ):
        """Initialize dispatcher.

        Args:
            db: Database session
            transport: Delivery provider
            resolver: Recipient resolver (defaults to a directory-backed one)
            renderer: Template renderer
            audit_sink: Audit log sink
            config: Settings object (defaults to the global settings)
        """
        self.db = db
        self.transport = transport
        self.config = config or default_settings
        self.resolver = resolver or RecipientResolver(db, config=self.config)
        self.renderer = renderer or TemplateRenderer()
        self.audit_sink = audit_sink or AuditLogSink(db)

    def build_from_address(self, company: Company) -> str:
        """Sender address derived from the company domain, or the generic fallback."""
        if company.domain:
            address = f"{self.config.sender_local_part}@{company.domain}"
        else:
            address = f"{self.config.fallback_sender_local_part}@{self.config.default_sender_domain}"
        return formataddr((f"{company.name} Safety", address))

    def _load_records(self, reminder: Reminder) -> Tuple[Certification, User, Company]:
        certification = self.db.get(Certification, reminder.certification_id)
        if certification is None:
            raise MissingDataError("certification", reminder.certification_id)
        if certification.expiry_date is None:
            raise MissingDataError("certification", certification.id, "expiry date not set")
        if certification.certification_type is None:
            raise MissingDataError("certification_type", certification.certification_type_id)

        worker = certification.worker
        if worker is None:
            raise MissingDataError("worker", certification.worker_id)

        company_id = reminder.company_id or certification.company_id
        company = self.db.get(Company, company_id)
        if company is None:
            raise MissingDataError("company", company_id)

        return certification, worker, company

    def _send_with_timeout(self, message: OutboundMessage) -> TransportReceipt:
        """Run the transport call on a worker thread bounded by dispatch_timeout_seconds."""
        timeout = self.config.dispatch_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.transport.send, message)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            raise TransportError(self.transport.name, f"delivery timed out after {timeout}s")
        except NotificationError:
            raise
        except Exception as e:
            raise TransportError(self.transport.name, str(e))
        finally:
            executor.shutdown(wait=False)

    def dispatch(self, reminder: Reminder, current_date: date = None, persist: bool = True) -> DispatchResult:
        """Deliver a reminder.

        Args:
            reminder: Reminder to deliver
            current_date: The current date used for days-remaining (defaults to today)
            persist: When False (manual sends) the reminder row and the
                certification flags are left untouched

        Returns:
            DispatchResult

        Raises:
            NotificationError: MissingDataError, NoRecipientsError or
                TransportError, after the failure has been recorded
        """
        tier = parse_tier(reminder.tier)
        certification: Optional[Certification] = None
        worker: Optional[User] = None
        recipients: List[str] = []
        subject = ""

        try:
            certification, worker, company = self._load_records(reminder)
            recipients = self.resolver.resolve(tier, worker, company.id)

            context = build_context(certification, worker, company, current_date, self.config)
            rendered = self.renderer.render(tier, context)
            subject = rendered.subject

            message = OutboundMessage(
                from_address=self.build_from_address(company),
                recipients=recipients,
                subject=rendered.subject,
                text_body=rendered.text_body,
                html_body=rendered.html_body,
                reply_to=company.safety_manager_email or None,
            )
            receipt = self._send_with_timeout(message)
        except NotificationError as e:
            self._record_failure(reminder, tier, certification, worker, recipients, subject, e, persist)
            raise

        now = datetime.utcnow()
        if persist:
            reminder.status = ReminderStatus.SENT
            reminder.sent_at = now
            reminder.error_message = None
            certification.mark_alert_sent(tier, now)

        self.audit_sink.record(
            reminder_id=reminder.id,
            tier=tier.value,
            recipients=recipients,
            subject=subject,
            delivery_status="sent",
            certification_id=certification.id,
            worker_id=worker.id,
            company_id=company.id,
            provider=receipt.provider,
        )
        self.db.commit()

        logger.info(
            f"Sent {tier.value} notification for {certification.certification_type.name} "
            f"to {', '.join(recipients)}"
        )

        return DispatchResult(
            reminder_id=reminder.id,
            tier=tier,
            recipients=recipients,
            subject=subject,
            provider=receipt.provider,
            message_id=receipt.message_id,
        )

    def _record_failure(
        self,
        reminder: Reminder,
        tier: ReminderTier,
        certification: Optional[Certification],
        worker: Optional[User],
        recipients: List[str],
        subject: str,
        error: NotificationError,
        persist: bool
    ) -> None:
        logger.error(f"Failed to send reminder {reminder.id}: {error.message}")

        try:
            if persist:
                reminder.status = ReminderStatus.FAILED
                reminder.error_message = error.message

            self.audit_sink.record(
                reminder_id=reminder.id,
                tier=tier.value,
                recipients=recipients,
                subject=subject,
                delivery_status="failed",
                certification_id=certification.id if certification else reminder.certification_id,
                worker_id=worker.id if worker else None,
                company_id=reminder.company_id,
                error_message=error.message,
                provider=self.transport.name,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not record failure for reminder {reminder.id}: {str(e)}")
