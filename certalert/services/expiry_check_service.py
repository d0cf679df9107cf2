"""Daily certification expiry check: generate, dispatch, sweep."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from certalert.config import settings as default_settings
from certalert.exceptions import (
    CertAlertError,
    NotificationError,
    StoreUnavailableError,
    ResourceNotFoundError
)
from certalert.models.certification import Certification
from certalert.models.reminder import Reminder, ReminderStatus
from certalert.services.dispatch_service import DeliveryDispatcher
from certalert.services.reminder_service import ReminderService
from certalert.services.sweep_service import ExpiredCertificationSweep
from certalert.services.tier_policy import parse_tier
from certalert.services.transport import NotificationTransport


# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Aggregate outcome of one daily run."""
    success: bool = True
    reminders_created: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    errors: List[str] = field(default_factory=list)

    def record_failure(self, description: str) -> None:
        self.emails_failed += 1
        self.errors.append(description)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "reminders_created": self.reminders_created,
            "emails_sent": self.emails_sent,
            "emails_failed": self.emails_failed,
            "errors": list(self.errors),
        }


class ExpiryCheckService:
    """Runs the daily certification expiry process against an injected store and transport."""

    def __init__(self, db: Session, transport: NotificationTransport, config=None):
        """Initialize expiry check service.

        Args:
            db: Database session
            transport: Delivery provider
            config: Settings object (defaults to the global settings)
        """
        self.db = db
        self.config = config or default_settings
        self.transport = transport
        self.reminder_service = ReminderService(db, config=self.config)
        self.dispatcher = DeliveryDispatcher(db, transport, config=self.config)
        self.sweep = ExpiredCertificationSweep(db, self.dispatcher, self.reminder_service)

    def run(self, current_date: date = None) -> RunResult:
        """Run the daily process.

        1. Generate reminders for newly crossed tiers (fatal on store failure)
        2. Fetch due reminders, oldest first
        3. Claim and dispatch each one; one failure does not stop the rest
        4. Run the expired-certification sweep

        Args:
            current_date: The current date (defaults to today)

        Returns:
            RunResult with created/sent/failed counts and per-item errors
        """
        if current_date is None:
            current_date = date.today()

        logger.info(f"Starting daily certification expiry check for {current_date.isoformat()}")
        result = RunResult()

        try:
            result.reminders_created = self.reminder_service.generate_reminders(current_date)
            self.reminder_service.release_stale_claims()
            due_reminders = self.reminder_service.get_due_reminders(current_date)
        except StoreUnavailableError as e:
            logger.error(f"Aborting expiry check: {e.message}")
            result.success = False
            result.errors.append(e.message)
            return result
        except SQLAlchemyError as e:
            self.db.rollback()
            error = StoreUnavailableError("fetching due reminders", e)
            logger.error(f"Aborting expiry check: {error.message}")
            result.success = False
            result.errors.append(error.message)
            return result

        logger.info(f"Found {len(due_reminders)} due reminders to process")

        for reminder in due_reminders:
            reminder_id = reminder.id
            try:
                if not self.reminder_service.claim_reminder(reminder_id):
                    logger.info(f"Reminder {reminder_id} already claimed by another run, skipping")
                    continue
                self.dispatcher.dispatch(reminder, current_date)
                result.emails_sent += 1
            except NotificationError as e:
                result.record_failure(f"Reminder {reminder_id}: {e.message}")
            except Exception as e:
                self.db.rollback()
                logger.error(f"Unexpected error sending reminder {reminder_id}: {str(e)}", exc_info=True)
                self._mark_failed(reminder_id, str(e))
                result.record_failure(f"Reminder {reminder_id}: {str(e)}")

        self.sweep.run(result, current_date)

        logger.info(
            f"Daily expiry check completed. Created {result.reminders_created}, "
            f"sent {result.emails_sent}, failed {result.emails_failed}"
        )
        return result

    def _mark_failed(self, reminder_id: str, message: str) -> None:
        try:
            reminder = self.db.get(Reminder, reminder_id)
            if reminder is not None:
                reminder.status = ReminderStatus.FAILED
                reminder.error_message = message
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not mark reminder {reminder_id} failed: {str(e)}")

    def send_manual_reminder(self, certification_id: str, tier, current_date: date = None) -> Dict[str, Any]:
        """Send a one-off reminder for a certification, bypassing generation.

        No reminder row is stored and the certification's tier flags are left
        untouched; the attempt is still written to the audit log.

        Args:
            certification_id: Certification to remind about
            tier: ReminderTier or tier name
            current_date: The current date (defaults to today)

        Returns:
            {"success": True} or {"success": False, "error": message}
        """
        try:
            tier = parse_tier(tier)
            certification = self.db.get(Certification, certification_id)
            if certification is None:
                raise ResourceNotFoundError("certification", certification_id)

            now = datetime.utcnow()
            reminder = Reminder(
                id=f"manual-{int(now.timestamp() * 1000)}",
                certification_id=certification.id,
                company_id=certification.company_id,
                tier=tier,
                scheduled_date=current_date or date.today(),
                status=ReminderStatus.PENDING,
                send_attempts=0,
                acknowledged=False,
            )
            self.dispatcher.dispatch(reminder, current_date, persist=False)
        except CertAlertError as e:
            return {"success": False, "error": e.message}
        except Exception as e:
            logger.error(f"Manual reminder for {certification_id} failed: {str(e)}", exc_info=True)
            return {"success": False, "error": str(e)}

        logger.info(f"Manual {tier.value} reminder sent for certification {certification_id}")
        return {"success": True}
