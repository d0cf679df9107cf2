"""Reminder service: generation, claiming and bookkeeping of expiry reminders."""
from datetime import datetime, date, timedelta
from dateutil.relativedelta import relativedelta
from typing import Dict, List, Optional, Any
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import uuid
import logging

from certalert.config import settings as default_settings
from certalert.exceptions import (
    StoreUnavailableError,
    ResourceNotFoundError,
    InvalidStatusTransitionError
)
from certalert.models.certification import Certification, CertificationStatus
from certalert.models.reminder import Reminder, ReminderTier, ReminderStatus
from certalert.services.threshold_service import classify_expiry, ALERT_WINDOW_DAYS


# Configure logging
logger = logging.getLogger(__name__)


class ReminderService:
    """Service for creating and tracking certification reminders."""

    def __init__(self, db: Session, config=None):
        """Initialize reminder service.

        Args:
            db: Database session
            config: Settings object (defaults to the global settings)
        """
        self.db = db
        self.config = config or default_settings

    # ── Generation ─────────────────────────────────────────────────────

    def get_alertable_certifications(self, current_date: date = None) -> List[Certification]:
        """Get active certifications whose expiry falls inside the alert window.

        Already-passed expiry dates are included; they classify as expired.

        Args:
            current_date: The current date (defaults to today)

        Returns:
            List of Certification objects ordered by expiry date
        """
        if current_date is None:
            current_date = date.today()

        window_end = current_date + timedelta(days=ALERT_WINDOW_DAYS)

        return self.db.query(Certification).options(
            joinedload(Certification.certification_type)
        ).filter(
            Certification.status == CertificationStatus.ACTIVE,
            Certification.expiry_date.isnot(None),
            Certification.expiry_date <= window_end
        ).order_by(Certification.expiry_date.asc(), Certification.id.asc()).all()

    def reminder_exists(self, certification_id: str, tier: ReminderTier) -> bool:
        """Check whether a reminder row exists for the certification and tier."""
        return self.db.query(Reminder.id).filter(
            Reminder.certification_id == certification_id,
            Reminder.tier == tier
        ).first() is not None

    def create_reminder(
        self,
        certification: Certification,
        tier: ReminderTier,
        scheduled_date: date
    ) -> Optional[Reminder]:
        """Create a pending reminder unless one already exists for (certification, tier).

        The insert runs inside a SAVEPOINT so a uniqueness violation raised by
        a concurrent run only discards this row.

        Args:
            certification: Certification the reminder is for
            tier: Reminder tier
            scheduled_date: Date the reminder becomes due

        Returns:
            The new Reminder, or None if the pair already had one
        """
        if self.reminder_exists(certification.id, tier):
            return None

        reminder = Reminder(
            id=str(uuid.uuid4()),
            certification_id=certification.id,
            company_id=certification.company_id,
            tier=tier,
            scheduled_date=scheduled_date,
            status=ReminderStatus.PENDING,
            send_attempts=0,
            acknowledged=False,
            created_at=datetime.utcnow()
        )

        try:
            with self.db.begin_nested():
                self.db.add(reminder)
        except IntegrityError:
            logger.info(
                f"Reminder for certification {certification.id} tier {tier.value} "
                f"already exists, skipping"
            )
            return None

        return reminder

    def generate_reminders(self, current_date: date = None) -> int:
        """Create pending reminders for every certification crossing a new tier.

        For each active certification within the alert window the current
        tier is evaluated; a reminder is created when that tier's flag is not
        set and the certification type enables it. Re-running with no data
        changes creates nothing.

        Args:
            current_date: The current date (defaults to today)

        Returns:
            Number of reminders created

        Raises:
            StoreUnavailableError: If the store cannot be read or written
        """
        if current_date is None:
            current_date = date.today()

        created = 0
        try:
            certifications = self.get_alertable_certifications(current_date)

            for certification in certifications:
                tier = classify_expiry(certification.expiry_date, current_date)
                if tier is None:
                    continue
                if certification.alert_sent(tier):
                    continue

                cert_type = certification.certification_type
                if cert_type is not None and not cert_type.alert_enabled(tier):
                    logger.debug(
                        f"Tier {tier.value} disabled for type {cert_type.code}, "
                        f"skipping certification {certification.id}"
                    )
                    continue

                if self.create_reminder(certification, tier, current_date) is not None:
                    created += 1

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Reminder generation failed: {str(e)}")
            raise StoreUnavailableError("reminder generation", e)

        logger.info(f"Created {created} new reminders for {current_date.isoformat()}")
        return created

    # ── Due reminders and claiming ─────────────────────────────────────

    def _claimable_statuses(self) -> List[ReminderStatus]:
        statuses = [ReminderStatus.PENDING]
        if self.config.retry_failed_reminders:
            statuses.append(ReminderStatus.FAILED)
        return statuses

    def get_due_reminders(self, current_date: date = None) -> List[Reminder]:
        """Get reminders due on or before the date, oldest schedule first.

        Failed reminders are included only when automatic retry is enabled,
        and then only while they have attempts left.

        Args:
            current_date: The current date (defaults to today)

        Returns:
            List of Reminder objects
        """
        if current_date is None:
            current_date = date.today()

        query = self.db.query(Reminder).filter(
            Reminder.scheduled_date <= current_date
        )

        if self.config.retry_failed_reminders:
            query = query.filter(
                (Reminder.status == ReminderStatus.PENDING) |
                ((Reminder.status == ReminderStatus.FAILED) &
                 (Reminder.send_attempts < self.config.max_send_attempts))
            )
        else:
            query = query.filter(Reminder.status == ReminderStatus.PENDING)

        return query.order_by(
            Reminder.scheduled_date.asc(),
            Reminder.created_at.asc()
        ).all()

    def claim_reminder(self, reminder_id: str, now: datetime = None) -> bool:
        """Atomically move a reminder into the in-flight state.

        The update is conditional on the current status, so when two runs
        overlap only one of them wins the claim.

        Args:
            reminder_id: Reminder to claim
            now: Claim timestamp (defaults to utcnow)

        Returns:
            True if this caller now owns the reminder
        """
        now = now or datetime.utcnow()
        claimed = self.db.query(Reminder).filter(
            Reminder.id == reminder_id,
            Reminder.status.in_(self._claimable_statuses())
        ).update(
            {
                Reminder.status: ReminderStatus.SENDING,
                Reminder.claimed_at: now,
                Reminder.send_attempts: Reminder.send_attempts + 1,
            },
            synchronize_session=False
        )
        self.db.commit()
        return claimed == 1

    def release_stale_claims(self, now: datetime = None) -> int:
        """Return reminders stuck in flight (e.g., after a crash) to pending.

        Args:
            now: Current timestamp (defaults to utcnow)

        Returns:
            Number of reminders released
        """
        now = now or datetime.utcnow()
        cutoff = now - timedelta(minutes=self.config.stale_claim_minutes)
        released = self.db.query(Reminder).filter(
            Reminder.status == ReminderStatus.SENDING,
            Reminder.claimed_at < cutoff
        ).update(
            {Reminder.status: ReminderStatus.PENDING, Reminder.claimed_at: None},
            synchronize_session=False
        )
        self.db.commit()
        if released:
            logger.warning(f"Released {released} stale in-flight reminders")
        return released

    # ── Operator actions ───────────────────────────────────────────────

    def get_reminder(self, reminder_id: str) -> Reminder:
        reminder = self.db.get(Reminder, reminder_id)
        if reminder is None:
            raise ResourceNotFoundError("reminder", reminder_id)
        return reminder

    def list_reminders(
        self,
        status: Optional[ReminderStatus] = None,
        company_id: Optional[str] = None,
        limit: int = 100
    ) -> List[Reminder]:
        """List reminders, newest first, optionally filtered."""
        query = self.db.query(Reminder)
        if status is not None:
            query = query.filter(Reminder.status == status)
        if company_id is not None:
            query = query.filter(Reminder.company_id == company_id)
        return query.order_by(
            Reminder.scheduled_date.desc(),
            Reminder.created_at.desc()
        ).limit(limit).all()

    def requeue_failed_reminder(self, reminder_id: str) -> Reminder:
        """Move a failed reminder back to pending so the next run retries it.

        Raises:
            ResourceNotFoundError: If the reminder does not exist
            InvalidStatusTransitionError: If the reminder has not failed
        """
        reminder = self.get_reminder(reminder_id)
        if reminder.status != ReminderStatus.FAILED:
            raise InvalidStatusTransitionError(reminder.status.value, "requeue")

        reminder.status = ReminderStatus.PENDING
        reminder.claimed_at = None
        self.db.commit()
        logger.info(f"Requeued failed reminder {reminder_id}")
        return reminder

    def acknowledge_reminder(self, reminder_id: str, user_id: str, now: datetime = None) -> Reminder:
        """Set the reminder's acknowledgement flag. Repeat calls keep the first acknowledgement.

        Raises:
            ResourceNotFoundError: If the reminder does not exist
            InvalidStatusTransitionError: If the reminder was never sent
        """
        reminder = self.get_reminder(reminder_id)
        if reminder.status != ReminderStatus.SENT:
            raise InvalidStatusTransitionError(reminder.status.value, "acknowledge")

        if not reminder.acknowledged:
            reminder.acknowledged = True
            reminder.acknowledged_at = now or datetime.utcnow()
            reminder.acknowledged_by = user_id
            self.db.commit()
            logger.info(f"Reminder {reminder_id} acknowledged by {user_id}")

        return reminder

    def get_notification_stats(
        self,
        company_id: str,
        days: int = 30,
        now: datetime = None
    ) -> Dict[str, Any]:
        """Summarize reminders sent for a company over the last N days.

        Args:
            company_id: Company to summarize
            days: Window length in days
            now: End of the window (defaults to utcnow)

        Returns:
            Dictionary with total_sent, by_tier and by_day counts
        """
        now = now or datetime.utcnow()
        since = now - relativedelta(days=days)

        sent = self.db.query(Reminder).filter(
            Reminder.company_id == company_id,
            Reminder.status == ReminderStatus.SENT,
            Reminder.sent_at >= since
        ).all()

        by_tier = {tier.value: 0 for tier in ReminderTier}
        by_day: Dict[str, int] = {}
        for reminder in sent:
            by_tier[reminder.tier.value] += 1
            day_key = reminder.sent_at.date().isoformat()
            by_day[day_key] = by_day.get(day_key, 0) + 1

        return {
            "company_id": company_id,
            "days": days,
            "total_sent": len(sent),
            "by_tier": by_tier,
            "by_day": dict(sorted(by_day.items())),
        }
