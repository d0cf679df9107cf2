"""Recipient resolution: who receives a reminder at each tier."""
from typing import List, Optional
from sqlalchemy.orm import Session
import logging

from certalert.config import settings as default_settings
from certalert.exceptions import NoRecipientsError
from certalert.models.reminder import ReminderTier
from certalert.models.user import User, UserRole
from certalert.services.tier_policy import get_policy


# Configure logging
logger = logging.getLogger(__name__)


class RecipientDirectory:
    """Looks up contact addresses by company and role.

    When several people hold a role, the earliest-created active holder
    with an email address is returned.
    """

    def __init__(self, db: Session):
        self.db = db

    def lookup(self, company_id: str, role: UserRole) -> Optional[str]:
        """Return one contact address for the role, or None.

        Args:
            company_id: Company to search
            role: Role to look up

        Returns:
            Email address or None if nobody holds the role
        """
        holder = self.db.query(User).filter(
            User.company_id == company_id,
            User.role == role,
            User.is_active.is_(True),
            User.email.isnot(None),
            User.email != ""
        ).order_by(User.created_at.asc(), User.id.asc()).first()

        return holder.email if holder else None

    def assigned_supervisor(self, worker: User) -> Optional[str]:
        """Return the email of the worker's own supervisor, if one is assigned."""
        supervisor = worker.supervisor
        if supervisor is not None and supervisor.is_active and supervisor.email:
            return supervisor.email
        return None


class RecipientResolver:
    """Builds the deduplicated, ordered recipient list for a reminder.

    The worker always comes first, followed by one holder of each role the
    tier escalates to. Role holders are chosen company-wide; with
    prefer_assigned_supervisor enabled, a worker's assigned supervisor is
    used ahead of any other supervisor in the company.
    """

    def __init__(self, db: Session, directory: RecipientDirectory = None, config=None):
        self.directory = directory or RecipientDirectory(db)
        self.config = config or default_settings

    def _supervisor_address(self, worker: User, company_id: str) -> Optional[str]:
        if self.config.prefer_assigned_supervisor and worker is not None:
            assigned = self.directory.assigned_supervisor(worker)
            if assigned:
                return assigned
        return self.directory.lookup(company_id, UserRole.SUPERVISOR)

    def resolve(self, tier: ReminderTier, worker: User, company_id: str) -> List[str]:
        """Resolve recipients for a tier.

        Args:
            tier: Reminder tier
            worker: Certification holder
            company_id: Company the certification belongs to

        Returns:
            Ordered list of unique email addresses

        Raises:
            NoRecipientsError: If nobody can be notified
        """
        policy = get_policy(tier)

        candidates = [worker.email if worker is not None else None]
        for role in policy.escalation_roles:
            if role == UserRole.SUPERVISOR:
                candidates.append(self._supervisor_address(worker, company_id))
            else:
                candidates.append(self.directory.lookup(company_id, role))

        recipients = []
        seen = set()
        for address in candidates:
            if not address or not address.strip():
                continue
            key = address.strip().lower()
            if key in seen:
                continue
            seen.add(key)
            recipients.append(address.strip())

        if not recipients:
            logger.warning(
                f"No recipients for {policy.tier.value} reminder in company {company_id}"
            )
            raise NoRecipientsError(policy.tier.value, company_id)

        return recipients
