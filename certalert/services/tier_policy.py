"""Per-tier escalation and presentation policy.

The recipient resolver and the template renderer both read TIER_POLICIES,
so who gets notified and what the message says about it cannot drift apart.
"""
from dataclasses import dataclass
from typing import Dict, Tuple
import enum

from certalert.exceptions import InvalidTierError
from certalert.models.reminder import ReminderTier
from certalert.models.user import UserRole


class Urgency(str, enum.Enum):
    """Message urgency, increasing with tier."""
    INFO = "info"
    IMPORTANT = "important"
    URGENT = "urgent"
    CRITICAL = "critical"


ROLE_LABELS = {
    UserRole.WORKER: "You",
    UserRole.SUPERVISOR: "Your Supervisor",
    UserRole.ADMIN: "Safety Manager",
    UserRole.INTERNAL_AUDITOR: "Internal Auditor",
}


@dataclass(frozen=True)
class TierPolicy:
    """Escalation roles and content switches for one tier."""
    tier: ReminderTier
    urgency: Urgency
    escalation_roles: Tuple[UserRole, ...]
    list_notified_roles: bool
    show_safety_contact: bool
    work_restriction_in_effect: bool
    status_changed: bool

    @property
    def notified_role_labels(self) -> Tuple[str, ...]:
        return tuple(ROLE_LABELS[role] for role in (UserRole.WORKER,) + self.escalation_roles)


TIER_POLICIES: Dict[ReminderTier, TierPolicy] = {
    ReminderTier.SIXTY_DAY: TierPolicy(
        tier=ReminderTier.SIXTY_DAY,
        urgency=Urgency.INFO,
        escalation_roles=(UserRole.SUPERVISOR,),
        list_notified_roles=False,
        show_safety_contact=False,
        work_restriction_in_effect=False,
        status_changed=False,
    ),
    ReminderTier.THIRTY_DAY: TierPolicy(
        tier=ReminderTier.THIRTY_DAY,
        urgency=Urgency.IMPORTANT,
        escalation_roles=(UserRole.SUPERVISOR, UserRole.ADMIN),
        list_notified_roles=False,
        show_safety_contact=False,
        work_restriction_in_effect=False,
        status_changed=False,
    ),
    ReminderTier.SEVEN_DAY: TierPolicy(
        tier=ReminderTier.SEVEN_DAY,
        urgency=Urgency.URGENT,
        escalation_roles=(UserRole.SUPERVISOR, UserRole.ADMIN, UserRole.INTERNAL_AUDITOR),
        list_notified_roles=True,
        show_safety_contact=True,
        work_restriction_in_effect=False,
        status_changed=False,
    ),
    ReminderTier.EXPIRED: TierPolicy(
        tier=ReminderTier.EXPIRED,
        urgency=Urgency.CRITICAL,
        escalation_roles=(UserRole.SUPERVISOR, UserRole.ADMIN, UserRole.INTERNAL_AUDITOR),
        list_notified_roles=True,
        show_safety_contact=True,
        work_restriction_in_effect=True,
        status_changed=True,
    ),
}


def parse_tier(value) -> ReminderTier:
    """Coerce a tier name (e.g., "7_day") into a ReminderTier.

    Raises:
        InvalidTierError: If the value names no tier
    """
    if isinstance(value, ReminderTier):
        return value
    try:
        return ReminderTier(value)
    except ValueError:
        raise InvalidTierError(value)


def get_policy(tier) -> TierPolicy:
    """Look up the policy for a tier (enum member or tier name)."""
    return TIER_POLICIES[parse_tier(tier)]
