"""Threshold evaluator: maps an expiry date to a reminder tier."""
from datetime import date, datetime
from typing import Optional, Union

from certalert.models.reminder import ReminderTier


# Upper bound (inclusive) of days remaining for each tier, most urgent first
TIER_THRESHOLDS = [
    (0, ReminderTier.EXPIRED),
    (7, ReminderTier.SEVEN_DAY),
    (30, ReminderTier.THIRTY_DAY),
    (60, ReminderTier.SIXTY_DAY),
]

ALERT_WINDOW_DAYS = TIER_THRESHOLDS[-1][0]


def _to_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until_expiry(expiry_date: Union[date, datetime], today: Union[date, datetime] = None) -> int:
    """Whole days from today until the expiry date (negative once past).

    Args:
        expiry_date: Certification expiry date
        today: The current date (defaults to today)

    Returns:
        Number of days until expiry
    """
    if today is None:
        today = date.today()
    return (_to_date(expiry_date) - _to_date(today)).days


def classify_expiry(expiry_date: Union[date, datetime], today: Union[date, datetime] = None) -> Optional[ReminderTier]:
    """Classify a certification into exactly one tier, or None.

    Args:
        expiry_date: Certification expiry date
        today: The current date (defaults to today)

    Returns:
        The most urgent tier whose threshold covers the days remaining,
        or None when expiry is further away than the alert window
    """
    remaining = days_until_expiry(expiry_date, today)
    for upper_bound, tier in TIER_THRESHOLDS:
        if remaining <= upper_bound:
            return tier
    return None
