"""Template renderer: tier-specific notification content."""
from dataclasses import dataclass, asdict
from datetime import date
from pathlib import Path
from typing import Optional
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from certalert.config import settings as default_settings
from certalert.models.certification import Certification
from certalert.models.company import Company
from certalert.models.reminder import ReminderTier
from certalert.models.user import User
from certalert.services.threshold_service import days_until_expiry
from certalert.services.tier_policy import TierPolicy, get_policy


TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "notifications"

SUBJECTS = {
    ReminderTier.SIXTY_DAY: "Reminder: {name} ({code}) {phrase}",
    ReminderTier.THIRTY_DAY: "IMPORTANT: {name} ({code}) {phrase}",
    ReminderTier.SEVEN_DAY: "URGENT: {name} ({code}) {phrase} - IMMEDIATE ACTION REQUIRED",
    ReminderTier.EXPIRED: "{name} ({code}) HAS EXPIRED - Work Restriction Applied",
}

_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


@dataclass
class NotificationContext:
    """Values substituted into every template."""
    certification_name: str
    certification_code: str
    certificate_number: str
    expiry_date: str
    days_remaining: int
    days_remaining_label: str
    expiry_phrase: str
    worker_first_name: str
    worker_email: str
    company_name: str
    safety_manager_name: str
    safety_contact_email: str
    company_phone: str


@dataclass
class RenderedNotification:
    """Rendered subject and bodies plus the view-model they came from."""
    subject: str
    text_body: str
    html_body: str
    view: TierPolicy


def format_expiry_date(value: date) -> str:
    """Format a date as e.g. 'Monday, March 4, 2024'."""
    return f"{value:%A}, {value:%B} {value.day}, {value.year}"


def describe_expiry(days_remaining: int) -> str:
    """Subject and body wording for the time left, e.g. 'expires in 5 days' or 'has expired'."""
    if days_remaining <= 0:
        return "has expired"
    if days_remaining == 1:
        return "expires in 1 day"
    return f"expires in {days_remaining} days"


def build_context(
    certification: Certification,
    worker: User,
    company: Company,
    today: date = None,
    config=None
) -> NotificationContext:
    """Collect template values from the certification, worker and company.

    Args:
        certification: Certification being reminded about
        worker: Certification holder
        company: Worker's company
        today: The current date (defaults to today)
        config: Settings object (defaults to the global settings)

    Returns:
        NotificationContext
    """
    config = config or default_settings
    remaining = days_until_expiry(certification.expiry_date, today)
    cert_type = certification.certification_type
    domain = company.domain or config.default_sender_domain

    return NotificationContext(
        certification_name=cert_type.name,
        certification_code=cert_type.code,
        certificate_number=certification.certificate_number or "N/A",
        expiry_date=format_expiry_date(certification.expiry_date),
        days_remaining=remaining,
        days_remaining_label="EXPIRED" if remaining <= 0 else f"{remaining} days",
        expiry_phrase=describe_expiry(remaining),
        worker_first_name=worker.first_name,
        worker_email=worker.email or "",
        company_name=company.name,
        safety_manager_name=company.safety_manager_name or "Safety Manager",
        safety_contact_email=company.safety_manager_email or f"{config.sender_local_part}@{domain}",
        company_phone=company.phone or "(Contact your supervisor)",
    )


class TemplateRenderer:
    """Renders the content variant for a tier from a NotificationContext."""

    def __init__(self, environment: Optional[Environment] = None):
        self.environment = environment or _environment

    def render(self, tier, context: NotificationContext) -> RenderedNotification:
        """Render subject, plain-text and HTML bodies for a tier.

        Args:
            tier: ReminderTier or tier name
            context: Template values

        Returns:
            RenderedNotification
        """
        view = get_policy(tier)
        values = asdict(context)
        values["view"] = view
        values["notified_roles"] = view.notified_role_labels

        subject = SUBJECTS[view.tier].format(
            name=context.certification_name,
            code=context.certification_code,
            phrase=context.expiry_phrase,
        )
        text_body = self.environment.get_template(f"{view.tier.value}.txt").render(**values)
        html_body = self.environment.get_template(f"{view.tier.value}.html").render(**values)

        return RenderedNotification(
            subject=subject,
            text_body=text_body,
            html_body=html_body,
            view=view,
        )
