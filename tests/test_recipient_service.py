"""Unit and property tests for recipient resolution."""
import pytest
from hypothesis import given, strategies as st, settings
from types import SimpleNamespace
from sqlalchemy.orm import Session

from certalert.config import settings as app_settings
from certalert.exceptions import NoRecipientsError
from certalert.models.reminder import ReminderTier
from certalert.models.user import UserRole
from certalert.services.recipient_service import RecipientDirectory, RecipientResolver
from tests.conftest import get_test_db_session, make_company, make_user, make_staffed_company


def _config(**overrides):
    values = app_settings.model_dump()
    values.update(overrides)
    return SimpleNamespace(**values)


def test_sixty_day_notifies_worker_and_one_supervisor(test_db: Session, staffed_company):
    company, worker, *_ = staffed_company

    recipients = RecipientResolver(test_db).resolve(ReminderTier.SIXTY_DAY, worker, company.id)

    assert recipients == ["worker@acme.test", "super@acme.test"]


def test_thirty_day_adds_safety_manager(test_db: Session, staffed_company):
    company, worker, *_ = staffed_company

    recipients = RecipientResolver(test_db).resolve(ReminderTier.THIRTY_DAY, worker, company.id)

    assert recipients == ["worker@acme.test", "super@acme.test", "admin@acme.test"]


@pytest.mark.parametrize("tier", [ReminderTier.SEVEN_DAY, ReminderTier.EXPIRED])
def test_urgent_tiers_add_internal_auditor(test_db: Session, staffed_company, tier):
    company, worker, *_ = staffed_company

    recipients = RecipientResolver(test_db).resolve(tier, worker, company.id)

    assert recipients == ["worker@acme.test", "super@acme.test", "admin@acme.test", "audit@acme.test"]


def test_duplicate_addresses_are_collapsed(test_db: Session):
    """A worker who is also listed under another role's address is notified once."""
    company = make_company(test_db)
    worker = make_user(test_db, company, UserRole.WORKER, email="Lead@Acme.test")
    make_user(test_db, company, UserRole.SUPERVISOR, email=" lead@acme.test ")

    recipients = RecipientResolver(test_db).resolve(ReminderTier.SIXTY_DAY, worker, company.id)

    assert recipients == ["Lead@Acme.test"]


def test_missing_roles_are_skipped(test_db: Session):
    company = make_company(test_db)
    worker = make_user(test_db, company, UserRole.WORKER, email="worker@acme.test")

    recipients = RecipientResolver(test_db).resolve(ReminderTier.SEVEN_DAY, worker, company.id)

    assert recipients == ["worker@acme.test"]


def test_empty_resolution_raises(test_db: Session):
    company = make_company(test_db)
    worker = make_user(test_db, company, UserRole.WORKER, email="")

    with pytest.raises(NoRecipientsError) as exc_info:
        RecipientResolver(test_db).resolve(ReminderTier.SIXTY_DAY, worker, company.id)

    assert "No valid recipients" in exc_info.value.message


def test_directory_returns_earliest_active_holder(test_db: Session):
    company = make_company(test_db)
    make_user(test_db, company, UserRole.SUPERVISOR, email="old-inactive@acme.test",
              created_offset_minutes=0, is_active=False)
    make_user(test_db, company, UserRole.SUPERVISOR, email="second@acme.test", created_offset_minutes=2)
    make_user(test_db, company, UserRole.SUPERVISOR, email="first@acme.test", created_offset_minutes=1)

    assert RecipientDirectory(test_db).lookup(company.id, UserRole.SUPERVISOR) == "first@acme.test"


def test_directory_is_scoped_to_company(test_db: Session):
    company = make_company(test_db)
    other = make_company(test_db, name="Other Co", domain="other.test")
    make_user(test_db, other, UserRole.ADMIN, email="admin@other.test")

    assert RecipientDirectory(test_db).lookup(company.id, UserRole.ADMIN) is None


def test_company_wide_supervisor_by_default(test_db: Session):
    company = make_company(test_db)
    make_user(test_db, company, UserRole.SUPERVISOR, email="any@acme.test", created_offset_minutes=0)
    assigned = make_user(test_db, company, UserRole.SUPERVISOR, email="mine@acme.test", created_offset_minutes=5)
    worker = make_user(test_db, company, UserRole.WORKER, email="worker@acme.test", supervisor_id=assigned.id)

    recipients = RecipientResolver(test_db).resolve(ReminderTier.SIXTY_DAY, worker, company.id)

    assert recipients == ["worker@acme.test", "any@acme.test"]


def test_assigned_supervisor_when_preferred(test_db: Session):
    company = make_company(test_db)
    make_user(test_db, company, UserRole.SUPERVISOR, email="any@acme.test", created_offset_minutes=0)
    assigned = make_user(test_db, company, UserRole.SUPERVISOR, email="mine@acme.test", created_offset_minutes=5)
    worker = make_user(test_db, company, UserRole.WORKER, email="worker@acme.test", supervisor_id=assigned.id)

    resolver = RecipientResolver(test_db, config=_config(prefer_assigned_supervisor=True))
    recipients = resolver.resolve(ReminderTier.SIXTY_DAY, worker, company.id)

    assert recipients == ["worker@acme.test", "mine@acme.test"]


@pytest.mark.property
@settings(max_examples=100, deadline=None)
@given(tier=st.sampled_from(list(ReminderTier)))
def test_property_recipients_unique_and_worker_first(tier: ReminderTier):
    """
    Property: resolved recipients are unique and the worker always comes first.

    Higher tiers never notify fewer people than lower tiers.
    """
    with get_test_db_session() as test_db:
        company, worker, *_ = make_staffed_company(test_db)
        resolver = RecipientResolver(test_db)

        recipients = resolver.resolve(tier, worker, company.id)

        assert recipients[0] == worker.email
        assert len({r.lower() for r in recipients}) == len(recipients)
        for lower in ReminderTier:
            if lower.rank < tier.rank:
                assert set(resolver.resolve(lower, worker, company.id)) <= set(recipients)
