"""Operator API routes for the expiry alert engine."""
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Body
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
from functools import lru_cache
import secrets
import logging

from certalert.config import settings
from certalert.database import get_db
from certalert.exceptions import (
    CertAlertError,
    ResourceNotFoundError,
    InvalidStatusTransitionError,
    format_error_for_api
)
from certalert.models.reminder import Reminder, ReminderStatus
from certalert.services.audit_service import AuditLogSink
from certalert.services.expiry_check_service import ExpiryCheckService
from certalert.services.reminder_service import ReminderService
from certalert.services.transport import NotificationTransport, build_transport


# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/admin", tags=["admin"])


def require_admin_token(x_admin_token: Optional[str] = Header(None)) -> None:
    """
    Check the operator token sent in the X-Admin-Token header.

    Raises:
        HTTPException: 401 if no token is configured or the header does not match
    """
    expected = settings.admin_api_token
    if not expected or not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=401, detail="Not authenticated")


@lru_cache(maxsize=1)
def _configured_transport() -> NotificationTransport:
    return build_transport(settings)


def get_transport() -> NotificationTransport:
    """Transport shared by all API-triggered sends."""
    return _configured_transport()


def _error_response(error: CertAlertError) -> JSONResponse:
    if isinstance(error, ResourceNotFoundError):
        status_code = 404
    elif isinstance(error, InvalidStatusTransitionError):
        status_code = 409
    else:
        status_code = 400
    return JSONResponse(status_code=status_code, content=format_error_for_api(error))


def _serialize_reminder(reminder: Reminder) -> dict:
    return {
        "id": reminder.id,
        "certification_id": reminder.certification_id,
        "company_id": reminder.company_id,
        "tier": reminder.tier.value,
        "scheduled_date": reminder.scheduled_date.isoformat(),
        "status": reminder.status.value,
        "sent_at": reminder.sent_at.isoformat() if reminder.sent_at else None,
        "error_message": reminder.error_message,
        "send_attempts": reminder.send_attempts,
        "acknowledged": reminder.acknowledged,
        "acknowledged_at": reminder.acknowledged_at.isoformat() if reminder.acknowledged_at else None,
        "acknowledged_by": reminder.acknowledged_by
    }


@router.post("/expiry-check/run", dependencies=[Depends(require_admin_token)])
def run_expiry_check(
    db: Session = Depends(get_db),
    transport: NotificationTransport = Depends(get_transport)
):
    """
    Run the daily expiry check immediately.

    Returns:
        JSON run summary with created/sent/failed counts and errors
    """
    service = ExpiryCheckService(db, transport)
    result = service.run()
    status_code = 200 if result.success else 503
    return JSONResponse(status_code=status_code, content=result.to_dict())


@router.post("/certifications/{certification_id}/reminders", dependencies=[Depends(require_admin_token)])
def send_manual_reminder(
    certification_id: str,
    tier: str = Body(..., embed=True),
    db: Session = Depends(get_db),
    transport: NotificationTransport = Depends(get_transport)
):
    """
    Send a one-off reminder of the given tier for a certification.

    Args:
        certification_id: Certification to remind about
        tier: One of 60_day, 30_day, 7_day, expired

    Returns:
        {"success": true} or {"success": false, "error": message}
    """
    service = ExpiryCheckService(db, transport)
    outcome = service.send_manual_reminder(certification_id, tier)
    return JSONResponse(status_code=200 if outcome["success"] else 400, content=outcome)


@router.get("/reminders", dependencies=[Depends(require_admin_token)])
def list_reminders(
    status: Optional[str] = Query(None),
    company_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """
    List reminders with optional filtering.

    Args:
        status: Optional status filter (pending, sending, sent, failed)
        company_id: Optional company filter
        limit: Maximum number of rows
    """
    status_enum = None
    if status:
        try:
            status_enum = ReminderStatus(status)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    reminders = ReminderService(db).list_reminders(
        status=status_enum,
        company_id=company_id,
        limit=limit
    )
    return JSONResponse(content=[_serialize_reminder(r) for r in reminders])


@router.post("/reminders/{reminder_id}/requeue", dependencies=[Depends(require_admin_token)])
def requeue_reminder(reminder_id: str, db: Session = Depends(get_db)):
    """Move a failed reminder back to pending."""
    try:
        reminder = ReminderService(db).requeue_failed_reminder(reminder_id)
    except CertAlertError as e:
        return _error_response(e)
    return JSONResponse(content=_serialize_reminder(reminder))


@router.post("/reminders/{reminder_id}/acknowledge", dependencies=[Depends(require_admin_token)])
def acknowledge_reminder(
    reminder_id: str,
    acknowledged_by: str = Body(..., embed=True),
    db: Session = Depends(get_db)
):
    """
    Record that a sent reminder has been acknowledged.

    Args:
        reminder_id: Reminder to acknowledge
        acknowledged_by: ID of the acknowledging user
    """
    try:
        reminder = ReminderService(db).acknowledge_reminder(reminder_id, acknowledged_by)
    except CertAlertError as e:
        return _error_response(e)
    return JSONResponse(content=_serialize_reminder(reminder))


@router.get("/notifications/stats", dependencies=[Depends(require_admin_token)])
def notification_stats(
    company_id: str = Query(...),
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db)
):
    """Reminders sent for a company over the last N days, by tier and by day."""
    stats = ReminderService(db).get_notification_stats(company_id, days=days)
    return JSONResponse(content=stats)


@router.get("/notifications/logs", dependencies=[Depends(require_admin_token)])
def notification_logs(
    company_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """Most recent delivery attempts from the audit log."""
    logs = AuditLogSink(db).list_logs(company_id=company_id, limit=limit)
    return JSONResponse(content=[
        {
            "id": log.id,
            "reminder_id": log.reminder_id,
            "certification_id": log.certification_id,
            "worker_id": log.worker_id,
            "company_id": log.company_id,
            "tier": log.tier,
            "recipients": log.recipient_list,
            "subject": log.subject,
            "delivery_status": log.delivery_status,
            "error_message": log.error_message,
            "provider": log.provider,
            "sent_at": log.sent_at.isoformat()
        }
        for log in logs
    ])
