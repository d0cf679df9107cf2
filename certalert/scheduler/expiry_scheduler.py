"""Expiry scheduler for the daily certification check."""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import logging

from certalert.config import settings
from certalert.database import SessionLocal
from certalert.services.expiry_check_service import ExpiryCheckService
from certalert.services.transport import build_transport


# Configure logging
logger = logging.getLogger(__name__)


# Global scheduler instance
scheduler = AsyncIOScheduler()


def run_daily_expiry_check():
    """
    Run the daily certification expiry check.

    Called by the scheduler once a day. Opens its own database session,
    builds the configured transport and returns the run summary, or None
    if the run could not start.
    """
    logger.info("Starting scheduled certification expiry check...")

    db = SessionLocal()
    try:
        service = ExpiryCheckService(db, build_transport(settings))
        result = service.run()

        if result.success:
            logger.info(
                f"Scheduled expiry check completed. Created {result.reminders_created}, "
                f"sent {result.emails_sent}, failed {result.emails_failed}"
            )
        else:
            logger.error(f"Scheduled expiry check aborted: {'; '.join(result.errors)}")
        return result

    except Exception as e:
        logger.error(f"Error during expiry check: {str(e)}", exc_info=True)
        return None
    finally:
        db.close()


def start_scheduler():
    """
    Start the expiry scheduler.

    Configures the daily check at the hour and minute from settings.
    """
    hour = settings.expiry_check_hour
    minute = settings.expiry_check_minute

    scheduler.add_job(
        run_daily_expiry_check,
        trigger=CronTrigger(hour=hour, minute=minute),
        id='daily_expiry_check',
        name='Daily Certification Expiry Check',
        replace_existing=True
    )

    logger.info(f"Expiry scheduler configured to run daily at {hour:02d}:{minute:02d}")

    scheduler.start()
    logger.info("Expiry scheduler started")


def stop_scheduler():
    """
    Stop the expiry scheduler.

    Called during application shutdown.
    """
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Expiry scheduler stopped")
    else:
        logger.info("Expiry scheduler was not running")
