"""Scheduler and background tasks package."""
from certalert.scheduler.expiry_scheduler import (
    start_scheduler,
    stop_scheduler,
    run_daily_expiry_check
)

__all__ = [
    'start_scheduler',
    'stop_scheduler',
    'run_daily_expiry_check'
]
