"""Script to run the certification expiry check once."""
import argparse
import json
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dateutil.parser import isoparse

from certalert.config import settings, configure_logging
from certalert.database import SessionLocal, init_db
from certalert.services.expiry_check_service import ExpiryCheckService
from certalert.services.transport import build_transport


def run_expiry_check(as_of=None) -> dict:
    """
    Run the daily expiry check one time.

    Args:
        as_of: Date to run as (defaults to today)

    Returns:
        Run summary dictionary
    """
    db = SessionLocal()
    try:
        service = ExpiryCheckService(db, build_transport(settings))
        return service.run(as_of).to_dict()
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the certification expiry check once")
    parser.add_argument("--date", help="Run as of this ISO date (YYYY-MM-DD)")
    parser.add_argument("--init-db", action="store_true", help="Create tables before running")
    args = parser.parse_args()

    configure_logging()
    if args.init_db:
        init_db()

    as_of = isoparse(args.date).date() if args.date else None
    summary = run_expiry_check(as_of)
    print(json.dumps(summary, indent=2))
    sys.exit(0 if summary["success"] else 1)
