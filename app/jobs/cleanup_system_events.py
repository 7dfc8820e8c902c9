"""
SystemEvent retention cleanup.

Deletes events older than retention_days (default SYSTEM_EVENT_RETENTION_DAYS).
Run via: python -m app.jobs.cleanup_system_events [--retention-days 90]
"""

import argparse
import logging
import sys

from app.core.config import settings
from app.core.log_config import configure_logging
from app.db import session as db_session
from app.services.system_event_service import cleanup_old_events

logger = logging.getLogger(__name__)


def run_cleanup(retention_days: int) -> int:
    db = db_session.SessionLocal()
    try:
        return cleanup_old_events(db, retention_days=retention_days)
    finally:
        db.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Clean up old SystemEvents (retention)")
    parser.add_argument(
        "--retention-days",
        type=int,
        default=settings.system_event_retention_days,
        help=f"Delete events older than this many days (default: {settings.system_event_retention_days})",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        deleted = run_cleanup(args.retention_days)
    except Exception as e:
        logger.error(f"Retention cleanup failed: {e}", exc_info=True)
        sys.exit(1)
    logger.info(f"Retention cleanup completed: deleted {deleted} events older than {args.retention_days} days")


if __name__ == "__main__":
    main()
