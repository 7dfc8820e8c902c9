"""
Campaign scheduler (APScheduler, local business timezone).

Jobs:
- location_reminders: every minute (opening-time location nudge)
- support_reminders: daily at support_reminder_hour
- announcement: daily at announcement_hour (no-op outside the date window)
- weekly_campaign: weekly_campaign_cron, only if a template is configured
- system_event_retention: daily at 03:30
- heartbeat: every 5 minutes

Either run in-process (SCHEDULER_ENABLED=true, started on app startup) or as a
dedicated worker: python -m app.jobs.run_scheduler
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from app.constants.event_types import EVENT_SCHEDULER_JOB_FAILURE
from app.core.config import settings
from app.db import session as db_session
from app.middleware.correlation_id import reset_correlation_id, set_correlation_id
from app.services.campaigns import run_announcement_campaign, run_weekly_campaign
from app.services.location_reminders import run_location_reminders
from app.services.support_reminders import run_support_reminders
from app.services.system_event_service import cleanup_old_events, error

logger = logging.getLogger(__name__)

JOB_LOCATION = "location_reminders"
JOB_SUPPORT = "support_reminders"
JOB_ANNOUNCEMENT = "announcement"
JOB_WEEKLY = "weekly_campaign"
JOB_RETENTION = "system_event_retention"
JOB_HEARTBEAT = "heartbeat"

_scheduler: AsyncIOScheduler | None = None
_last_heartbeat: datetime | None = None
_last_results: dict[str, dict] = {}


async def run_job(name: str, func: Callable[[Session], Awaitable[dict]]) -> dict | None:
    """
    Run one job with its own session. Failures are logged and stored as a
    SystemEvent; they never propagate into the scheduler.
    """
    token = set_correlation_id(f"job-{name}-{uuid.uuid4().hex[:8]}")
    db = db_session.SessionLocal()
    try:
        result = await func(db)
        _last_results[name] = {"at": datetime.now(UTC).isoformat(), "result": result}
        logger.debug(f"Scheduler job {name} finished: {result}")
        return result
    except Exception as e:
        logger.error(f"Scheduler job {name} failed: {type(e).__name__}: {e}", exc_info=True)
        db.rollback()
        error(db=db, event_type=EVENT_SCHEDULER_JOB_FAILURE, payload={"job": name}, exc=e)
        _last_results[name] = {"at": datetime.now(UTC).isoformat(), "error": str(e)[:500]}
        return None
    finally:
        db.close()
        reset_correlation_id(token)


async def _location_job() -> None:
    await run_job(JOB_LOCATION, run_location_reminders)


async def _support_job() -> None:
    await run_job(JOB_SUPPORT, run_support_reminders)


async def _announcement_job() -> None:
    await run_job(JOB_ANNOUNCEMENT, run_announcement_campaign)


async def _weekly_job() -> None:
    await run_job(JOB_WEEKLY, run_weekly_campaign)


async def _retention_job() -> None:
    async def _cleanup(db: Session) -> dict:
        deleted = cleanup_old_events(db, retention_days=settings.system_event_retention_days)
        return {"deleted": deleted}

    await run_job(JOB_RETENTION, _cleanup)


def heartbeat() -> None:
    global _last_heartbeat
    _last_heartbeat = datetime.now(UTC)
    logger.info(f"Scheduler heartbeat {_last_heartbeat.isoformat()}")


def build_scheduler() -> AsyncIOScheduler:
    tz = settings.timezone
    scheduler = AsyncIOScheduler(timezone=tz)
    # coalesce + max_instances=1: a slow tick is never run twice in parallel
    job_defaults = {"coalesce": True, "max_instances": 1, "misfire_grace_time": 30}

    scheduler.add_job(
        _location_job, IntervalTrigger(minutes=1, timezone=tz), id=JOB_LOCATION, **job_defaults
    )
    scheduler.add_job(
        _support_job,
        CronTrigger(hour=settings.support_reminder_hour, minute=0, timezone=tz),
        id=JOB_SUPPORT,
        **job_defaults,
    )
    scheduler.add_job(
        _announcement_job,
        CronTrigger(hour=settings.announcement_hour, minute=0, timezone=tz),
        id=JOB_ANNOUNCEMENT,
        **job_defaults,
    )
    if settings.weekly_campaign_template:
        scheduler.add_job(
            _weekly_job,
            CronTrigger.from_crontab(settings.weekly_campaign_cron, timezone=tz),
            id=JOB_WEEKLY,
            **job_defaults,
        )
    scheduler.add_job(
        _retention_job, CronTrigger(hour=3, minute=30, timezone=tz), id=JOB_RETENTION, **job_defaults
    )
    scheduler.add_job(heartbeat, IntervalTrigger(minutes=5, timezone=tz), id=JOB_HEARTBEAT)
    return scheduler


def start_scheduler() -> AsyncIOScheduler:
    """Start the shared scheduler (idempotent). Must be called with a running event loop."""
    global _scheduler
    if _scheduler is None:
        _scheduler = build_scheduler()
    if not _scheduler.running:
        _scheduler.start()
        heartbeat()
        logger.info(f"Scheduler started with jobs: {[j.id for j in _scheduler.get_jobs()]}")
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None


def get_scheduler_health(scheduler: AsyncIOScheduler | None = None) -> dict:
    scheduler = scheduler or _scheduler
    if scheduler is None:
        return {"running": False, "jobs": [], "last_heartbeat": None, "last_results": _last_results}
    jobs = [
        {
            "id": job.id,
            "next_run_time": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
            "trigger": str(job.trigger),
        }
        for job in scheduler.get_jobs()
    ]
    return {
        "running": scheduler.running,
        "timezone": settings.timezone,
        "jobs": jobs,
        "last_heartbeat": _last_heartbeat.isoformat() if _last_heartbeat else None,
        "last_results": _last_results,
    }
