"""
Durable operational events (SystemEvent rows).

Webhook failures, send failures, campaign summaries and scheduler errors are
written here so the ops dashboard (/admin/events) can show them after the
process logs are gone. Every event is mirrored to the application log.
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.db.models import SystemEvent
from app.middleware.correlation_id import get_correlation_id

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 90
MAX_ERROR_MESSAGE_LENGTH = 500

_LOG_LEVELS = {"INFO": logging.INFO, "WARN": logging.WARNING, "ERROR": logging.ERROR}


def log_event(
    db: Session,
    level: str,
    event_type: str,
    contact_number: str | None = None,
    payload: dict | None = None,
    exc: BaseException | None = None,
    correlation_id: str | None = None,
) -> SystemEvent:
    """
    Store one event and commit.

    The payload is copied; `exc` adds {"error": {"type", "message"}} and the
    request/job correlation ID is added when one is active.
    """
    level = level.upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown event level {level!r}")

    data = dict(payload or {})
    if exc is not None:
        data["error"] = {"type": type(exc).__name__, "message": str(exc)[:MAX_ERROR_MESSAGE_LENGTH]}
    cid = correlation_id if correlation_id is not None else get_correlation_id()
    if cid is not None:
        data["correlation_id"] = cid

    event = SystemEvent(
        level=level,
        event_type=event_type,
        contact_number=contact_number,
        payload=data or None,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.log(_LOG_LEVELS[level], f"event {event_type} contact={contact_number or '-'} payload={data}")
    return event


def info(db: Session, event_type: str, **fields) -> SystemEvent:
    return log_event(db, "INFO", event_type, **fields)


def warn(db: Session, event_type: str, **fields) -> SystemEvent:
    return log_event(db, "WARN", event_type, **fields)


def error(db: Session, event_type: str, **fields) -> SystemEvent:
    return log_event(db, "ERROR", event_type, **fields)


def list_events(
    db: Session,
    *,
    limit: int = 100,
    level: str | None = None,
    event_type: str | None = None,
) -> list[SystemEvent]:
    """Newest first. event_type matches as a prefix ("campaign." gets every campaign summary)."""
    query = db.query(SystemEvent)
    if level:
        query = query.filter(SystemEvent.level == level.upper())
    if event_type:
        query = query.filter(SystemEvent.event_type.startswith(event_type))
    return query.order_by(SystemEvent.created_at.desc(), SystemEvent.id.desc()).limit(limit).all()


def cleanup_old_events(
    db: Session,
    *,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    cutoff: datetime | None = None,
) -> int:
    """Delete events created before `cutoff` (default: now - retention_days). Returns the row count."""
    if cutoff is None:
        cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    elif cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=UTC)
    result = db.execute(delete(SystemEvent).where(SystemEvent.created_at < cutoff))
    db.commit()
    logger.info(f"SystemEvent retention: deleted {result.rowcount} events older than {cutoff.isoformat()}")
    return result.rowcount
