"""
Read-side queries over Message / SupportReminderLog for the dashboard.

Day, week and month boundaries use the local business timezone.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.constants.statuses import (
    DELIVERY_FAILED,
    DIRECTION_INBOUND,
    DIRECTION_OUTBOUND,
    REMINDER_SUPPORT_PROMPT,
    REMINDER_VENDOR_LOCATION_OPEN,
)
from app.db.models import Message, Vendor
from app.services.contacts import vendor_names_by_phone
from app.services.messaging.whatsapp_templates import TEMPLATE_SUPPORT_PROMPT, TEMPLATE_UPDATE_LOCATION
from app.services.vendors import count_open_vendors
from app.utils.datetime_utils import as_utc, dt_replace_utc, get_timezone, local_day_bounds, local_now, utc_now
from app.utils.phone import phone_variants, strip_whatsapp_prefix

logger = logging.getLogger(__name__)

UNKNOWN_VENDOR = "Unknown Vendor"
GROUP_LOCATION = "location"
GROUP_SUPPORT_PROMPT = "support_prompt"
GROUP_OTHER = "other"


def _is_failed(message: Message) -> bool:
    return message.delivery_status == DELIVERY_FAILED or bool(message.error_code or message.error_message)


def _reminder_group(message: Message) -> str:
    reminder_type = (message.meta or {}).get("reminder_type")
    if reminder_type == REMINDER_VENDOR_LOCATION_OPEN or message.template_name == TEMPLATE_UPDATE_LOCATION:
        return GROUP_LOCATION
    if reminder_type == REMINDER_SUPPORT_PROMPT or message.template_name == TEMPLATE_SUPPORT_PROMPT:
        return GROUP_SUPPORT_PROMPT
    return GROUP_OTHER


def outbound_health_today(db: Session, now: datetime | None = None) -> dict:
    """Today's (local) outbound totals plus the failed messages."""
    now = as_utc(now) or utc_now()
    start, end = local_day_bounds(now)
    messages = db.execute(
        select(Message)
        .where(
            Message.direction == DIRECTION_OUTBOUND,
            Message.timestamp >= start,
            Message.timestamp < end,
        )
        .order_by(Message.timestamp.desc())
    ).scalars().all()

    failed = [m for m in messages if _is_failed(m)]
    names = vendor_names_by_phone(db, [m.to_number for m in failed])
    total = len(messages)
    successful = total - len(failed)
    return {
        "today": {
            "total": total,
            "successful": successful,
            "failed": len(failed),
            "success_rate": round(successful * 100 / total, 1) if total else 100.0,
        },
        "failed_messages": [
            {
                "contact_number": m.to_number,
                "vendor_name": names.get(m.to_number, UNKNOWN_VENDOR),
                "error": m.error_message or "Unknown error",
                "timestamp": dt_replace_utc(m.timestamp),
            }
            for m in failed
        ],
        "last_updated": now,
    }


def inbound_count(db: Session) -> int:
    return db.execute(
        select(func.count(Message.id)).where(Message.direction == DIRECTION_INBOUND)
    ).scalar_one()


def _inbound_since(db: Session, since: datetime) -> list[tuple[str, datetime]]:
    rows = db.execute(
        select(Message.from_number, Message.timestamp)
        .where(Message.direction == DIRECTION_INBOUND, Message.timestamp >= since)
        .order_by(Message.timestamp.desc())
    ).all()
    return [(strip_whatsapp_prefix(phone), dt_replace_utc(ts)) for phone, ts in rows]


def active_vendor_count(db: Session, hours: int = 24, now: datetime | None = None) -> int:
    now = as_utc(now) or utc_now()
    return len({phone for phone, _ in _inbound_since(db, now - timedelta(hours=hours))})


def active_vendor_list(db: Session, hours: int = 24, now: datetime | None = None) -> list[dict]:
    """Distinct inbound senders in the window, most recent first."""
    now = as_utc(now) or utc_now()
    last_contact: dict[str, datetime] = {}
    for phone, ts in _inbound_since(db, now - timedelta(hours=hours)):
        last_contact.setdefault(phone, ts)
    names = vendor_names_by_phone(db, list(last_contact))
    return [
        {"contact_number": phone, "name": names.get(phone, ""), "last_contact": ts}
        for phone, ts in last_contact.items()
    ]


def active_vendor_stats(db: Session, now: datetime | None = None) -> dict:
    """
    Distinct inbound senders per day of the current local week (Monday first),
    for the whole week and for the current month.
    """
    local = local_now(now)
    tz = get_timezone()
    week_start_date = local.date() - timedelta(days=local.weekday())
    month_start_date = local.date().replace(day=1)
    since_date = min(week_start_date, month_start_date)
    since = tz.localize(datetime.combine(since_date, datetime.min.time()))

    rows = _inbound_since(db, as_utc(since))
    by_day: dict = {}
    for phone, ts in rows:
        by_day.setdefault(ts.astimezone(tz).date(), set()).add(phone)

    days = []
    week_senders: set[str] = set()
    for offset in range(7):
        day = week_start_date + timedelta(days=offset)
        senders = by_day.get(day, set())
        week_senders |= senders
        days.append({"date": day.isoformat(), "count": len(senders)})

    month_senders: set[str] = set()
    for day, senders in by_day.items():
        if day >= month_start_date:
            month_senders |= senders

    return {
        "days": days,
        "week": {
            "start": week_start_date.isoformat(),
            "end": (week_start_date + timedelta(days=6)).isoformat(),
            "count": len(week_senders),
        },
        "month": {"month": month_start_date.strftime("%Y-%m"), "count": len(month_senders)},
    }


def chat_history(db: Session, phone: str) -> list[Message]:
    variants = phone_variants(phone)
    if not variants:
        return []
    return db.execute(
        select(Message)
        .where(or_(Message.from_number.in_(variants), Message.to_number.in_(variants)))
        .order_by(Message.timestamp, Message.id)
    ).scalars().all()


def message_health(db: Session, hours: int = 48, now: datetime | None = None) -> dict:
    """Outbound sent/failed counts in the window, grouped by reminder kind."""
    now = as_utc(now) or utc_now()
    since = now - timedelta(hours=hours)
    messages = db.execute(
        select(Message).where(Message.direction == DIRECTION_OUTBOUND, Message.timestamp >= since)
    ).scalars().all()

    groups = {
        group: {"total": 0, "sent": 0, "failed": 0}
        for group in (GROUP_LOCATION, GROUP_SUPPORT_PROMPT, GROUP_OTHER)
    }
    for m in messages:
        bucket = groups[_reminder_group(m)]
        bucket["total"] += 1
        bucket["failed" if _is_failed(m) else "sent"] += 1

    return {
        "time_range": {"from": since, "to": now},
        "groups": groups,
        "total": len(messages),
        "failed": sum(g["failed"] for g in groups.values()),
    }


def recent_activity(db: Session, hours: int = 24, now: datetime | None = None) -> dict:
    """Support prompts and location reminders sent in the window."""
    now = as_utc(now) or utc_now()
    since = now - timedelta(hours=hours)
    messages = db.execute(
        select(Message)
        .where(Message.direction == DIRECTION_OUTBOUND, Message.timestamp >= since)
        .order_by(Message.timestamp.desc())
    ).scalars().all()

    support = [m for m in messages if _reminder_group(m) == GROUP_SUPPORT_PROMPT]
    location = [m for m in messages if _reminder_group(m) == GROUP_LOCATION]
    names = vendor_names_by_phone(db, list({m.to_number for m in support + location}))

    def _row(m: Message) -> dict:
        return {
            "contact_number": m.to_number,
            "vendor_name": names.get(m.to_number, UNKNOWN_VENDOR),
            "timestamp": dt_replace_utc(m.timestamp),
            "message_id": m.wa_message_id or str(m.id),
            "delivery_status": m.delivery_status,
            "meta": m.meta,
        }

    return {
        "success": True,
        "time_range": {"from": since, "to": now},
        "support_call_reminders": [_row(m) for m in support],
        "location_update_messages": [_row(m) for m in location],
        "summary": {
            "total_support_reminders": len(support),
            "total_location_updates": len(location),
            "total_messages": len(support) + len(location),
        },
    }


def dashboard_stats(db: Session, now: datetime | None = None) -> dict:
    return {
        "total_vendors": db.execute(select(func.count(Vendor.id))).scalar_one(),
        "total_messages": inbound_count(db),
        "open_vendors": count_open_vendors(db, now),
        "active_vendors_24h": active_vendor_count(db, 24, now),
    }
