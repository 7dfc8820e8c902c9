"""
Inactive vendor support prompts.

Daily scan (default 10:00 local): registered vendors whose last inbound message is
at least `inactive_days` old get the support prompt template. A "yes" reply within
`support_reply_window_hours` turns into a SupportCall (see conversation.inbound).
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.constants.event_types import campaign_event_type
from app.constants.statuses import (
    DIRECTION_INBOUND,
    DIRECTION_OUTBOUND,
    DISPATCH_SUPPORT_PROMPT,
    REMINDER_SUPPORT_PROMPT,
)
from app.core.config import settings
from app.db.models import Contact, DispatchLog, Message, SupportReminderLog, Vendor
from app.services.dispatch import claim_dispatch, finish_dispatch
from app.services.messaging.outbound import send_and_record
from app.services.messaging.whatsapp_templates import TEMPLATE_SUPPORT_PROMPT
from app.services.system_event_service import info
from app.utils.datetime_utils import as_utc, dt_replace_utc, local_date_str, local_day_bounds, utc_now
from app.utils.phone import phone_variants, to_e164

logger = logging.getLogger(__name__)


def inactive_cutoff(now: datetime | None = None) -> datetime:
    """Start of the local day `inactive_days` ago (UTC)."""
    start, _ = local_day_bounds(now, days_ago=settings.inactive_days)
    return start


def _vendor_by_variant(db: Session) -> dict[str, Vendor]:
    mapping: dict[str, Vendor] = {}
    for vendor in db.execute(select(Vendor).order_by(Vendor.id)).scalars():
        for variant in phone_variants(vendor.contact_number):
            mapping.setdefault(variant, vendor)
    return mapping


def _last_support_prompt(db: Session, phone: str, since: datetime) -> Message | None:
    messages = db.execute(
        select(Message)
        .where(
            Message.direction == DIRECTION_OUTBOUND,
            Message.to_number.in_(phone_variants(phone)),
            Message.timestamp >= since,
        )
        .order_by(Message.timestamp.desc())
    ).scalars()
    for m in messages:
        if (m.meta or {}).get("reminder_type") == REMINDER_SUPPORT_PROMPT:
            return m
    return None


def _replied_since(db: Session, phone: str, since: datetime) -> bool:
    return db.execute(
        select(Message.id)
        .where(
            Message.direction == DIRECTION_INBOUND,
            Message.from_number.in_(phone_variants(phone)),
            Message.timestamp > since,
        )
        .limit(1)
    ).first() is not None


def last_reminder_log(db: Session, phone: str) -> SupportReminderLog | None:
    return db.execute(
        select(SupportReminderLog)
        .where(SupportReminderLog.contact_number.in_(phone_variants(phone)))
        .order_by(SupportReminderLog.sent_at.desc())
    ).scalars().first()


async def send_support_prompt(
    db: Session,
    vendor: Vendor,
    now: datetime | None = None,
    dispatch: DispatchLog | None = None,
) -> dict:
    """Send the support prompt to one vendor and log it (also used for manual sends)."""
    now = as_utc(now) or utc_now()
    result = await send_and_record(
        db,
        vendor.contact_number,
        template_name=TEMPLATE_SUPPORT_PROMPT,
        reminder_type=REMINDER_SUPPORT_PROMPT,
        meta={"vendor_id": vendor.id},
        now=now,
    )
    if dispatch is not None:
        finish_dispatch(db, dispatch, result)
    if result["status"] != "failed":
        db.add(SupportReminderLog(contact_number=to_e164(vendor.contact_number), sent_at=now))
        db.commit()
    return result


async def run_support_reminders(db: Session, now: datetime | None = None) -> dict:
    """
    Send support prompts to inactive registered vendors.

    Returns:
        dict with status and counts (inactive, sent, skipped, failed)
    """
    if not settings.support_reminder_enabled:
        return {"status": "skipped", "reason": "Support reminders disabled"}

    now = as_utc(now) or utc_now()
    cutoff = inactive_cutoff(now)
    window_start = now - timedelta(days=settings.inactive_days)
    cooldown = timedelta(hours=settings.support_reminder_cooldown_hours)
    dispatch_date = local_date_str(now)
    vendors = _vendor_by_variant(db)

    contacts = db.execute(
        select(Contact).where(Contact.last_seen <= cutoff).order_by(Contact.last_seen)
    ).scalars().all()

    counts = {"inactive": 0, "sent": 0, "skipped": 0, "failed": 0}
    seen_vendor_ids: set[int] = set()
    for contact in contacts:
        vendor = vendors.get(contact.phone)
        if vendor is None or vendor.id in seen_vendor_ids:
            continue
        seen_vendor_ids.add(vendor.id)
        counts["inactive"] += 1

        last_prompt = _last_support_prompt(db, contact.phone, window_start)
        if last_prompt is not None and _replied_since(db, contact.phone, dt_replace_utc(last_prompt.timestamp)):
            counts["skipped"] += 1
            continue

        last_log = last_reminder_log(db, contact.phone)
        if last_log is not None and now - dt_replace_utc(last_log.sent_at) < cooldown:
            counts["skipped"] += 1
            continue

        claim = claim_dispatch(db, contact.phone, dispatch_date, DISPATCH_SUPPORT_PROMPT, vendor.id)
        if claim is None:
            counts["skipped"] += 1
            continue

        result = await send_support_prompt(db, vendor, now=now, dispatch=claim)
        if result["status"] == "failed":
            counts["failed"] += 1
        else:
            counts["sent"] += 1

    logger.info(f"Support reminders {dispatch_date}: {counts}")
    info(db=db, event_type=campaign_event_type(DISPATCH_SUPPORT_PROMPT, "completed"), payload=counts)
    return {"status": "completed", **counts}


def list_inactive_vendors(
    db: Session,
    page: int = 1,
    limit: int = 50,
    now: datetime | None = None,
) -> dict:
    """Paginated inactive registered vendors, longest inactive first."""
    now = as_utc(now) or utc_now()
    vendors = _vendor_by_variant(db)
    query_filter = (Contact.last_seen <= inactive_cutoff(now), Contact.phone.in_(list(vendors)))

    total = db.execute(select(func.count(Contact.id)).where(*query_filter)).scalar_one()
    contacts = db.execute(
        select(Contact)
        .where(*query_filter)
        .order_by(Contact.last_seen)
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()

    rows = []
    for contact in contacts:
        vendor = vendors[contact.phone]
        last_seen = dt_replace_utc(contact.last_seen)
        log = last_reminder_log(db, contact.phone)
        rows.append(
            {
                "vendor_id": vendor.id,
                "name": vendor.name,
                "contact_number": vendor.contact_number,
                "last_seen": last_seen,
                "days_inactive": (now - last_seen).days,
                "reminder_status": "Sent" if log else "Not sent",
                "reminder_sent_at": dt_replace_utc(log.sent_at) if log else None,
            }
        )
    return {
        "vendors": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit if limit else 0,
        },
    }
