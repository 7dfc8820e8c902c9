"""
"Share your location" reminder at each vendor's opening time.

Runs every minute. A vendor is due when today (local) is one of its operating days
and the local minute equals its open time. Vendors that already shared a location
today are skipped; the DispatchLog claim guarantees one reminder per vendor per day.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.constants.event_types import campaign_event_type
from app.constants.statuses import (
    DIRECTION_INBOUND,
    DISPATCH_OPEN,
    REMINDER_VENDOR_LOCATION_OPEN,
)
from app.core.config import settings
from app.db.models import Message, Vendor
from app.services.dispatch import claim_dispatch, finish_dispatch
from app.services.intent_matching import is_location_text
from app.services.messaging.outbound import send_and_record
from app.services.messaging.whatsapp_templates import TEMPLATE_UPDATE_LOCATION
from app.services.system_event_service import info
from app.utils.datetime_utils import (
    as_utc,
    js_weekday,
    local_date_str,
    local_day_bounds,
    local_now,
    parse_clock_time,
    utc_now,
)
from app.utils.phone import phone_variants

logger = logging.getLogger(__name__)


def location_shared_today(db: Session, phone: str, now: datetime | None = None) -> bool:
    """Inbound message today with coordinates, or text like "location sent"."""
    start, end = local_day_bounds(now)
    messages = db.execute(
        select(Message).where(
            Message.direction == DIRECTION_INBOUND,
            Message.from_number.in_(phone_variants(phone)),
            Message.timestamp >= start,
            Message.timestamp < end,
        )
    ).scalars()
    return any(m.latitude is not None or is_location_text(m.body) for m in messages)


def is_due_for_location_reminder(vendor: Vendor, now: datetime) -> bool:
    local = local_now(now)
    if js_weekday(local) not in (vendor.operating_days or []):
        return False
    open_minutes = parse_clock_time(vendor.open_time)
    if open_minutes is None:
        return False
    return open_minutes == local.hour * 60 + local.minute


async def run_location_reminders(db: Session, now: datetime | None = None) -> dict:
    """
    One scheduler tick of the opening-time location reminder.

    Returns:
        dict with status and counts (checked, due, sent, skipped, failed)
    """
    if not settings.location_reminder_enabled:
        return {"status": "skipped", "reason": "Location reminders disabled"}

    now = as_utc(now) or utc_now()
    dispatch_date = local_date_str(now)
    vendors = db.execute(
        select(Vendor).where(
            Vendor.whatsapp_consent.is_(True),
            Vendor.open_time.is_not(None),
        )
    ).scalars().all()

    counts = {"checked": 0, "due": 0, "sent": 0, "skipped": 0, "failed": 0}
    for vendor in vendors:
        if not vendor.contact_number:
            continue
        counts["checked"] += 1
        if not is_due_for_location_reminder(vendor, now):
            continue
        counts["due"] += 1

        if location_shared_today(db, vendor.contact_number, now):
            logger.info(f"Vendor {vendor.id} already shared location today - skipping reminder")
            counts["skipped"] += 1
            continue

        claim = claim_dispatch(db, vendor.contact_number, dispatch_date, DISPATCH_OPEN, vendor.id)
        if claim is None:
            counts["skipped"] += 1
            continue

        result = await send_and_record(
            db,
            vendor.contact_number,
            template_name=TEMPLATE_UPDATE_LOCATION,
            reminder_type=REMINDER_VENDOR_LOCATION_OPEN,
            meta={"vendor_id": vendor.id, "open_time": vendor.open_time},
            now=now,
        )
        finish_dispatch(db, claim, result)
        if result["status"] == "failed":
            counts["failed"] += 1
        else:
            counts["sent"] += 1

    if counts["due"]:
        logger.info(f"Location reminders {dispatch_date}: {counts}")
        info(db=db, event_type=campaign_event_type(DISPATCH_OPEN, "completed"), payload=counts)
    return {"status": "completed", **counts}
