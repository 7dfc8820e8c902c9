"""
Broadcast campaigns: one template to every consenting vendor.

- run_template_broadcast: generic, once per vendor per local day per dispatch type
- run_announcement_campaign: daily within a configured date window
- run_weekly_campaign: weekly template on a cron schedule
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.constants.event_types import campaign_event_type
from app.constants.statuses import DISPATCH_ANNOUNCEMENT, DISPATCH_WEEKLY
from app.core.config import settings
from app.db.models import Vendor
from app.services.dispatch import claim_dispatch, finish_dispatch
from app.services.messaging.outbound import send_and_record
from app.services.system_event_service import info
from app.utils.datetime_utils import as_utc, local_date_str, local_now, utc_now
from app.utils.phone import digits_only

logger = logging.getLogger(__name__)


def has_valid_contact(vendor: Vendor) -> bool:
    return len(digits_only(vendor.contact_number)) >= 10


async def run_template_broadcast(
    db: Session,
    template_name: str,
    dispatch_type: str,
    now: datetime | None = None,
    body_params: list[str] | None = None,
) -> dict:
    """
    Send `template_name` to every consenting vendor with a valid contact number.

    Returns:
        dict with status and counts (eligible, sent, skipped, failed)
    """
    now = as_utc(now) or utc_now()
    dispatch_date = local_date_str(now)
    vendors = db.execute(
        select(Vendor).where(Vendor.whatsapp_consent.is_(True)).order_by(Vendor.id)
    ).scalars().all()

    counts = {"eligible": 0, "sent": 0, "skipped": 0, "failed": 0}
    for vendor in vendors:
        if not has_valid_contact(vendor):
            logger.warning(f"Vendor {vendor.id} has invalid contact {vendor.contact_number!r} - skipping")
            continue
        counts["eligible"] += 1
        claim = claim_dispatch(db, vendor.contact_number, dispatch_date, dispatch_type, vendor.id)
        if claim is None:
            counts["skipped"] += 1
            continue
        result = await send_and_record(
            db,
            vendor.contact_number,
            template_name=template_name,
            body_params=body_params,
            meta={"vendor_id": vendor.id, "campaign": dispatch_type},
            now=now,
        )
        finish_dispatch(db, claim, result)
        if result["status"] == "failed":
            counts["failed"] += 1
        else:
            counts["sent"] += 1

    logger.info(f"Broadcast {template_name} ({dispatch_type}) {dispatch_date}: {counts}")
    info(
        db=db,
        event_type=campaign_event_type(dispatch_type, "completed"),
        payload={"template_name": template_name, **counts},
    )
    return {"status": "completed", "template_name": template_name, **counts}


async def run_announcement_campaign(db: Session, now: datetime | None = None) -> dict:
    """Daily announcement while today (local) is within [start_date, end_date]."""
    if not settings.announcement_template:
        return {"status": "skipped", "reason": "No announcement template configured"}
    today = local_now(now).date()
    start, end = settings.announcement_start_date, settings.announcement_end_date
    if (start and today < start) or (end and today > end):
        return {"status": "skipped", "reason": f"{today.isoformat()} outside announcement window"}
    return await run_template_broadcast(db, settings.announcement_template, DISPATCH_ANNOUNCEMENT, now)


async def run_weekly_campaign(db: Session, now: datetime | None = None) -> dict:
    if not settings.weekly_campaign_template:
        return {"status": "skipped", "reason": "No weekly campaign template configured"}
    return await run_template_broadcast(db, settings.weekly_campaign_template, DISPATCH_WEEKLY, now)
