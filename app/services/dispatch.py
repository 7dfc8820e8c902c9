"""
Campaign dispatch claims.

A DispatchLog row is inserted BEFORE sending. The unique constraint on
(contact_number, dispatch_date, dispatch_type) makes the insert the lock: a second
scheduler tick (or a second worker) racing on the same vendor gets an IntegrityError
and skips, so each vendor receives a campaign at most once per local day.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.helpers import is_unique_violation
from app.db.models import DispatchLog
from app.utils.phone import to_e164

logger = logging.getLogger(__name__)


def claim_dispatch(
    db: Session,
    contact_number: str,
    dispatch_date: str,
    dispatch_type: str,
    vendor_id: int | None = None,
) -> DispatchLog | None:
    """
    Insert the dispatch row. Returns None if this (contact, date, type) was already claimed.
    """
    row = DispatchLog(
        vendor_id=vendor_id,
        contact_number=to_e164(contact_number) or contact_number,
        dispatch_date=dispatch_date,
        dispatch_type=dispatch_type,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError as e:
        if not is_unique_violation(e):
            raise  # Re-raise to avoid hiding real DB bugs
        db.rollback()
        logger.debug(f"Dispatch {dispatch_type} {dispatch_date} already claimed for {contact_number}")
        return None
    db.refresh(row)
    return row


def finish_dispatch(db: Session, row: DispatchLog, send_result: dict) -> DispatchLog:
    """Record the send outcome on a claimed dispatch row."""
    row.success = send_result.get("status") != "failed"
    row.wa_message_id = send_result.get("message_id")
    row.error = send_result.get("error")
    db.commit()
    return row
