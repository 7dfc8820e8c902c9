"""
Vendor engagement dashboard: support calls, loan replies, reminder health and
inactive vendors.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.auth import get_current_admin
from app.api.dependencies import get_vendor_or_404
from app.constants.event_types import EVENT_SUPPORT_CALL_COMPLETED
from app.db.deps import get_db
from app.db.helpers import commit_and_refresh
from app.db.models import Admin, LoanReply, SupportCall, Vendor
from app.schemas.messages import LoanReplyResponse, SupportCallResponse
from app.services import message_stats
from app.services.messaging.outbound import send_and_record
from app.services.messaging.whatsapp_templates import TEMPLATE_POST_SUPPORT_CALL
from app.services.support_reminders import list_inactive_vendors, send_support_prompt
from app.services.system_event_service import info
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()
dashboard_router = APIRouter()


@router.get("/support-calls", response_model=list[SupportCallResponse])
def list_support_calls(
    completed: bool | None = None,
    limit: int = 200,
    db: Session = Depends(get_db),
):
    stmt = select(SupportCall).order_by(SupportCall.requested_at.desc(), SupportCall.id.desc())
    if completed is not None:
        stmt = stmt.where(SupportCall.completed.is_(completed))
    return db.execute(stmt.limit(max(1, min(limit, 1000)))).scalars().all()


@router.patch("/support-calls/{call_id}/complete", response_model=SupportCallResponse)
async def complete_support_call(
    call_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    call = db.get(SupportCall, call_id)
    if call is None:
        raise HTTPException(status_code=404, detail="Support call not found")
    if call.completed:
        return call

    call.completed = True
    call.completed_by = admin.username
    call.completed_at = utc_now()
    commit_and_refresh(db, call)
    info(
        db=db,
        event_type=EVENT_SUPPORT_CALL_COMPLETED,
        contact_number=call.contact_number,
        payload={"support_call_id": call.id, "completed_by": admin.username},
    )

    result = await send_and_record(
        db,
        call.contact_number,
        template_name=TEMPLATE_POST_SUPPORT_CALL,
        meta={"support_call_id": call.id},
    )
    if result["status"] == "failed":
        logger.warning(f"Post-support-call message for call {call.id} failed: {result.get('error')}")
    return call


@router.get("/loan-replies", response_model=list[LoanReplyResponse])
def list_loan_replies(limit: int = 200, db: Session = Depends(get_db)):
    return db.execute(
        select(LoanReply)
        .order_by(LoanReply.replied_at.desc(), LoanReply.id.desc())
        .limit(max(1, min(limit, 1000)))
    ).scalars().all()


@router.get("/message-health")
def reminder_message_health(db: Session = Depends(get_db)):
    """Outbound sent/failed over the last 48 hours by reminder kind."""
    return message_stats.message_health(db, hours=48)


@router.get("/recent-activity")
def recent_reminder_activity(db: Session = Depends(get_db)):
    return message_stats.recent_activity(db, hours=24)


@router.get("/inactive-vendors")
def inactive_vendors(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_inactive_vendors(db, page=page, limit=limit)


@router.post("/send-reminder/{vendor_id}")
async def send_reminder(
    vendor: Vendor = Depends(get_vendor_or_404),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    """Send the support prompt to one vendor now (no dispatch slot, no cooldown)."""
    result = await send_support_prompt(db, vendor)
    if result["status"] == "failed":
        raise HTTPException(status_code=502, detail=f"Failed to send reminder: {result.get('error')}")
    logger.info(f"Manual support reminder to vendor {vendor.id} by {admin.username}")
    return {"success": True, "vendor_id": vendor.id, **result}


@dashboard_router.get("/dashboard-stats")
def dashboard_stats(db: Session = Depends(get_db)):
    return message_stats.dashboard_stats(db)
