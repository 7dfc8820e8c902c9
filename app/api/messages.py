"""
Message history, outbound sends and activity stats for the dashboard.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.auth import get_current_admin
from app.constants.providers import PROVIDER_META, PROVIDER_TWILIO
from app.db.deps import get_db
from app.db.models import Admin
from app.schemas.messages import MessageResponse, SendMessageRequest
from app.services import message_stats
from app.services.messaging.outbound import send_and_record
from app.utils.phone import to_e164

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/send")
async def send_message(
    body: SendMessageRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    """Send a free-text session message (only delivered inside the 24h window)."""
    if body.provider not in (PROVIDER_TWILIO, PROVIDER_META):
        raise HTTPException(status_code=400, detail=f"Unknown provider '{body.provider}'")
    if not to_e164(body.to):
        raise HTTPException(status_code=400, detail="Invalid phone number")

    result = await send_and_record(
        db, body.to, text=body.body, provider=body.provider, meta={"sent_by": admin.username}
    )
    if result["status"] == "failed":
        raise HTTPException(status_code=502, detail=f"Failed to send message: {result.get('error')}")
    return {"success": True, **result}


@router.get("/health")
def message_health_today(db: Session = Depends(get_db)):
    return message_stats.outbound_health_today(db)


@router.get("/inbound-count")
def inbound_count(db: Session = Depends(get_db)):
    return {"count": message_stats.inbound_count(db)}


@router.get("/active-vendors-24h")
def active_vendors_24h(db: Session = Depends(get_db)):
    return {"count": message_stats.active_vendor_count(db, hours=24)}


@router.get("/active-vendor-list-24h")
def active_vendor_list_24h(db: Session = Depends(get_db)):
    return message_stats.active_vendor_list(db, hours=24)


@router.get("/active-vendors-stats")
def active_vendors_stats(db: Session = Depends(get_db)):
    return message_stats.active_vendor_stats(db)


@router.get("/{phone}", response_model=list[MessageResponse])
def get_chat_history(phone: str, db: Session = Depends(get_db)):
    messages = message_stats.chat_history(db, phone)
    if not messages:
        raise HTTPException(status_code=404, detail="No messages found for this number")
    return messages
