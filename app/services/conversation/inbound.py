"""
Inbound message handling for vendors (Meta and Twilio).

There is no stored conversation state: each message is classified on its own and
"context" (was a support prompt sent recently? did we just reply to a greeting?)
is read back from recent outbound Message rows.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.constants.event_types import (
    EVENT_AADHAAR_VERIFIED,
    EVENT_LOAN_REPLY_RECORDED,
    EVENT_LOCATION_SHARED,
    EVENT_SUPPORT_CALL_REQUESTED,
)
from app.constants.providers import PROVIDER_META, PROVIDER_TWILIO
from app.constants.statuses import (
    DELIVERY_RECEIVED,
    DIRECTION_INBOUND,
    DIRECTION_OUTBOUND,
    REMINDER_SUPPORT_PROMPT,
)
from app.core.config import settings
from app.db.models import LoanReply, Message, SupportCall
from app.services import intent_matching
from app.services.contacts import touch_contact
from app.services.messaging.outbound import send_and_record
from app.services.messaging.whatsapp_templates import (
    AADHAAR_VERIFIED_TEXT,
    BUTTON_YES_SUPPORT,
    BUTTON_YES_VERIFY_AADHAAR,
    LOCATION_UPDATED_TEXT,
    TEMPLATE_GREETING_LOAN_PROMPT,
    TEMPLATE_LOAN_REPLY_AADHAAR,
    TEMPLATE_SUPPORT_CALL_CONFIRMATION,
    TEMPLATE_WELCOME_ONBOARDING,
)
from app.services.system_event_service import info
from app.services.vendors import apply_shared_location, find_vendor_by_phone
from app.utils.datetime_utils import as_utc, utc_now
from app.utils.phone import phone_variants, to_e164

logger = logging.getLogger(__name__)

UNKNOWN_VENDOR_NAME = "Unknown"
LOAN_REPLY_DEDUP_WINDOW = timedelta(minutes=1)
SUPPORT_CALL_DEDUP_WINDOW = timedelta(hours=1)

ACTION_STORED = "stored"
ACTION_LOCATION_UPDATED = "location_updated"
ACTION_AADHAAR_VERIFIED = "aadhaar_verified"
ACTION_LOAN_REPLY = "loan_reply_sent"
ACTION_SUPPORT_CALL = "support_call_requested"
ACTION_WELCOME = "welcome_sent"
ACTION_GREETING = "greeting_reply_sent"
ACTION_COOLDOWN = "cooldown"
ACTION_IGNORED = "ignored"


def _twilio_content_sid(template_name: str) -> str | None:
    """Twilio Content API equivalents of the Meta templates we reply with."""
    return {
        TEMPLATE_GREETING_LOAN_PROMPT: settings.twilio_greeting_content_sid,
        TEMPLATE_LOAN_REPLY_AADHAAR: settings.twilio_loan_content_sid,
        TEMPLATE_WELCOME_ONBOARDING: settings.twilio_welcome_content_sid,
    }.get(template_name)


async def _reply_template(
    db: Session, phone: str, provider: str, template_name: str, now: datetime | None = None
) -> dict:
    if provider == PROVIDER_TWILIO:
        content_sid = _twilio_content_sid(template_name)
        if not content_sid:
            logger.info(f"No Twilio content SID for {template_name} - reply to {phone} skipped")
            return {"status": "skipped", "reason": "no_twilio_template"}
        return await send_and_record(
            db,
            phone,
            provider=PROVIDER_TWILIO,
            template_name=template_name,
            content_sid=content_sid,
            now=now,
        )
    return await send_and_record(db, phone, template_name=template_name, now=now)


async def _reply_text(
    db: Session, phone: str, provider: str, text: str, now: datetime | None = None
) -> dict:
    return await send_and_record(db, phone, provider=provider, text=text, now=now)


def _recent_outbound(db: Session, phone: str, since: datetime) -> list[Message]:
    return list(
        db.execute(
            select(Message)
            .where(
                Message.direction == DIRECTION_OUTBOUND,
                Message.to_number.in_(phone_variants(phone)),
                Message.timestamp >= since,
            )
            .order_by(Message.timestamp.desc())
        ).scalars()
    )


def template_sent_since(db: Session, phone: str, template_name: str, since: datetime) -> bool:
    return any(m.template_name == template_name for m in _recent_outbound(db, phone, since))


def reminder_sent_since(db: Session, phone: str, reminder_type: str, since: datetime) -> bool:
    return any(
        (m.meta or {}).get("reminder_type") == reminder_type
        for m in _recent_outbound(db, phone, since)
    )


def record_inbound(
    db: Session,
    phone: str,
    *,
    text: str | None,
    provider: str,
    message_type: str = "text",
    to_number: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    wa_message_id: str | None = None,
    meta: dict | None = None,
    now: datetime | None = None,
) -> Message:
    """Store an inbound Message and bump the contact's last_seen."""
    now = as_utc(now) or utc_now()
    e164 = to_e164(phone) or phone
    if to_number is None:
        to_number = (
            to_e164(settings.twilio_phone_number) if provider == PROVIDER_TWILIO
            else settings.whatsapp_phone_number_id
        ) or ""
    message = Message(
        from_number=e164,
        to_number=to_number,
        body=text if text else ("[location message]" if latitude is not None else f"[{message_type} message]"),
        direction=DIRECTION_INBOUND,
        timestamp=now,
        message_type=message_type,
        latitude=latitude,
        longitude=longitude,
        provider=provider,
        wa_message_id=wa_message_id,
        meta=meta or None,
        delivery_status=DELIVERY_RECEIVED,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    touch_contact(db, e164, now)
    return message


async def handle_aadhaar_confirmation(db: Session, phone: str, provider: str, now: datetime) -> dict:
    vendor = find_vendor_by_phone(db, phone)
    if vendor is not None:
        vendor.aadhar_verified = True
        vendor.aadhar_verified_at = now

    loan_reply = db.execute(
        select(LoanReply)
        .where(LoanReply.contact_number.in_(phone_variants(phone)))
        .order_by(LoanReply.replied_at.desc())
    ).scalars().first()
    if loan_reply is not None:
        loan_reply.aadhar_verified = True
    db.commit()

    info(
        db=db,
        event_type=EVENT_AADHAAR_VERIFIED,
        contact_number=to_e164(phone),
        payload={"vendor_id": vendor.id if vendor else None, "loan_reply_id": loan_reply.id if loan_reply else None},
    )
    reply = await _reply_text(db, phone, provider, AADHAAR_VERIFIED_TEXT, now)
    return {"action": ACTION_AADHAAR_VERIFIED, "vendor_id": vendor.id if vendor else None, "reply": reply}


async def handle_loan_query(db: Session, phone: str, provider: str, now: datetime) -> dict:
    cooldown_since = now - timedelta(seconds=settings.intent_reply_cooldown_seconds)
    if template_sent_since(db, phone, TEMPLATE_LOAN_REPLY_AADHAAR, cooldown_since):
        logger.info(f"Loan reply already sent to {phone} within cooldown - skipping")
        return {"action": ACTION_COOLDOWN, "intent": intent_matching.INTENT_LOAN}

    e164 = to_e164(phone) or phone
    existing = db.execute(
        select(LoanReply).where(
            LoanReply.contact_number.in_(phone_variants(phone)),
            LoanReply.replied_at >= now - LOAN_REPLY_DEDUP_WINDOW,
        )
    ).scalars().first()
    loan_reply = existing
    if existing is None:
        vendor = find_vendor_by_phone(db, phone)
        loan_reply = LoanReply(
            vendor_name=vendor.name if vendor else UNKNOWN_VENDOR_NAME,
            contact_number=e164,
            replied_at=now,
        )
        db.add(loan_reply)
        db.commit()
        db.refresh(loan_reply)
        info(db=db, event_type=EVENT_LOAN_REPLY_RECORDED, contact_number=e164, payload={"loan_reply_id": loan_reply.id})

    reply = await _reply_template(db, phone, provider, TEMPLATE_LOAN_REPLY_AADHAAR, now)
    return {"action": ACTION_LOAN_REPLY, "loan_reply_id": loan_reply.id, "reply": reply}


async def handle_support_request(db: Session, phone: str, provider: str, now: datetime) -> dict:
    """Create a support call (unless one is already open from the last hour) and confirm."""
    e164 = to_e164(phone) or phone
    existing = db.execute(
        select(SupportCall).where(
            SupportCall.contact_number.in_(phone_variants(phone)),
            SupportCall.completed.is_(False),
            SupportCall.requested_at >= now - SUPPORT_CALL_DEDUP_WINDOW,
        )
    ).scalars().first()
    if existing is not None:
        logger.info(f"Support call {existing.id} already open for {e164} - not creating another")
        return {"action": ACTION_SUPPORT_CALL, "support_call_id": existing.id, "created": False}

    vendor = find_vendor_by_phone(db, phone)
    support_call = SupportCall(
        vendor_name=vendor.name if vendor else UNKNOWN_VENDOR_NAME,
        contact_number=e164,
        requested_at=now,
    )
    db.add(support_call)
    db.commit()
    db.refresh(support_call)
    info(
        db=db,
        event_type=EVENT_SUPPORT_CALL_REQUESTED,
        contact_number=e164,
        payload={"support_call_id": support_call.id, "vendor_id": vendor.id if vendor else None},
    )
    reply = await _reply_template(db, phone, provider, TEMPLATE_SUPPORT_CALL_CONFIRMATION, now)
    return {
        "action": ACTION_SUPPORT_CALL,
        "support_call_id": support_call.id,
        "created": True,
        "reply": reply,
    }


async def handle_yes_reply(db: Session, phone: str, provider: str, now: datetime) -> dict:
    """A bare "yes" only means something as an answer to a recent support prompt."""
    since = now - timedelta(hours=settings.support_reply_window_hours)
    if not reminder_sent_since(db, phone, REMINDER_SUPPORT_PROMPT, since):
        return {"action": ACTION_IGNORED, "reason": "no_recent_support_prompt"}
    return await handle_support_request(db, phone, provider, now)


async def handle_greeting(db: Session, phone: str, provider: str, now: datetime) -> dict:
    cooldown_since = now - timedelta(seconds=settings.intent_reply_cooldown_seconds)
    if template_sent_since(db, phone, TEMPLATE_GREETING_LOAN_PROMPT, cooldown_since):
        logger.info(f"Greeting reply already sent to {phone} within cooldown - skipping")
        return {"action": ACTION_COOLDOWN, "intent": intent_matching.INTENT_GREETING}
    reply = await _reply_template(db, phone, provider, TEMPLATE_GREETING_LOAN_PROMPT, now)
    return {"action": ACTION_GREETING, "reply": reply}


async def handle_location(
    db: Session, phone: str, provider: str, latitude: float, longitude: float, now: datetime
) -> dict:
    vendor = apply_shared_location(db, phone, latitude, longitude)
    info(
        db=db,
        event_type=EVENT_LOCATION_SHARED,
        contact_number=to_e164(phone),
        payload={"vendor_id": vendor.id if vendor else None, "latitude": latitude, "longitude": longitude},
    )
    reply = await _reply_text(db, phone, provider, LOCATION_UPDATED_TEXT, now)
    return {"action": ACTION_LOCATION_UPDATED, "vendor_id": vendor.id if vendor else None, "reply": reply}


async def handle_inbound(
    db: Session,
    phone: str,
    text: str | None = None,
    *,
    provider: str = PROVIDER_META,
    message_type: str = "text",
    button_payload: str | None = None,
    location: tuple[float, float] | None = None,
    wa_message_id: str | None = None,
    to_number: str | None = None,
    meta: dict | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Store one inbound message and run the matching vendor flow.

    Args:
        db: Database session
        phone: Sender (any format; stored as E.164)
        text: Message text (or button title)
        provider: meta or twilio (replies go back through the same provider)
        button_payload: Quick-reply / interactive button id, if any
        location: (latitude, longitude) for location messages

    Returns:
        dict with "action", "intent", "message" (inbound row id) and flow details
    """
    now = as_utc(now) or utc_now()
    latitude, longitude = location if location else (None, None)
    meta = dict(meta) if meta else {}
    if button_payload:
        meta["button_payload"] = button_payload

    inbound = record_inbound(
        db,
        phone,
        text=text,
        provider=provider,
        message_type=message_type,
        to_number=to_number,
        latitude=latitude,
        longitude=longitude,
        wa_message_id=wa_message_id,
        meta=meta,
        now=now,
    )

    if location is not None:
        result = await handle_location(db, phone, provider, latitude, longitude, now)
        return {**result, "intent": "location", "message": inbound.id}

    if button_payload == BUTTON_YES_VERIFY_AADHAAR:
        intent = intent_matching.INTENT_AADHAAR
    elif button_payload == BUTTON_YES_SUPPORT:
        intent = intent_matching.INTENT_HELP
    else:
        intent = intent_matching.classify(text)

    logger.info(f"Inbound {provider} message from {inbound.from_number}: intent={intent}")

    if intent == intent_matching.INTENT_AADHAAR:
        result = await handle_aadhaar_confirmation(db, phone, provider, now)
    elif intent == intent_matching.INTENT_LOAN:
        result = await handle_loan_query(db, phone, provider, now)
    elif intent == intent_matching.INTENT_HELP:
        result = await handle_support_request(db, phone, provider, now)
    elif intent == intent_matching.INTENT_YES:
        result = await handle_yes_reply(db, phone, provider, now)
    elif intent == intent_matching.INTENT_ONBOARDING:
        reply = await _reply_template(db, phone, provider, TEMPLATE_WELCOME_ONBOARDING, now)
        result = {"action": ACTION_WELCOME, "reply": reply}
    elif intent == intent_matching.INTENT_GREETING:
        result = await handle_greeting(db, phone, provider, now)
    else:
        result = {"action": ACTION_STORED}

    return {**result, "intent": intent, "message": inbound.id}
