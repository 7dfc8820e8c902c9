"""
Send-and-record: every outbound WhatsApp message is persisted as a Message row,
whether it was sent, dry-run, or failed.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.constants.event_types import EVENT_WHATSAPP_SEND_FAILURE
from app.constants.providers import PROVIDER_META, PROVIDER_TWILIO
from app.constants.statuses import (
    DELIVERY_DRY_RUN,
    DELIVERY_FAILED,
    DELIVERY_SENT,
    DIRECTION_OUTBOUND,
)
from app.core.config import settings
from app.db.models import Message
from app.services.messaging.meta_client import (
    WhatsAppSendError,
    send_template_message,
    send_text_message,
)
from app.services.messaging.twilio_client import send_twilio_message
from app.utils.datetime_utils import as_utc, utc_now
from app.utils.phone import to_e164

logger = logging.getLogger(__name__)


def _sender_number(provider: str) -> str:
    if provider == PROVIDER_TWILIO:
        return to_e164(settings.twilio_phone_number) or "twilio"
    return settings.whatsapp_phone_number_id


async def send_and_record(
    db: Session,
    to: str,
    *,
    template_name: str | None = None,
    text: str | None = None,
    body_params: list[str] | None = None,
    provider: str = PROVIDER_META,
    content_sid: str | None = None,
    content_variables: dict | None = None,
    reminder_type: str | None = None,
    meta: dict | None = None,
    dry_run: bool | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Send one WhatsApp message and store it as an outbound Message.

    Meta: template_name (template) or text (session message).
    Twilio: content_sid (Content API template) or text; template_name is still
    recorded as the logical template so cooldown checks work across providers.

    Never raises on send failure: the failure is stored on the Message row
    (delivery_status="failed", error_code, error_message) and as a SystemEvent.

    Returns:
        dict with status ("sent" | "dry_run" | "failed"), message_id, message (row id)
    """
    recipient = to_e164(to) or to
    meta = dict(meta) if meta else {}
    if reminder_type:
        meta["reminder_type"] = reminder_type

    if provider == PROVIDER_TWILIO:
        message_type = "template" if content_sid else "text"
        if content_sid:
            meta["content_sid"] = content_sid
    else:
        message_type = "template" if template_name else "text"
    body = text or f"[template:{template_name or content_sid}]"

    row = Message(
        from_number=_sender_number(provider),
        to_number=recipient,
        body=body,
        direction=DIRECTION_OUTBOUND,
        message_type=message_type,
        template_name=template_name,
        provider=provider,
        meta=meta or None,
        timestamp=as_utc(now) or utc_now(),
    )

    result: dict
    try:
        if provider == PROVIDER_TWILIO:
            result = await send_twilio_message(
                recipient,
                body=text,
                content_sid=content_sid,
                content_variables=content_variables,
                dry_run=dry_run,
            )
        elif template_name:
            result = await send_template_message(
                recipient, template_name, body_params=body_params, dry_run=dry_run
            )
        else:
            result = await send_text_message(recipient, text or "", dry_run=dry_run)
    except Exception as e:
        code = e.code if isinstance(e, WhatsAppSendError) else type(e).__name__
        row.delivery_status = DELIVERY_FAILED
        row.error_code = code
        row.error_message = str(e)[:1000]
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.error(
            f"Outbound {message_type} to {recipient} failed via {provider} "
            f"(template={template_name or content_sid}): {code} {e}"
        )
        from app.services.system_event_service import error

        error(
            db=db,
            event_type=EVENT_WHATSAPP_SEND_FAILURE,
            contact_number=recipient,
            payload={
                "provider": provider,
                "template_name": template_name or content_sid,
                "reminder_type": reminder_type,
                "message_row_id": row.id,
            },
            exc=e,
        )
        return {
            "status": "failed",
            "message_id": None,
            "to": recipient,
            "error_code": code,
            "error": str(e)[:500],
            "message": row.id,
        }

    row.wa_message_id = result.get("message_id")
    row.delivery_status = DELIVERY_DRY_RUN if result.get("status") == "dry_run" else DELIVERY_SENT
    db.add(row)
    db.commit()
    db.refresh(row)
    return {**result, "to": recipient, "message": row.id}
