"""
Twilio WhatsApp client.

The twilio SDK is synchronous; sends run in a worker thread so they don't block
the event loop.
"""

import asyncio
import json
import logging
import os

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from app.core.config import settings
from app.services.messaging.meta_client import WhatsAppSendError
from app.utils.phone import to_whatsapp_address

logger = logging.getLogger(__name__)

_client: Client | None = None


def twilio_configured() -> bool:
    return bool(
        settings.twilio_account_sid
        and settings.twilio_auth_token
        and settings.twilio_phone_number
    )


def is_twilio_dry_run(dry_run: bool | None = None) -> bool:
    if dry_run is None:
        dry_run = settings.whatsapp_dry_run
    return bool(dry_run or os.environ.get("PYTEST_CURRENT_TEST") or not twilio_configured())


def get_twilio_client() -> Client:
    global _client
    if _client is None:
        _client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
    return _client


def _create_message(params: dict):
    return get_twilio_client().messages.create(**params)


async def send_twilio_message(
    to: str,
    body: str | None = None,
    content_sid: str | None = None,
    content_variables: dict | None = None,
    dry_run: bool | None = None,
) -> dict:
    """
    Send a WhatsApp message via Twilio (free text or Content API template).

    Returns:
        dict with status ("sent" | "dry_run"), message_id (Twilio SID) and to

    Raises:
        WhatsAppSendError: If Twilio rejects the message
    """
    if not body and not content_sid:
        raise ValueError("Either body or content_sid is required")

    params: dict = {
        "from_": to_whatsapp_address(settings.twilio_phone_number or ""),
        "to": to_whatsapp_address(to),
    }
    if content_sid:
        params["content_sid"] = content_sid
        params["content_variables"] = json.dumps(content_variables or {})
    else:
        params["body"] = body
    if settings.twilio_messaging_service_sid:
        params["messaging_service_sid"] = settings.twilio_messaging_service_sid

    if is_twilio_dry_run(dry_run):
        logger.info(f"[DRY-RUN] Would send Twilio WhatsApp to {params['to']}: {content_sid or body}")
        return {"status": "dry_run", "message_id": None, "to": params["to"]}

    try:
        message = await asyncio.to_thread(_create_message, params)
    except TwilioRestException as e:
        logger.error(f"Twilio send to {params['to']} failed: code={e.code} {e.msg}")
        raise WhatsAppSendError(str(e.msg), code=str(e.code) if e.code else str(e.status)) from e

    logger.info(f"Twilio message {message.sid} queued to {params['to']} (status={message.status})")
    return {"status": "sent", "message_id": message.sid, "to": params["to"]}
