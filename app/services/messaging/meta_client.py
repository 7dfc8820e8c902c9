"""
Meta WhatsApp Cloud API client with dry-run mode for development.
"""

import logging
import os

from app.core.config import settings
from app.services.integrations.http_client import create_httpx_client
from app.services.messaging.whatsapp_templates import build_template_payload
from app.utils.phone import to_meta_recipient

logger = logging.getLogger(__name__)

PLACEHOLDER_VALUES = ("", "test_token", "test_id")


class WhatsAppSendError(Exception):
    """Graph API rejected the message (non-2xx or transport error)."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code
        self.message = message


def is_meta_dry_run(dry_run: bool | None = None) -> bool:
    """
    Force dry-run in tests or if credentials are placeholders/missing.
    """
    if dry_run is None:
        dry_run = settings.whatsapp_dry_run
    if dry_run or os.environ.get("PYTEST_CURRENT_TEST"):
        return True
    return (
        settings.whatsapp_access_token in PLACEHOLDER_VALUES
        or settings.whatsapp_phone_number_id in PLACEHOLDER_VALUES
    )


def _messages_url() -> str:
    return (
        f"https://graph.facebook.com/{settings.whatsapp_api_version}/"
        f"{settings.whatsapp_phone_number_id}/messages"
    )


async def _post_message(payload: dict, dry_run: bool | None) -> dict:
    to = payload["to"]
    if is_meta_dry_run(dry_run):
        logger.info(f"[DRY-RUN] Would send WhatsApp {payload['type']} to {to}: {payload.get(payload['type'])}")
        return {"status": "dry_run", "message_id": None, "to": to}

    headers = {
        "Authorization": f"Bearer {settings.whatsapp_access_token}",
        "Content-Type": "application/json",
    }
    try:
        async with create_httpx_client() as client:
            response = await client.post(_messages_url(), headers=headers, json=payload)
    except Exception as e:
        logger.error(f"Failed to reach WhatsApp Graph API for {to}: {type(e).__name__}: {e}")
        raise WhatsAppSendError(str(e), code=type(e).__name__) from e

    if response.status_code >= 400:
        code = None
        message = response.text[:500]
        try:
            err = response.json().get("error", {})
            code = str(err.get("code")) if err.get("code") is not None else None
            message = err.get("message") or message
        except ValueError:
            pass
        logger.error(f"WhatsApp send to {to} failed: HTTP {response.status_code} code={code} {message}")
        raise WhatsAppSendError(message, code=code or str(response.status_code))

    result = response.json()
    return {
        "status": "sent",
        "message_id": (result.get("messages") or [{}])[0].get("id"),
        "to": to,
    }


async def send_template_message(
    to: str,
    template_name: str,
    body_params: list[str] | None = None,
    dry_run: bool | None = None,
) -> dict:
    """
    Send a pre-approved template (usable outside the 24h session window).

    Returns:
        dict with status ("sent" | "dry_run"), message_id and to

    Raises:
        WhatsAppSendError: If the Graph API rejects the message
    """
    payload = {
        "messaging_product": "whatsapp",
        "to": to_meta_recipient(to),
        "type": "template",
        "template": build_template_payload(template_name, body_params),
    }
    return await _post_message(payload, dry_run)


async def send_text_message(to: str, body: str, dry_run: bool | None = None) -> dict:
    """Send a free-form text (only delivered inside the 24h session window)."""
    payload = {
        "messaging_product": "whatsapp",
        "to": to_meta_recipient(to),
        "type": "text",
        "text": {"body": body},
    }
    return await _post_message(payload, dry_run)


async def send_interactive_message(
    to: str,
    body: str,
    buttons: list[dict],
    dry_run: bool | None = None,
) -> dict:
    """
    Send reply buttons. buttons: [{"id": "yes_support", "title": "Yes"}], max 3.
    """
    payload = {
        "messaging_product": "whatsapp",
        "to": to_meta_recipient(to),
        "type": "interactive",
        "interactive": {
            "type": "button",
            "body": {"text": body},
            "action": {
                "buttons": [
                    {"type": "reply", "reply": {"id": b["id"], "title": b["title"][:20]}}
                    for b in buttons[:3]
                ]
            },
        },
    }
    return await _post_message(payload, dry_run)
