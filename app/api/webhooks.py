import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.constants.event_types import (
    EVENT_RELAY_AUTH_FAILURE,
    EVENT_TWILIO_MESSAGE,
    EVENT_TWILIO_SIGNATURE_VERIFICATION_FAILURE,
    EVENT_TWILIO_WEBHOOK_FAILURE,
    EVENT_WHATSAPP_MESSAGE,
    EVENT_WHATSAPP_SIGNATURE_VERIFICATION_FAILURE,
    EVENT_WHATSAPP_STATUS_FAILED,
    EVENT_WHATSAPP_WEBHOOK_FAILURE,
)
from app.constants.providers import PROVIDER_META, PROVIDER_TWILIO
from app.constants.statuses import (
    DELIVERY_DELIVERED,
    DELIVERY_FAILED,
    DELIVERY_READ,
    DELIVERY_SENT,
    DIRECTION_OUTBOUND,
)
from app.core.config import settings
from app.db.deps import get_db
from app.db.helpers import is_unique_violation
from app.db.models import Message, ProcessedMessage
from app.middleware.correlation_id import get_correlation_id
from app.services.conversation import handle_inbound
from app.services.messaging.whatsapp_verification import (
    verify_relay_request,
    verify_twilio_signature,
    verify_whatsapp_signature,
)
from app.services.system_event_service import error, warn
from app.utils.datetime_utils import iso_or_none
from app.utils.phone import digits_only, strip_whatsapp_prefix, to_e164

logger = logging.getLogger(__name__)

router = APIRouter()

# Meta status callbacks we mirror onto the outbound Message row, in delivery order.
# Callbacks can arrive out of order; a status only replaces a lower-ranked one and
# failed is terminal.
_META_STATUS_RANK = {DELIVERY_SENT: 1, DELIVERY_DELIVERED: 2, DELIVERY_READ: 3}
_META_DELIVERY_STATUSES = (*_META_STATUS_RANK, DELIVERY_FAILED)


def _wa_error_response(status_code: int, error: str, **content_extras) -> JSONResponse:
    """Build JSONResponse for WhatsApp webhook errors: {"received": False, "error": ...}."""
    content: dict = {"received": False, "error": error, **content_extras}
    return JSONResponse(status_code=status_code, content=content)


async def _verify_meta_webhook(
    request: Request, db: Session
) -> tuple[bytes | None, JSONResponse | None]:
    """
    Read raw body, verify the Meta signature and (when configured) the relay secret.
    Returns (raw_body, None) on success; (None, error_response) on failure.
    """
    raw_body = await request.body()
    signature_header = request.headers.get("X-Hub-Signature-256")
    if not verify_whatsapp_signature(raw_body, signature_header):
        logger.warning("WhatsApp webhook signature verification failed - rejecting request")
        warn(
            db=db,
            event_type=EVENT_WHATSAPP_SIGNATURE_VERIFICATION_FAILURE,
            payload={"has_signature_header": signature_header is not None},
        )
        return None, _wa_error_response(403, "Invalid webhook signature")

    relay_secret = request.headers.get("X-Relay-Secret")
    relay_signature = request.headers.get("X-Relay-Signature")
    if not verify_relay_request(raw_body, relay_secret, relay_signature):
        warn(
            db=db,
            event_type=EVENT_RELAY_AUTH_FAILURE,
            payload={
                "has_relay_secret": relay_secret is not None,
                "has_relay_signature": relay_signature is not None,
            },
        )
        return None, _wa_error_response(403, "Invalid relay credentials")
    return raw_body, None


def _claim_message(db: Session, provider: str, message_id: str, event_type: str) -> dict | None:
    """
    Idempotency: insert ProcessedMessage before any processing.
    Returns None when claimed, or a duplicate descriptor if already processed.
    Only a unique-constraint violation counts as duplicate; other DB errors propagate.
    """
    try:
        db.add(ProcessedMessage(provider=provider, message_id=message_id, event_type=event_type))
        db.flush()
    except IntegrityError as e:
        if not is_unique_violation(e):
            raise
        db.rollback()
        existing = db.execute(
            select(ProcessedMessage).where(
                ProcessedMessage.provider == provider,
                ProcessedMessage.message_id == message_id,
            )
        ).scalar_one_or_none()
        return {
            "message_id": message_id,
            "processed_at": iso_or_none(existing.processed_at) if existing else None,
        }
    return None


def _dict_items(items) -> list[dict]:
    """Dict elements of a webhook list field; anything malformed is skipped."""
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _parse_meta_message(message: dict) -> dict:
    """Pull text / button / location out of one Cloud API message object."""
    message_type = message.get("type", "text")
    text = None
    button_payload = None
    location = None

    if message_type == "text":
        text = (message.get("text") or {}).get("body")
    elif message_type == "button":
        button = message.get("button") or {}
        text = button.get("text")
        button_payload = button.get("payload")
    elif message_type == "interactive":
        interactive = message.get("interactive") or {}
        reply = interactive.get("button_reply") or interactive.get("list_reply") or {}
        text = reply.get("title")
        button_payload = reply.get("id")
    elif message_type == "location":
        loc = message.get("location") or {}
        if loc.get("latitude") is not None and loc.get("longitude") is not None:
            location = (float(loc["latitude"]), float(loc["longitude"]))
    elif message_type in ("image", "video", "audio", "document"):
        media = message.get(message_type) or {}
        text = media.get("caption") if isinstance(media, dict) else None

    return {
        "message_type": message_type,
        "text": text,
        "button_payload": button_payload,
        "location": location,
    }


def _status_moves_forward(current: str | None, new: str) -> bool:
    if current == DELIVERY_FAILED:
        return False
    if new == DELIVERY_FAILED:
        return True
    return _META_STATUS_RANK[new] > _META_STATUS_RANK.get(current, 0)


def _apply_meta_status(db: Session, status: dict) -> bool:
    """Mirror a delivery status callback onto our outbound Message. Returns True if the row changed."""
    wa_message_id = status.get("id")
    new_status = status.get("status")
    if not wa_message_id or new_status not in _META_DELIVERY_STATUSES:
        return False
    message = db.execute(
        select(Message)
        .where(Message.wa_message_id == wa_message_id, Message.direction == DIRECTION_OUTBOUND)
        .order_by(Message.id.desc())
    ).scalars().first()
    if message is None:
        logger.debug(f"Status {new_status} for unknown message {wa_message_id}")
        return False

    if not _status_moves_forward(message.delivery_status, new_status):
        logger.debug(f"Ignoring stale status {new_status} for {wa_message_id} (now {message.delivery_status})")
        return False

    message.delivery_status = new_status
    if new_status == DELIVERY_FAILED:
        errors = status.get("errors") or [{}]
        message.error_code = str(errors[0].get("code") or "unknown")
        message.error_message = (errors[0].get("title") or errors[0].get("message") or "Delivery failed")[:1000]
        warn(
            db=db,
            event_type=EVENT_WHATSAPP_STATUS_FAILED,
            contact_number=message.to_number,
            payload={"wa_message_id": wa_message_id, "errors": errors[:3]},
        )
    db.commit()
    return True


@router.get("/meta")
def meta_verify(
    request: Request,
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
):
    params = request.query_params
    mode = hub_mode or params.get("hub_mode")
    token = hub_verify_token or params.get("hub_verify_token")
    challenge = hub_challenge or params.get("hub_challenge")
    if mode == "subscribe" and token == settings.whatsapp_verify_token:
        logger.info("Meta webhook verified")
        return Response(content=challenge or "", media_type="text/plain")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/meta")
async def meta_inbound(request: Request, db: Session = Depends(get_db)):
    correlation_id = get_correlation_id(request)
    logger.info(f"whatsapp.inbound_received correlation_id={correlation_id}")

    raw_body, err_response = await _verify_meta_webhook(request, db)
    if err_response is not None:
        return err_response

    # Parse JSON payload after signature verification
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning(f"Invalid JSON payload in WhatsApp webhook: {e}")
        return _wa_error_response(400, "Invalid JSON payload")
    if not isinstance(payload, dict):
        return _wa_error_response(400, "Invalid JSON payload")

    processed = duplicates = statuses = failures = 0
    results: list[dict] = []

    for entry in _dict_items(payload.get("entry")):
        for change in _dict_items(entry.get("changes")):
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            profile_names = {
                c.get("wa_id"): (c.get("profile") or {}).get("name")
                for c in _dict_items(value.get("contacts"))
                if isinstance(c.get("profile") or {}, dict)
            }

            for message in _dict_items(value.get("messages")):
                message_id = message.get("id")
                wa_from = message.get("from")
                if not wa_from:
                    continue
                try:
                    if message_id:
                        duplicate = _claim_message(db, PROVIDER_META, message_id, EVENT_WHATSAPP_MESSAGE)
                        if duplicate is not None:
                            duplicates += 1
                            results.append({"type": "duplicate", **duplicate})
                            continue

                    parsed = _parse_meta_message(message)
                    meta = {"provider_timestamp": message.get("timestamp")}
                    if profile_names.get(wa_from):
                        meta["profile_name"] = profile_names[wa_from]
                    result = await handle_inbound(
                        db,
                        wa_from,
                        parsed["text"],
                        provider=PROVIDER_META,
                        message_type=parsed["message_type"],
                        button_payload=parsed["button_payload"],
                        location=parsed["location"],
                        wa_message_id=message_id,
                        to_number=(value.get("metadata") or {}).get("phone_number_id"),
                        meta=meta,
                    )
                    db.commit()
                    processed += 1
                    results.append({"message_id": message_id, "action": result.get("action")})
                except Exception as e:
                    # Acknowledge anyway so Meta does not retry; keep the trail
                    db.rollback()
                    failures += 1
                    logger.error(
                        f"Meta message handling failed - message_id={message_id}, "
                        f"from={wa_from}, error_type={type(e).__name__}: {e}",
                        exc_info=True,
                    )
                    error(
                        db=db,
                        event_type=EVENT_WHATSAPP_WEBHOOK_FAILURE,
                        contact_number=to_e164(wa_from),
                        payload={"message_id": message_id, "correlation_id": correlation_id},
                        exc=e,
                    )

            for status in _dict_items(value.get("statuses")):
                try:
                    if _apply_meta_status(db, status):
                        statuses += 1
                except Exception as e:
                    db.rollback()
                    logger.error(f"Meta status update failed for {status.get('id')}: {e}", exc_info=True)

    return {
        "received": True,
        "processed": processed,
        "duplicates": duplicates,
        "statuses": statuses,
        "failed": failures,
        "results": results,
    }


def _unwrap_twilio_warning(form: dict) -> dict | None:
    """
    Twilio debugger WARNING callbacks carry the original webhook parameters as JSON in
    Payload.webhook.request.parameters. Returns them, or None if absent/unparseable.
    """
    try:
        data = json.loads(form.get("Payload") or "")
    except ValueError:
        logger.warning("Unparseable Twilio WARNING payload")
        return None
    params = ((data.get("webhook") or {}).get("request") or {}).get("parameters") if isinstance(data, dict) else None
    return params if isinstance(params, dict) else None


def _twilio_signed_url(request: Request) -> str:
    """The URL Twilio signed: PUBLIC_BASE_URL + path when set (proxies rewrite the host)."""
    if settings.public_base_url:
        url = settings.public_base_url.rstrip("/") + request.url.path
        return f"{url}?{request.url.query}" if request.url.query else url
    return str(request.url)


@router.post("/twilio")
async def twilio_inbound(request: Request, db: Session = Depends(get_db)):
    form = dict(await request.form())

    signature = request.headers.get("X-Twilio-Signature")
    if not verify_twilio_signature(_twilio_signed_url(request), form, signature):
        warn(
            db=db,
            event_type=EVENT_TWILIO_SIGNATURE_VERIFICATION_FAILURE,
            payload={"has_signature_header": signature is not None},
        )
        return JSONResponse(status_code=403, content={"error": "Invalid Twilio signature"})

    if form.get("Level") == "WARNING" or form.get("PayloadType") == "application/json":
        logger.info(f"Twilio WARNING payload received: {form.get('Payload', '')[:200]}")
        params = _unwrap_twilio_warning(form)
        if params is None:
            return PlainTextResponse("OK")
        form = params

    wa_from = form.get("From")
    to = form.get("To")
    body = form.get("Body")
    latitude = form.get("Latitude")
    longitude = form.get("Longitude")

    if not wa_from or not to:
        return JSONResponse(status_code=400, content={"error": "Missing required fields: From or To"})
    has_coordinates = latitude not in (None, "") and longitude not in (None, "")
    if not body and not has_coordinates:
        return JSONResponse(status_code=400, content={"error": "Missing required fields: Body or coordinates"})

    sender = strip_whatsapp_prefix(wa_from)
    if settings.twilio_phone_number and digits_only(sender) == digits_only(settings.twilio_phone_number):
        logger.debug("Ignoring Twilio message from our own number")
        return PlainTextResponse("OK")

    message_sid = form.get("MessageSid") or form.get("SmsMessageSid")
    try:
        if message_sid:
            duplicate = _claim_message(db, PROVIDER_TWILIO, message_sid, EVENT_TWILIO_MESSAGE)
            if duplicate is not None:
                logger.info(f"Duplicate Twilio message {message_sid} ignored")
                return PlainTextResponse("OK")

        location = None
        if has_coordinates:
            try:
                location = (float(latitude), float(longitude))
            except ValueError:
                logger.warning(f"Unparseable Twilio coordinates {latitude!r},{longitude!r}")

        meta = {k: form[k] for k in ("Address", "Label", "ProfileName") if form.get(k)}
        result = await handle_inbound(
            db,
            sender,
            body or None,
            provider=PROVIDER_TWILIO,
            message_type="location" if location else "text",
            button_payload=form.get("ButtonPayload") or None,
            location=location,
            wa_message_id=message_sid,
            to_number=to_e164(to),
            meta=meta,
        )
        db.commit()
        logger.info(f"Twilio message {message_sid} from {sender}: {result.get('action')}")
    except Exception as e:
        # Twilio retries on non-2xx; always acknowledge
        db.rollback()
        logger.error(f"Twilio webhook handling failed for {sender}: {type(e).__name__}: {e}", exc_info=True)
        error(
            db=db,
            event_type=EVENT_TWILIO_WEBHOOK_FAILURE,
            contact_number=to_e164(sender),
            payload={"message_sid": message_sid},
            exc=e,
        )
    return PlainTextResponse("OK")
