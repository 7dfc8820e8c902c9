"""
Replay a sample vendor message against the local webhook endpoints.

Useful for exercising the inbound flows (greeting, loan, support, location,
button replies) without a real phone.

Usage:
    python scripts/webhook_replay.py --text "hi" --from 919876543210
    python scripts/webhook_replay.py --button yes_support
    python scripts/webhook_replay.py --location 23.0225,72.5714
    python scripts/webhook_replay.py --twilio --text "loan"
"""

import argparse
import hashlib
import hmac
import json
import sys
import time
import uuid
from pathlib import Path

# Add app directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from app.core.config import settings


def build_meta_message(wa_from: str, text: str | None, button: str | None, location: str | None) -> dict:
    message: dict = {
        "from": wa_from,
        "id": f"wamid.replay.{uuid.uuid4().hex[:16]}",
        "timestamp": str(int(time.time())),
    }
    if location:
        lat, lng = (float(x) for x in location.split(","))
        message.update(type="location", location={"latitude": lat, "longitude": lng})
    elif button:
        message.update(type="button", button={"payload": button, "text": text or "Yes"})
    else:
        message.update(type="text", text={"body": text or "hi"})
    return message


def build_meta_payload(wa_from: str, message: dict) -> dict:
    """Cloud API webhook envelope around one message."""
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WHATSAPP_BUSINESS_ACCOUNT_ID",
                "changes": [
                    {
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {
                                "display_phone_number": "15550555555",
                                "phone_number_id": settings.whatsapp_phone_number_id,
                            },
                            "contacts": [{"profile": {"name": "Replay Vendor"}, "wa_id": wa_from}],
                            "messages": [message],
                        },
                        "field": "messages",
                    }
                ],
            }
        ],
    }


def build_twilio_form(wa_from: str, text: str | None, button: str | None, location: str | None) -> dict:
    form = {
        "From": f"whatsapp:+{wa_from.lstrip('+')}",
        "To": f"whatsapp:{settings.twilio_phone_number or '+14155238886'}",
        "MessageSid": f"SM{uuid.uuid4().hex}",
    }
    if location:
        lat, lng = location.split(",")
        form.update(Latitude=lat.strip(), Longitude=lng.strip())
    else:
        form["Body"] = text or "hi"
    if button:
        form["ButtonPayload"] = button
    return form


def calculate_signature(payload_bytes: bytes) -> str | None:
    if not settings.whatsapp_app_secret:
        return None
    digest = hmac.new(
        settings.whatsapp_app_secret.encode("utf-8"), payload_bytes, hashlib.sha256
    ).hexdigest()
    return f"sha256={digest}"


def send_meta(payload: dict, base_url: str) -> httpx.Response:
    body = json.dumps(payload).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    signature = calculate_signature(body)
    if signature:
        headers["X-Hub-Signature-256"] = signature
    if settings.relay_secret:
        headers["X-Relay-Secret"] = settings.relay_secret
    with httpx.Client(timeout=10.0) as client:
        return client.post(f"{base_url}/webhooks/meta", content=body, headers=headers)


def send_twilio(form: dict, base_url: str) -> httpx.Response:
    with httpx.Client(timeout=10.0) as client:
        return client.post(f"{base_url}/webhooks/twilio", data=form)


def main():
    parser = argparse.ArgumentParser(description="Replay a vendor WhatsApp message")
    parser.add_argument("--text", type=str, default=None, help="Message text (default: hi)")
    parser.add_argument("--button", type=str, default=None, help="Quick-reply payload, e.g. yes_support")
    parser.add_argument("--location", type=str, default=None, help="lat,lng")
    parser.add_argument(
        "--from", dest="wa_from", type=str, default="919876543210",
        help="Sender number with country code, no +",
    )
    parser.add_argument("--twilio", action="store_true", help="Send to /webhooks/twilio instead of Meta")
    parser.add_argument("--url", type=str, default="http://localhost:8000", help="Base URL of the API")
    args = parser.parse_args()

    try:
        if args.twilio:
            form = build_twilio_form(args.wa_from, args.text, args.button, args.location)
            print(f"Twilio form: {json.dumps(form, indent=2)}")
            response = send_twilio(form, args.url)
        else:
            message = build_meta_message(args.wa_from, args.text, args.button, args.location)
            payload = build_meta_payload(args.wa_from, message)
            print(f"Meta payload: {json.dumps(payload, indent=2)}")
            response = send_meta(payload, args.url)
    except httpx.HTTPError as e:
        print(f"Error sending webhook: {e}")
        sys.exit(1)

    print(f"Status: {response.status_code}")
    print(f"Body: {response.text}")
    if response.status_code != 200:
        print("Check that the API is running, WHATSAPP_APP_SECRET / RELAY_SECRET match, and the payload is valid.")
        sys.exit(1)


if __name__ == "__main__":
    main()
