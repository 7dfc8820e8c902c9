"""
Webhook signature verification.

- Meta: X-Hub-Signature-256 header, HMAC-SHA256 of the raw body with the App Secret.
- Relay: deployments that forward Meta webhooks through a relay authenticate with
  either X-Relay-Secret (shared secret) or X-Relay-Signature (HMAC-SHA256 of the raw body).
- Twilio: X-Twilio-Signature, validated with twilio's RequestValidator when enabled.
"""

import hashlib
import hmac
import logging

from twilio.request_validator import RequestValidator

from app.core.config import settings

logger = logging.getLogger(__name__)


def _hmac_sha256_hex(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def _check_sha256_header(secret: str, payload: bytes, header: str | None, header_name: str) -> bool:
    if not header:
        logger.warning(f"Missing {header_name} header in webhook")
        return False
    if not header.startswith("sha256="):
        logger.warning(f"Invalid {header_name} header format: {header[:20]}")
        return False
    received_signature = header.split("=", 1)[1]
    # Constant-time comparison
    return hmac.compare_digest(received_signature, _hmac_sha256_hex(secret, payload))


def verify_whatsapp_signature(payload: bytes, signature_header: str | None) -> bool:
    """
    Verify Meta webhook signature (format: sha256=<hex_digest>).

    Returns True when no App Secret is configured (dev mode).
    """
    if not settings.whatsapp_app_secret:
        logger.warning(
            "WhatsApp app secret not configured - skipping signature verification. "
            "Set WHATSAPP_APP_SECRET in production."
        )
        return True

    is_valid = _check_sha256_header(
        settings.whatsapp_app_secret, payload, signature_header, "X-Hub-Signature-256"
    )
    if not is_valid:
        logger.warning(
            "Invalid WhatsApp webhook signature - request rejected. "
            "This may indicate a spoofed request or misconfigured app secret."
        )
    return is_valid


def verify_relay_request(
    payload: bytes,
    secret_header: str | None,
    signature_header: str | None,
) -> bool:
    """
    Verify a relayed webhook: X-Relay-Secret equal to RELAY_SECRET, or
    X-Relay-Signature = sha256=HMAC(RELAY_SECRET, body).

    Returns True when RELAY_SECRET is not configured.
    """
    if not settings.relay_secret:
        return True
    if secret_header is not None:
        if hmac.compare_digest(secret_header, settings.relay_secret):
            return True
        logger.warning("Relay webhook rejected: X-Relay-Secret mismatch")
        return False
    if _check_sha256_header(settings.relay_secret, payload, signature_header, "X-Relay-Signature"):
        return True
    logger.warning("Relay webhook rejected: missing or invalid X-Relay-Signature")
    return False


def verify_twilio_signature(url: str, params: dict, signature_header: str | None) -> bool:
    """
    Verify X-Twilio-Signature for a form webhook.

    Returns True unless TWILIO_VALIDATE_SIGNATURE is enabled; fails closed when
    enabled without TWILIO_AUTH_TOKEN.
    """
    if not settings.twilio_validate_signature:
        return True
    if not settings.twilio_auth_token:
        logger.error("TWILIO_VALIDATE_SIGNATURE is set but TWILIO_AUTH_TOKEN is missing - rejecting")
        return False
    if not signature_header:
        logger.warning("Twilio webhook rejected: missing X-Twilio-Signature")
        return False
    validator = RequestValidator(settings.twilio_auth_token)
    if validator.validate(url, params, signature_header):
        return True
    logger.warning(f"Twilio webhook rejected: invalid X-Twilio-Signature for {url}")
    return False
