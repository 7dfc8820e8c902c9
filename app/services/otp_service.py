"""
Phone OTP verification (6 digits, sent as a Twilio WhatsApp template).
"""

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.constants.providers import PROVIDER_TWILIO
from app.core.config import settings
from app.db.models import Verification
from app.services.messaging.outbound import send_and_record
from app.utils.datetime_utils import as_utc, dt_replace_utc, utc_now
from app.utils.phone import to_e164

logger = logging.getLogger(__name__)

OTP_STATUS_VERIFIED = "verified"
OTP_STATUS_ALREADY_VERIFIED = "already_verified"
OTP_STATUS_NOT_FOUND = "not_found"
OTP_STATUS_EXPIRED = "expired"
OTP_STATUS_INVALID = "invalid"
OTP_STATUS_TOO_MANY_ATTEMPTS = "too_many_attempts"


def generate_otp() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def _may_reveal_otp() -> bool:
    # An unconfigured Twilio client also reports dry_run; only an explicit dev dry-run returns the code
    return settings.whatsapp_dry_run and settings.app_env != "production"


async def request_otp(db: Session, phone: str, now: datetime | None = None) -> dict:
    """
    Create (or replace) the OTP for a phone and send it.

    Returns:
        dict with status, expires_at, send status; includes "otp" only when dry-run
        was switched on explicitly outside production
    """
    now = as_utc(now) or utc_now()
    e164 = to_e164(phone) or phone
    otp = generate_otp()
    expires_at = now + timedelta(minutes=settings.otp_expiry_minutes)

    verification = db.execute(
        select(Verification).where(Verification.phone == e164)
    ).scalar_one_or_none()
    if verification is None:
        verification = Verification(
            phone=e164, otp=otp, expires_at=expires_at, is_verified=False, failed_attempts=0
        )
        db.add(verification)
    else:
        verification.otp = otp
        verification.expires_at = expires_at
        verification.is_verified = False
        verification.failed_attempts = 0
    db.commit()

    result = await send_and_record(
        db,
        e164,
        provider=PROVIDER_TWILIO,
        content_sid=settings.twilio_otp_content_sid,
        content_variables={"1": otp},
        meta={"purpose": "otp"},
        now=now,
    )
    response = {
        "status": result["status"],
        "phone": e164,
        "expires_at": expires_at.isoformat(),
    }
    if result["status"] == "dry_run" and _may_reveal_otp():
        logger.info(f"OTP for {e164}: {otp} (dry-run)")
        response["otp"] = otp
    return response


def verify_otp(db: Session, phone: str, otp: str, now: datetime | None = None) -> str:
    """
    Check an OTP. Returns one of the OTP_STATUS_* values.

    Each wrong code counts against the row; after otp_max_attempts the OTP is
    locked until a new one is requested.
    """
    now = as_utc(now) or utc_now()
    e164 = to_e164(phone) or phone
    verification = db.execute(
        select(Verification).where(Verification.phone == e164)
    ).scalar_one_or_none()
    if verification is None:
        return OTP_STATUS_NOT_FOUND
    if verification.is_verified:
        return OTP_STATUS_ALREADY_VERIFIED
    expires_at = dt_replace_utc(verification.expires_at)
    if expires_at is None or expires_at < now:
        return OTP_STATUS_EXPIRED
    if (verification.failed_attempts or 0) >= settings.otp_max_attempts:
        return OTP_STATUS_TOO_MANY_ATTEMPTS
    if not secrets.compare_digest(verification.otp, otp.strip()):
        verification.failed_attempts = (verification.failed_attempts or 0) + 1
        db.commit()
        logger.warning(f"Wrong OTP for {e164} ({verification.failed_attempts}/{settings.otp_max_attempts})")
        return OTP_STATUS_INVALID
    verification.is_verified = True
    db.commit()
    logger.info(f"Phone {e164} verified")
    return OTP_STATUS_VERIFIED
