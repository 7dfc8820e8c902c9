"""
Phone number normalization.

Vendor records were entered by hand over time, so the same number may be stored
as "+919876543210", "919876543210" or "9876543210". Lookups go through
phone_variants() to match any of them.
"""

import re

DEFAULT_COUNTRY_CODE = "91"
WHATSAPP_PREFIX = "whatsapp:"


def strip_whatsapp_prefix(value: str | None) -> str:
    """Remove Twilio's "whatsapp:" channel prefix."""
    if not value:
        return ""
    value = value.strip()
    if value.lower().startswith(WHATSAPP_PREFIX):
        return value[len(WHATSAPP_PREFIX):]
    return value


def digits_only(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def to_e164(phone: str | None, default_country: str = DEFAULT_COUNTRY_CODE) -> str | None:
    """
    Normalize a phone number to E.164 ("+<country><number>").

    A bare 10-digit number is assumed to be in the default country.
    Returns None for empty input.
    """
    digits = digits_only(strip_whatsapp_prefix(phone))
    if not digits:
        return None
    if len(digits) == 10:
        return f"+{default_country}{digits}"
    if digits.startswith("0") and len(digits) == 11:
        return f"+{default_country}{digits[1:]}"
    return f"+{digits}"


def phone_variants(phone: str | None) -> list[str]:
    """
    All stored forms a number may appear in: E.164, bare digits, last 10 digits,
    and digits with a leading country code removed. Order preserved, no duplicates.
    """
    e164 = to_e164(phone)
    if not e164:
        return []
    bare = e164[1:]
    variants = [e164, bare, bare[-10:]]
    if bare.startswith(DEFAULT_COUNTRY_CODE):
        variants.append(bare[len(DEFAULT_COUNTRY_CODE):])
    seen: list[str] = []
    for v in variants:
        if v and v not in seen:
            seen.append(v)
    return seen


def to_whatsapp_address(phone: str) -> str:
    """Twilio address form: whatsapp:+<e164>."""
    e164 = to_e164(phone) or phone
    return f"{WHATSAPP_PREFIX}{e164}"


def to_meta_recipient(phone: str) -> str:
    """Meta Cloud API expects digits with country code and no '+'."""
    e164 = to_e164(phone) or phone
    return e164.lstrip("+")
