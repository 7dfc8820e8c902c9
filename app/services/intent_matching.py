"""
Intent matching for inbound vendor replies (English + Hindi).

Single source of truth for "is this a yes / help / loan / greeting" checks used by
both the Meta and Twilio inbound paths.

Word boundaries: Python's \\b treats Devanagari vowel signs (e.g. the ँ in हाँ)
as non-word characters, so "हाँ" would never end on a \\b. We use an explicit
lookahead for end-of-text, whitespace or punctuation instead.
"""

import re
import unicodedata

# Common unicode replacements seen in WhatsApp copy/paste
NBSP = "\u00A0"
ZWSP = "\u200B"
ZWNBSP = "\uFEFF"

# Word end: end of text, whitespace, ASCII punctuation or the Devanagari danda
_END = r"(?=$|[\s,.!?;:।])"
_START = r"(?:^|(?<=[\s,.!?;:।]))"

INTENT_AADHAAR = "aadhaar"
INTENT_LOAN = "loan"
INTENT_HELP = "help"
INTENT_YES = "yes"
INTENT_ONBOARDING = "onboarding"
INTENT_GREETING = "greeting"
INTENT_UNKNOWN = "unknown"

YES_WORDS_EN = [
    "yes+",
    "yeah",
    "yea",
    "yep",
    "yup",
    "ya",
    "yah",
    "ok",
    "okay",
    "okey",
    "sure",
    "alright",
]
YES_WORDS_HI = [
    "जी हाँ",
    "जी हां",
    "जी हा",
    "ठीक है",
    "हाँ",
    "हां",
    "हान्",
    "हान",
    "हा",
    "जी",
    "ठीक",
    "बिल्कुल",
    "सही",
]

HELP_WORDS_EN = [
    "help+",
    "support",
    "assistance",
    "assist",
    "aid",
    "rescue",
    "save",
    "emergency",
]
HELP_WORDS_HI = [
    "सहायता चाहिए",
    "मदद चाहिए",
    "सहायता",
    "मदद",
    "बचाव",
    "राहत",
    "समर्थन",
    "सहयोग",
]
# Matched anywhere in the message, not only at the start
HELP_PHRASES = [
    "i need help",
    "can you help",
    "please help",
    "help me",
    "need support",
    "मुझे मदद",
    "सहायता चाहिए",
    "मदद चाहिए",
]
HELP_WORDS_ANYWHERE = ["help+", "support", "मदद", "सहायता"]

_YES_RE = re.compile(r"^(?:" + "|".join(YES_WORDS_HI + YES_WORDS_EN) + r")" + _END, re.IGNORECASE)
_HELP_PREFIX_RE = re.compile(
    r"^(?:" + "|".join(HELP_WORDS_HI + HELP_WORDS_EN) + r")" + _END, re.IGNORECASE
)
_HELP_ANYWHERE_RE = re.compile(
    _START + r"(?:" + "|".join(HELP_WORDS_ANYWHERE) + r")" + _END, re.IGNORECASE
)
_GREETING_RE = re.compile(r"^(?:hi+|hello+|hey+|नमस्ते)[\s!.,]*$", re.IGNORECASE)
_LOAN_RE = re.compile(_START + r"(?:loans?|लोन)" + _END, re.IGNORECASE)
_AADHAAR_RE = re.compile(
    r"(?:yes|हाँ|हां).*?(?:verify|सत्यापित).*?(?:aadhaar|aadhar|आधार)",
    re.IGNORECASE | re.DOTALL,
)
_ONBOARDING_RE = re.compile(_START + r"(?:onboard\w*|register\w*|sign\s?up)" + _END, re.IGNORECASE)
_LOCATION_TEXT_RE = re.compile(r"location|shared|updated|sent", re.IGNORECASE)


def normalize_text(text: str | None) -> str:
    """
    Normalize a WhatsApp message for matching: strip, NFC, collapse spaces,
    drop zero-width chars, lowercase.
    """
    if not text or not isinstance(text, str):
        return ""
    s = text.replace(NBSP, " ").replace(ZWSP, "").replace(ZWNBSP, "")
    s = unicodedata.normalize("NFC", s)
    s = re.sub(r"\s+", " ", s)
    return s.strip().lower()


def is_yes_response(text: str | None) -> bool:
    return bool(_YES_RE.match(normalize_text(text)))


def is_help_request(text: str | None) -> bool:
    s = normalize_text(text)
    if not s:
        return False
    if _HELP_PREFIX_RE.match(s):
        return True
    if any(phrase in s for phrase in HELP_PHRASES):
        return True
    return bool(_HELP_ANYWHERE_RE.search(s))


def is_greeting(text: str | None) -> bool:
    return bool(_GREETING_RE.match(normalize_text(text)))


def is_loan_query(text: str | None) -> bool:
    return bool(_LOAN_RE.search(normalize_text(text)))


def is_aadhaar_confirmation(text: str | None) -> bool:
    return bool(_AADHAAR_RE.search(normalize_text(text)))


def is_onboarding_request(text: str | None) -> bool:
    return bool(_ONBOARDING_RE.search(normalize_text(text)))


def is_location_text(text: str | None) -> bool:
    """Text that reads like a location confirmation ("location shared", "sent")."""
    return bool(_LOCATION_TEXT_RE.search(text or ""))


def classify(text: str | None) -> str:
    """
    Pick one intent for a message.

    Priority: aadhaar > loan > help > yes > onboarding > greeting.
    "yes, verify my aadhaar" is an aadhaar confirmation, not a plain yes.
    """
    if is_aadhaar_confirmation(text):
        return INTENT_AADHAAR
    if is_loan_query(text):
        return INTENT_LOAN
    if is_help_request(text):
        return INTENT_HELP
    if is_yes_response(text):
        return INTENT_YES
    if is_onboarding_request(text):
        return INTENT_ONBOARDING
    if is_greeting(text):
        return INTENT_GREETING
    return INTENT_UNKNOWN
