"""
Provider constants for Message, ProcessedMessage and idempotency.

Use these instead of string literals to avoid drift and typos.
"""

PROVIDER_META = "meta"
PROVIDER_TWILIO = "twilio"
