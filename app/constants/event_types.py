"""
Event type constants for SystemEvent and ProcessedMessage.

Use these instead of string literals to ensure consistency.
Dynamic event types use prefixes; use the helpers or format strings.
"""

# ---- WhatsApp (Meta) ----
EVENT_WHATSAPP_SIGNATURE_VERIFICATION_FAILURE = "whatsapp.signature_verification_failure"
EVENT_WHATSAPP_MESSAGE = "whatsapp.message"
EVENT_WHATSAPP_WEBHOOK_FAILURE = "whatsapp.webhook_failure"
EVENT_WHATSAPP_SEND_FAILURE = "whatsapp.send_failure"
EVENT_WHATSAPP_STATUS_FAILED = "whatsapp.status_failed"

# ---- Relay ----
EVENT_RELAY_AUTH_FAILURE = "relay.auth_failure"

# ---- Twilio ----
EVENT_TWILIO_MESSAGE = "twilio.message"
EVENT_TWILIO_WEBHOOK_FAILURE = "twilio.webhook_failure"
EVENT_TWILIO_SIGNATURE_VERIFICATION_FAILURE = "twilio.signature_verification_failure"

# ---- Conversation ----
EVENT_SUPPORT_CALL_REQUESTED = "support_call.requested"
EVENT_SUPPORT_CALL_COMPLETED = "support_call.completed"
EVENT_LOAN_REPLY_RECORDED = "loan_reply.recorded"
EVENT_AADHAAR_VERIFIED = "aadhaar.verified"
EVENT_LOCATION_SHARED = "location.shared"

# ---- Campaigns (prefix for dynamic types) ----
EVENT_CAMPAIGN_PREFIX = "campaign"

# ---- Scheduler ----
EVENT_SCHEDULER_JOB_FAILURE = "scheduler.job_failure"

# ---- Auth ----
EVENT_ADMIN_LOGIN_FAILURE = "admin.login_failure"


def campaign_event_type(dispatch_type: str, outcome: str) -> str:
    """e.g. campaign.support_prompt.completed, campaign.open.completed"""
    return f"{EVENT_CAMPAIGN_PREFIX}.{dispatch_type}.{outcome}"
