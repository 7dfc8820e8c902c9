"""
WhatsApp template message definitions and helpers.

Vendor templates (names must match WhatsApp Manager):
1. update_location_cron_util - "share your location" nudge at opening time
2. inactive_vendors_support_prompt_util - support prompt for inactive vendors
3. inactive_vendors_reply_to_yes_support_call - confirmation after a support request
4. default_hi_and_loan_prompt - reply to a greeting
5. reply_to_default_hi_loan_ready_to_verify_aadhar_or_not - loan reply with Aadhaar button
6. welcome_message_for_onboarding - new vendor / onboarding request
7. post_support_call_message_for_vendors - after an admin completes a support call
"""

import logging
from dataclasses import dataclass, field

from app.core.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_UPDATE_LOCATION = "update_location_cron_util"
TEMPLATE_SUPPORT_PROMPT = "inactive_vendors_support_prompt_util"
TEMPLATE_SUPPORT_CALL_CONFIRMATION = "inactive_vendors_reply_to_yes_support_call"
TEMPLATE_GREETING_LOAN_PROMPT = "default_hi_and_loan_prompt"
TEMPLATE_LOAN_REPLY_AADHAAR = "reply_to_default_hi_loan_ready_to_verify_aadhar_or_not"
TEMPLATE_WELCOME_ONBOARDING = "welcome_message_for_onboarding"
TEMPLATE_POST_SUPPORT_CALL = "post_support_call_message_for_vendors"

# Quick-reply payloads sent back by interactive buttons
BUTTON_YES_VERIFY_AADHAAR = "yes_verify_aadhar"
BUTTON_YES_SUPPORT = "yes_support"

AADHAAR_VERIFIED_TEXT = (
    "✅ *Aadhaar Verification Successful!*\n\n"
    "आपका आधार सत्यापन सफल रहा। हमारी टीम जल्द ही लोन के लिए आपसे संपर्क करेगी।"
)
LOCATION_UPDATED_TEXT = (
    "📍 Location updated! Customers can now find your stall.\n"
    "आपकी लोकेशन अपडेट हो गई है।"
)


@dataclass(frozen=True)
class TemplateSpec:
    name: str
    quick_reply_payloads: list[str] = field(default_factory=list)


TEMPLATE_REGISTRY: dict[str, TemplateSpec] = {
    spec.name: spec
    for spec in (
        TemplateSpec(TEMPLATE_UPDATE_LOCATION),
        TemplateSpec(TEMPLATE_SUPPORT_PROMPT),
        TemplateSpec(TEMPLATE_SUPPORT_CALL_CONFIRMATION),
        TemplateSpec(TEMPLATE_GREETING_LOAN_PROMPT),
        TemplateSpec(TEMPLATE_LOAN_REPLY_AADHAAR, quick_reply_payloads=[BUTTON_YES_VERIFY_AADHAAR]),
        TemplateSpec(TEMPLATE_WELCOME_ONBOARDING),
        TemplateSpec(TEMPLATE_POST_SUPPORT_CALL),
    )
}


def get_all_templates() -> list[str]:
    """All registered template names (sorted)."""
    return sorted(TEMPLATE_REGISTRY)


def build_template_payload(template_name: str, body_params: list[str] | None = None) -> dict:
    """
    Build the Graph API "template" object.

    Unregistered names (ad-hoc broadcast templates) are sent with body params only.
    """
    spec = TEMPLATE_REGISTRY.get(template_name) or TemplateSpec(template_name)
    components: list[dict] = []
    if body_params:
        components.append(
            {
                "type": "body",
                "parameters": [{"type": "text", "text": str(p)} for p in body_params],
            }
        )
    for index, payload in enumerate(spec.quick_reply_payloads):
        components.append(
            {
                "type": "button",
                "sub_type": "quick_reply",
                "index": str(index),
                "parameters": [{"type": "payload", "payload": payload}],
            }
        )
    template: dict = {
        "name": spec.name,
        "language": {"code": settings.whatsapp_template_language},
    }
    if components:
        template["components"] = components
    return template
