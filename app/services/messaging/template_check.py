"""
Template configuration check - validates campaign templates at startup.
"""

import logging
from typing import Any

from app.core.config import settings
from app.services.messaging.whatsapp_templates import TEMPLATE_REGISTRY, get_all_templates

logger = logging.getLogger(__name__)

REQUIRED_TEMPLATES: list[str] = get_all_templates()


def startup_check_templates() -> dict[str, Any]:
    """
    Log the template set and flag configured campaign templates that are not
    in the registry (they will be sent without quick-reply buttons).

    Returns:
        Dict with template status
    """
    if not settings.whatsapp_access_token:
        logger.info("WhatsApp not configured - template check skipped")
        return {"templates_configured": [], "unregistered_campaign_templates": [], "whatsapp_enabled": False}

    campaign_templates = [
        t for t in (settings.announcement_template, settings.weekly_campaign_template) if t
    ]
    unregistered = [t for t in campaign_templates if t not in TEMPLATE_REGISTRY]
    for name in unregistered:
        logger.warning(
            f"Campaign template '{name}' is not in the template registry - "
            "it will be sent as a plain body template"
        )

    logger.info(f"Template registry check: {len(REQUIRED_TEMPLATES)} templates registered")
    return {
        "templates_configured": REQUIRED_TEMPLATES,
        "campaign_templates": campaign_templates,
        "unregistered_campaign_templates": unregistered,
        "whatsapp_enabled": True,
    }
