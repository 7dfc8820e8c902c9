"""
Vendor conversation handling.

Re-exports for stable public API: from app.services.conversation import handle_inbound, ...
"""

from app.services.conversation.inbound import (
    handle_inbound,
    handle_support_request,
    record_inbound,
    reminder_sent_since,
    template_sent_since,
)

__all__ = [
    "handle_inbound",
    "handle_support_request",
    "record_inbound",
    "reminder_sent_since",
    "template_sent_since",
]
