# Messaging: Meta + Twilio WhatsApp clients, templates, send-and-record
# Re-export so "from app.services.messaging import ..." works for callers.

from app.services.messaging.meta_client import (
    WhatsAppSendError,
    send_interactive_message,
    send_template_message,
    send_text_message,
)
from app.services.messaging.outbound import send_and_record
from app.services.messaging.twilio_client import send_twilio_message

__all__ = [
    "WhatsAppSendError",
    "send_and_record",
    "send_interactive_message",
    "send_template_message",
    "send_text_message",
    "send_twilio_message",
]
