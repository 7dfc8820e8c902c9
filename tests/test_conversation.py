"""
Inbound vendor flows: support requests, "yes" replies, loan + Aadhaar, greetings,
onboarding and shared locations.
"""

from datetime import timedelta

import pytest

from app.constants.statuses import DIRECTION_INBOUND, DIRECTION_OUTBOUND, REMINDER_SUPPORT_PROMPT
from app.db.models import Contact, LoanReply, Message, SupportCall, SystemEvent, VendorLocation
from app.services.conversation import handle_inbound, record_inbound
from app.services.conversation.inbound import (
    ACTION_AADHAAR_VERIFIED,
    ACTION_COOLDOWN,
    ACTION_GREETING,
    ACTION_IGNORED,
    ACTION_LOAN_REPLY,
    ACTION_LOCATION_UPDATED,
    ACTION_STORED,
    ACTION_SUPPORT_CALL,
    ACTION_WELCOME,
)
from app.services.messaging.outbound import send_and_record
from tests.helpers.factories import NOW, VENDOR_PHONE, make_vendor


def _outbound(db) -> list[Message]:
    return db.query(Message).filter(Message.direction == DIRECTION_OUTBOUND).order_by(Message.id).all()


def test_record_inbound_stores_message_and_contact(db):
    message = record_inbound(db, "919876543210", text="hello", provider="meta", wa_message_id="wamid.1", now=NOW)
    assert message.from_number == VENDOR_PHONE
    assert message.to_number == "test_id"
    assert message.direction == DIRECTION_INBOUND
    assert message.delivery_status == "received"
    assert db.query(Contact).one().phone == VENDOR_PHONE


def test_record_inbound_placeholder_body_for_location(db):
    message = record_inbound(
        db, VENDOR_PHONE, text=None, provider="twilio", message_type="location", latitude=1.0, longitude=2.0, now=NOW
    )
    assert message.body == "[location message]"
    assert message.to_number == "+14155238886"


@pytest.mark.asyncio
async def test_help_creates_support_call_and_confirms(db):
    make_vendor(db)
    result = await handle_inbound(db, "919876543210", "I need help", now=NOW)

    assert result["action"] == ACTION_SUPPORT_CALL
    assert result["created"] is True
    call = db.query(SupportCall).one()
    assert call.vendor_name == "Sharma Chaat Corner"
    assert call.contact_number == VENDOR_PHONE
    assert call.completed is False
    assert _outbound(db)[-1].template_name == "inactive_vendors_reply_to_yes_support_call"
    assert db.query(SystemEvent).filter(SystemEvent.event_type == "support_call.requested").count() == 1


@pytest.mark.asyncio
async def test_repeated_help_within_hour_reuses_open_call(db):
    await handle_inbound(db, VENDOR_PHONE, "help", now=NOW)
    result = await handle_inbound(db, VENDOR_PHONE, "help!!", now=NOW + timedelta(minutes=10))
    assert result["created"] is False
    assert db.query(SupportCall).count() == 1

    await handle_inbound(db, VENDOR_PHONE, "help", now=NOW + timedelta(hours=2))
    assert db.query(SupportCall).count() == 2


@pytest.mark.asyncio
async def test_unknown_sender_support_call_uses_placeholder_name(db):
    await handle_inbound(db, "+919000000000", "मदद", now=NOW)
    assert db.query(SupportCall).one().vendor_name == "Unknown"


@pytest.mark.asyncio
async def test_yes_after_support_prompt_creates_call(db):
    vendor = make_vendor(db)
    await send_and_record(
        db,
        vendor.contact_number,
        template_name="inactive_vendors_support_prompt_util",
        reminder_type=REMINDER_SUPPORT_PROMPT,
        now=NOW - timedelta(hours=2),
    )
    result = await handle_inbound(db, VENDOR_PHONE, "हाँ", now=NOW)
    assert result["intent"] == "yes"
    assert result["action"] == ACTION_SUPPORT_CALL
    assert db.query(SupportCall).count() == 1


@pytest.mark.asyncio
async def test_yes_without_recent_prompt_is_ignored(db):
    await send_and_record(
        db,
        VENDOR_PHONE,
        template_name="inactive_vendors_support_prompt_util",
        reminder_type=REMINDER_SUPPORT_PROMPT,
        now=NOW - timedelta(hours=25),
    )
    result = await handle_inbound(db, VENDOR_PHONE, "yes", now=NOW)
    assert result["action"] == ACTION_IGNORED
    assert db.query(SupportCall).count() == 0


@pytest.mark.asyncio
async def test_support_button_payload_creates_call(db):
    result = await handle_inbound(
        db, VENDOR_PHONE, "Yes", message_type="button", button_payload="yes_support", now=NOW
    )
    assert result["action"] == ACTION_SUPPORT_CALL
    inbound = db.query(Message).filter(Message.direction == DIRECTION_INBOUND).one()
    assert inbound.meta["button_payload"] == "yes_support"


@pytest.mark.asyncio
async def test_loan_query_records_reply_with_cooldown(db):
    make_vendor(db)
    result = await handle_inbound(db, VENDOR_PHONE, "I want a loan", now=NOW)
    assert result["action"] == ACTION_LOAN_REPLY
    loan = db.query(LoanReply).one()
    assert loan.vendor_name == "Sharma Chaat Corner"
    assert loan.aadhar_verified is False
    assert _outbound(db)[-1].template_name == "reply_to_default_hi_loan_ready_to_verify_aadhar_or_not"

    result = await handle_inbound(db, VENDOR_PHONE, "loan", now=NOW + timedelta(seconds=10))
    assert result["action"] == ACTION_COOLDOWN
    assert db.query(LoanReply).count() == 1
    assert len(_outbound(db)) == 1


@pytest.mark.asyncio
async def test_aadhaar_button_marks_vendor_and_loan_reply_verified(db):
    vendor = make_vendor(db)
    await handle_inbound(db, VENDOR_PHONE, "loan", now=NOW)
    result = await handle_inbound(
        db,
        VENDOR_PHONE,
        "Yes, verify Aadhaar",
        message_type="button",
        button_payload="yes_verify_aadhar",
        now=NOW + timedelta(minutes=1),
    )
    assert result["action"] == ACTION_AADHAAR_VERIFIED
    db.refresh(vendor)
    assert vendor.aadhar_verified is True
    assert vendor.aadhar_verified_at is not None
    assert db.query(LoanReply).one().aadhar_verified is True
    assert _outbound(db)[-1].message_type == "text"


@pytest.mark.asyncio
async def test_aadhaar_text_confirmation(db):
    result = await handle_inbound(db, VENDOR_PHONE, "yes verify my aadhar", now=NOW)
    assert result["intent"] == "aadhaar"
    assert result["vendor_id"] is None


@pytest.mark.asyncio
async def test_greeting_reply_and_cooldown(db):
    result = await handle_inbound(db, VENDOR_PHONE, "Hi", now=NOW)
    assert result["action"] == ACTION_GREETING
    assert _outbound(db)[-1].template_name == "default_hi_and_loan_prompt"

    result = await handle_inbound(db, VENDOR_PHONE, "hello", now=NOW + timedelta(seconds=5))
    assert result["action"] == ACTION_COOLDOWN

    result = await handle_inbound(db, VENDOR_PHONE, "hello", now=NOW + timedelta(minutes=5))
    assert result["action"] == ACTION_GREETING


@pytest.mark.asyncio
async def test_onboarding_request_gets_welcome(db):
    result = await handle_inbound(db, VENDOR_PHONE, "I want to register", now=NOW)
    assert result["action"] == ACTION_WELCOME
    assert _outbound(db)[-1].template_name == "welcome_message_for_onboarding"


@pytest.mark.asyncio
async def test_unrecognised_text_is_only_stored(db):
    result = await handle_inbound(db, VENDOR_PHONE, "aaj dukaan band hai", now=NOW)
    assert result["action"] == ACTION_STORED
    assert _outbound(db) == []
    assert db.query(Message).count() == 1


@pytest.mark.asyncio
async def test_shared_location_updates_vendor(db):
    vendor = make_vendor(db)
    result = await handle_inbound(
        db, VENDOR_PHONE, None, message_type="location", location=(23.0225, 72.5714), now=NOW
    )
    assert result["action"] == ACTION_LOCATION_UPDATED
    assert result["vendor_id"] == vendor.id
    db.refresh(vendor)
    assert (vendor.latitude, vendor.longitude) == (23.0225, 72.5714)
    assert db.query(VendorLocation).one().phone == VENDOR_PHONE
    inbound = db.query(Message).filter(Message.direction == DIRECTION_INBOUND).one()
    assert inbound.latitude == 23.0225
    assert db.query(SystemEvent).filter(SystemEvent.event_type == "location.shared").count() == 1


@pytest.mark.asyncio
async def test_twilio_replies_use_content_templates(db):
    result = await handle_inbound(db, VENDOR_PHONE, "hi", provider="twilio", now=NOW)
    assert result["reply"]["status"] == "dry_run"
    reply = _outbound(db)[-1]
    assert reply.provider == "twilio"
    assert reply.template_name == "default_hi_and_loan_prompt"
    assert reply.meta["content_sid"].startswith("HX")


@pytest.mark.asyncio
async def test_twilio_reply_skipped_without_content_template(db):
    result = await handle_inbound(db, VENDOR_PHONE, "help", provider="twilio", now=NOW)
    assert result["action"] == ACTION_SUPPORT_CALL
    assert result["reply"] == {"status": "skipped", "reason": "no_twilio_template"}
    assert _outbound(db) == []
