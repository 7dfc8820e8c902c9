"""
Broadcast campaigns and dispatch claims.
"""

from datetime import date, timedelta
from unittest.mock import patch

import pytest

from app.constants.statuses import DIRECTION_OUTBOUND
from app.db.models import DispatchLog, Message, SystemEvent
from app.services.campaigns import (
    run_announcement_campaign,
    run_template_broadcast,
    run_weekly_campaign,
)
from app.services.dispatch import claim_dispatch, finish_dispatch
from tests.helpers.factories import NOW, OTHER_PHONE, VENDOR_PHONE, make_vendor


def _sent(db) -> list[Message]:
    return db.query(Message).filter(Message.direction == DIRECTION_OUTBOUND).order_by(Message.id).all()


def test_claim_dispatch_once_per_contact_day_and_type(db):
    first = claim_dispatch(db, "9876543210", "2026-10-19", "open", vendor_id=1)
    assert first is not None
    assert first.contact_number == VENDOR_PHONE
    assert first.success is None

    assert claim_dispatch(db, VENDOR_PHONE, "2026-10-19", "open") is None
    assert claim_dispatch(db, VENDOR_PHONE, "2026-10-19", "support_prompt") is not None
    assert claim_dispatch(db, VENDOR_PHONE, "2026-10-20", "open") is not None


def test_finish_dispatch_records_outcome(db):
    row = claim_dispatch(db, VENDOR_PHONE, "2026-10-19", "weekly")
    finish_dispatch(db, row, {"status": "sent", "message_id": "wamid.abc"})
    assert row.success is True
    assert row.wa_message_id == "wamid.abc"

    row = claim_dispatch(db, OTHER_PHONE, "2026-10-19", "weekly")
    finish_dispatch(db, row, {"status": "failed", "error": "Invalid parameter"})
    assert row.success is False
    assert row.error == "Invalid parameter"


@pytest.mark.asyncio
async def test_broadcast_sends_once_per_day(db):
    make_vendor(db)
    make_vendor(db, name="Patel Dabeli", contact_number=OTHER_PHONE)
    make_vendor(db, name="No Consent", contact_number="+919000000001", whatsapp_consent=False)
    make_vendor(db, name="Bad Number", contact_number="12345")

    result = await run_template_broadcast(
        db, "welcome_message_for_onboarding", "broadcast", now=NOW, body_params=["Diwali"]
    )
    assert result == {
        "status": "completed",
        "template_name": "welcome_message_for_onboarding",
        "eligible": 2,
        "sent": 2,
        "skipped": 0,
        "failed": 0,
    }
    sent = _sent(db)
    assert [m.to_number for m in sent] == [VENDOR_PHONE, OTHER_PHONE]
    assert sent[0].meta["campaign"] == "broadcast"

    again = await run_template_broadcast(db, "welcome_message_for_onboarding", "broadcast", now=NOW)
    assert again["sent"] == 0
    assert again["skipped"] == 2

    event = db.query(SystemEvent).filter(
        SystemEvent.event_type == "campaign.broadcast.completed"
    ).order_by(SystemEvent.id).first()
    assert event.payload["sent"] == 2


@pytest.mark.asyncio
async def test_announcement_requires_template(db):
    result = await run_announcement_campaign(db, now=NOW)
    assert result == {"status": "skipped", "reason": "No announcement template configured"}


@pytest.mark.asyncio
async def test_announcement_window(db):
    make_vendor(db)
    with (
        patch("app.services.campaigns.settings.announcement_template", "diwali_offer"),
        patch("app.services.campaigns.settings.announcement_start_date", date(2026, 10, 20)),
        patch("app.services.campaigns.settings.announcement_end_date", date(2026, 10, 25)),
    ):
        before = await run_announcement_campaign(db, now=NOW)
        during = await run_announcement_campaign(db, now=NOW + timedelta(days=1))
        after = await run_announcement_campaign(db, now=NOW + timedelta(days=7))

    assert before == {"status": "skipped", "reason": "2026-10-19 outside announcement window"}
    assert during["status"] == "completed"
    assert during["sent"] == 1
    assert after["status"] == "skipped"
    assert db.query(DispatchLog).one().dispatch_type == "announcement"
    assert _sent(db)[0].template_name == "diwali_offer"


@pytest.mark.asyncio
async def test_weekly_campaign(db):
    make_vendor(db)
    assert (await run_weekly_campaign(db, now=NOW))["status"] == "skipped"

    with patch("app.services.campaigns.settings.weekly_campaign_template", "weekly_menu_update"):
        result = await run_weekly_campaign(db, now=NOW)
    assert result["sent"] == 1
    assert db.query(DispatchLog).one().dispatch_type == "weekly"
