"""
Inactive vendor support prompts: selection, cooldowns and the dashboard listing.
"""

from datetime import timedelta

import pytest

from app.constants.statuses import DIRECTION_OUTBOUND, REMINDER_SUPPORT_PROMPT
from app.db.models import DispatchLog, Message, SupportReminderLog, SystemEvent
from app.services.contacts import touch_contact
from app.services.support_reminders import (
    inactive_cutoff,
    list_inactive_vendors,
    run_support_reminders,
    send_support_prompt,
)
from app.utils.datetime_utils import utc_now
from tests.helpers.factories import NOW, OTHER_PHONE, VENDOR_PHONE, make_message, make_vendor


def _prompts(db) -> list[Message]:
    return db.query(Message).filter(Message.direction == DIRECTION_OUTBOUND).all()


def test_inactive_cutoff_is_start_of_local_day():
    # 2026-10-14 00:00 IST
    cutoff = inactive_cutoff(NOW)
    assert cutoff.isoformat() == "2026-10-13T18:30:00+00:00"


@pytest.mark.asyncio
async def test_inactive_vendor_gets_prompt_and_log(db):
    vendor = make_vendor(db)
    touch_contact(db, VENDOR_PHONE, seen_at=NOW - timedelta(days=7))

    result = await run_support_reminders(db, now=NOW)
    assert result == {"status": "completed", "inactive": 1, "sent": 1, "skipped": 0, "failed": 0}

    prompt = _prompts(db)[0]
    assert prompt.template_name == "inactive_vendors_support_prompt_util"
    assert prompt.meta == {"reminder_type": REMINDER_SUPPORT_PROMPT, "vendor_id": vendor.id}
    assert db.query(SupportReminderLog).one().contact_number == VENDOR_PHONE
    assert db.query(DispatchLog).one().dispatch_type == "support_prompt"

    event = db.query(SystemEvent).filter(
        SystemEvent.event_type == "campaign.support_prompt.completed"
    ).one()
    assert event.payload["sent"] == 1


@pytest.mark.asyncio
async def test_recently_active_and_unregistered_contacts_are_ignored(db):
    make_vendor(db)
    touch_contact(db, VENDOR_PHONE, seen_at=NOW - timedelta(days=2))
    touch_contact(db, OTHER_PHONE, seen_at=NOW - timedelta(days=30))

    result = await run_support_reminders(db, now=NOW)
    assert result["inactive"] == 0
    assert _prompts(db) == []


@pytest.mark.asyncio
async def test_cooldown_after_recent_reminder(db):
    vendor = make_vendor(db)
    touch_contact(db, VENDOR_PHONE, seen_at=NOW - timedelta(days=7))
    await send_support_prompt(db, vendor, now=NOW - timedelta(hours=20))

    result = await run_support_reminders(db, now=NOW)
    assert result["skipped"] == 1
    assert len(_prompts(db)) == 1

    # Next day the cooldown has passed
    result = await run_support_reminders(db, now=NOW + timedelta(days=1))
    assert result["sent"] == 1


@pytest.mark.asyncio
async def test_skips_vendor_who_replied_to_last_prompt(db):
    vendor = make_vendor(db)
    touch_contact(db, VENDOR_PHONE, seen_at=NOW - timedelta(days=7))
    await send_support_prompt(db, vendor, now=NOW - timedelta(days=3))
    make_message(db, VENDOR_PHONE, body="no thanks", timestamp=NOW - timedelta(days=2))

    result = await run_support_reminders(db, now=NOW)
    assert result["skipped"] == 1
    assert len(_prompts(db)) == 1


@pytest.mark.asyncio
async def test_second_run_same_day_is_claimed(db):
    make_vendor(db)
    touch_contact(db, VENDOR_PHONE, seen_at=NOW - timedelta(days=7))
    await run_support_reminders(db, now=NOW)
    # Drop the reminder log so only the dispatch claim stands in the way
    db.query(SupportReminderLog).delete()
    db.commit()

    result = await run_support_reminders(db, now=NOW + timedelta(minutes=5))
    assert result["sent"] == 0
    assert result["skipped"] == 1


def test_list_inactive_vendors(db):
    vendor = make_vendor(db)
    make_vendor(db, name="Patel Dabeli", contact_number=OTHER_PHONE)
    touch_contact(db, VENDOR_PHONE, seen_at=NOW - timedelta(days=7))
    touch_contact(db, OTHER_PHONE, seen_at=NOW - timedelta(days=10))
    db.add(SupportReminderLog(contact_number=VENDOR_PHONE, sent_at=NOW - timedelta(days=1)))
    db.commit()

    data = list_inactive_vendors(db, page=1, limit=1, now=NOW)
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    first = data["vendors"][0]
    assert first["name"] == "Patel Dabeli"
    assert first["days_inactive"] == 10
    assert first["reminder_status"] == "Not sent"
    assert first["reminder_sent_at"] is None

    second = list_inactive_vendors(db, page=2, limit=1, now=NOW)["vendors"][0]
    assert second["vendor_id"] == vendor.id
    assert second["reminder_status"] == "Sent"


def test_inactive_vendors_endpoint(client, db):
    make_vendor(db)
    touch_contact(db, VENDOR_PHONE, seen_at=utc_now() - timedelta(days=30))

    response = client.get("/api/webhook/inactive-vendors", params={"page": 1, "limit": 10})
    assert response.status_code == 200
    data = response.json()
    assert data["pagination"]["total"] == 1
    assert data["vendors"][0]["contact_number"] == VENDOR_PHONE

    assert client.get("/api/webhook/inactive-vendors", params={"page": 0}).status_code == 422


def test_manual_send_reminder(client, db, admin_headers):
    vendor = make_vendor(db)

    assert client.post(f"/api/webhook/send-reminder/{vendor.id}").status_code == 401

    response = client.post(f"/api/webhook/send-reminder/{vendor.id}", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["vendor_id"] == vendor.id
    assert data["status"] == "dry_run"
    assert db.query(SupportReminderLog).count() == 1

    response = client.post("/api/webhook/send-reminder/9999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"
