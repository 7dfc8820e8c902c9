"""
Outbound send-and-record, message history and dashboard stats.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from app.constants.statuses import (
    DELIVERY_FAILED,
    DIRECTION_OUTBOUND,
    REMINDER_SUPPORT_PROMPT,
    REMINDER_VENDOR_LOCATION_OPEN,
)
from app.db.models import Message, SystemEvent
from app.services import message_stats
from app.services.messaging.meta_client import WhatsAppSendError
from app.services.messaging.outbound import send_and_record
from tests.helpers.factories import NOW, OTHER_PHONE, VENDOR_PHONE, make_message, make_vendor


@pytest.mark.asyncio
async def test_send_and_record_stores_dry_run_row(db):
    result = await send_and_record(
        db, "9876543210", template_name="update_location_cron_util", reminder_type=REMINDER_VENDOR_LOCATION_OPEN, now=NOW
    )
    assert result["status"] == "dry_run"
    assert result["to"] == VENDOR_PHONE

    row = db.get(Message, result["message"])
    assert row.direction == DIRECTION_OUTBOUND
    assert row.message_type == "template"
    assert row.template_name == "update_location_cron_util"
    assert row.delivery_status == "dry_run"
    assert row.meta == {"reminder_type": REMINDER_VENDOR_LOCATION_OPEN}
    assert row.from_number == "test_id"


@pytest.mark.asyncio
async def test_send_and_record_failure_is_stored_not_raised(db):
    with patch(
        "app.services.messaging.outbound.send_template_message",
        new=AsyncMock(side_effect=WhatsAppSendError("Recipient not in allowed list", code="131030")),
    ):
        result = await send_and_record(db, VENDOR_PHONE, template_name="inactive_vendors_support_prompt_util", now=NOW)

    assert result["status"] == "failed"
    assert result["error_code"] == "131030"
    row = db.get(Message, result["message"])
    assert row.delivery_status == DELIVERY_FAILED
    assert row.error_code == "131030"
    assert row.error_message == "Recipient not in allowed list"

    event = db.query(SystemEvent).filter(SystemEvent.event_type == "whatsapp.send_failure").one()
    assert event.level == "ERROR"
    assert event.contact_number == VENDOR_PHONE
    assert event.payload["message_row_id"] == row.id
    assert event.payload["error"]["type"] == "WhatsAppSendError"


@pytest.mark.asyncio
async def test_twilio_send_records_content_sid(db):
    result = await send_and_record(
        db,
        VENDOR_PHONE,
        provider="twilio",
        template_name="welcome_message_for_onboarding",
        content_sid="HX123",
        now=NOW,
    )
    row = db.get(Message, result["message"])
    assert row.provider == "twilio"
    assert row.message_type == "template"
    assert row.meta == {"content_sid": "HX123"}
    assert row.from_number == "+14155238886"


# ---- stats ----


def test_outbound_health_today_counts_failures(db):
    make_vendor(db)
    make_message(db, direction=DIRECTION_OUTBOUND, delivery_status="sent", timestamp=NOW - timedelta(hours=1))
    make_message(
        db,
        direction=DIRECTION_OUTBOUND,
        delivery_status=DELIVERY_FAILED,
        error_message="Re-engagement message",
        timestamp=NOW - timedelta(hours=2),
    )
    # Yesterday (local) does not count
    make_message(db, direction=DIRECTION_OUTBOUND, delivery_status="sent", timestamp=NOW - timedelta(hours=12))

    health = message_stats.outbound_health_today(db, now=NOW)
    assert health["today"] == {"total": 2, "successful": 1, "failed": 1, "success_rate": 50.0}
    assert health["failed_messages"][0]["vendor_name"] == "Sharma Chaat Corner"
    assert health["failed_messages"][0]["error"] == "Re-engagement message"


def test_outbound_health_with_no_messages(db):
    assert message_stats.outbound_health_today(db, now=NOW)["today"]["success_rate"] == 100.0


def test_active_vendor_count_and_list(db):
    make_vendor(db)
    make_message(db, VENDOR_PHONE, timestamp=NOW - timedelta(hours=3))
    make_message(db, VENDOR_PHONE, timestamp=NOW - timedelta(hours=1))
    make_message(db, OTHER_PHONE, timestamp=NOW - timedelta(hours=2))
    make_message(db, "+919111111111", timestamp=NOW - timedelta(hours=30))

    assert message_stats.active_vendor_count(db, hours=24, now=NOW) == 2
    rows = message_stats.active_vendor_list(db, hours=24, now=NOW)
    assert [r["contact_number"] for r in rows] == [VENDOR_PHONE, OTHER_PHONE]
    assert rows[0]["name"] == "Sharma Chaat Corner"
    assert rows[1]["name"] == ""
    assert message_stats.inbound_count(db) == 4


def test_active_vendor_stats_week_and_month(db):
    # NOW is Monday 2026-10-19 local; Sunday 2026-10-18 belongs to the previous week
    make_message(db, VENDOR_PHONE, timestamp=NOW)
    make_message(db, OTHER_PHONE, timestamp=NOW)
    make_message(db, VENDOR_PHONE, timestamp=NOW - timedelta(days=1))

    stats = message_stats.active_vendor_stats(db, now=NOW)
    assert stats["days"][0] == {"date": "2026-10-19", "count": 2}
    assert len(stats["days"]) == 7
    assert stats["week"] == {"start": "2026-10-19", "end": "2026-10-25", "count": 2}
    assert stats["month"] == {"month": "2026-10", "count": 2}


def test_message_health_groups_by_reminder_kind(db):
    make_message(
        db, direction=DIRECTION_OUTBOUND, meta={"reminder_type": REMINDER_SUPPORT_PROMPT}, delivery_status="sent"
    )
    make_message(
        db,
        direction=DIRECTION_OUTBOUND,
        template_name="update_location_cron_util",
        delivery_status=DELIVERY_FAILED,
        error_code="131047",
    )
    make_message(db, direction=DIRECTION_OUTBOUND, delivery_status="dry_run")
    make_message(db, direction=DIRECTION_OUTBOUND, timestamp=NOW - timedelta(hours=49))

    health = message_stats.message_health(db, hours=48, now=NOW)
    assert health["groups"]["support_prompt"] == {"total": 1, "sent": 1, "failed": 0}
    assert health["groups"]["location"] == {"total": 1, "sent": 0, "failed": 1}
    assert health["groups"]["other"] == {"total": 1, "sent": 1, "failed": 0}
    assert health["total"] == 3
    assert health["failed"] == 1


def test_recent_activity_summary(db):
    make_vendor(db)
    make_message(db, direction=DIRECTION_OUTBOUND, meta={"reminder_type": REMINDER_SUPPORT_PROMPT})
    make_message(db, direction=DIRECTION_OUTBOUND, meta={"reminder_type": REMINDER_VENDOR_LOCATION_OPEN})
    make_message(db, direction=DIRECTION_OUTBOUND, template_name="default_hi_and_loan_prompt")

    activity = message_stats.recent_activity(db, hours=24, now=NOW)
    assert activity["summary"] == {
        "total_support_reminders": 1,
        "total_location_updates": 1,
        "total_messages": 2,
    }
    assert activity["support_call_reminders"][0]["vendor_name"] == "Sharma Chaat Corner"


# ---- API ----


def test_send_endpoint(client, db, admin_headers):
    response = client.post(
        "/api/messages/send", json={"to": "9876543210", "body": "Namaste!"}, headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "dry_run"
    row = db.get(Message, data["message"])
    assert row.body == "Namaste!"
    assert row.provider == "twilio"
    assert row.meta["sent_by"] == "ops_admin"


def test_send_endpoint_requires_admin(client, db):
    response = client.post("/api/messages/send", json={"to": "9876543210", "body": "Namaste!"})
    assert response.status_code == 401
    bad = client.post(
        "/api/messages/send",
        json={"to": "9876543210", "body": "Namaste!"},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert bad.status_code == 401
    assert db.query(Message).count() == 0


def test_send_endpoint_rejects_bad_input(client, admin_headers):
    def send(payload):
        return client.post("/api/messages/send", json=payload, headers=admin_headers).status_code

    assert send({"to": "9876543210", "body": "x", "provider": "sms"}) == 400
    assert send({"to": "abc", "body": "x"}) == 400
    assert send({"to": "9876543210", "body": ""}) == 422


def test_send_endpoint_reports_provider_failure(client, admin_headers):
    with patch(
        "app.services.messaging.outbound.send_text_message",
        new=AsyncMock(side_effect=WhatsAppSendError("boom", code="500")),
    ):
        response = client.post(
            "/api/messages/send",
            json={"to": "9876543210", "body": "x", "provider": "meta"},
            headers=admin_headers,
        )
    assert response.status_code == 502


def test_chat_history_endpoint(client, db):
    make_message(db, VENDOR_PHONE, body="hi", timestamp=NOW - timedelta(minutes=5))
    make_message(db, VENDOR_PHONE, direction=DIRECTION_OUTBOUND, body="hello back", timestamp=NOW)
    make_message(db, OTHER_PHONE, body="other")

    response = client.get("/api/messages/9876543210")
    assert response.status_code == 200
    assert [m["body"] for m in response.json()] == ["hi", "hello back"]

    response = client.get("/api/messages/919000000000")
    assert response.status_code == 404
    assert response.json()["detail"] == "No messages found for this number"


def test_stats_endpoints_shape(client, db):
    make_message(db, VENDOR_PHONE)
    assert client.get("/api/messages/inbound-count").json() == {"count": 1}
    assert set(client.get("/api/messages/health").json()) == {"today", "failed_messages", "last_updated"}
    assert "count" in client.get("/api/messages/active-vendors-24h").json()
    assert isinstance(client.get("/api/messages/active-vendor-list-24h").json(), list)
    assert set(client.get("/api/messages/active-vendors-stats").json()) == {"days", "week", "month"}
    stats = client.get("/api/dashboard-stats").json()
    assert set(stats) == {"total_vendors", "total_messages", "open_vendors", "active_vendors_24h"}
    assert stats["total_messages"] == 1
