"""
Engagement dashboard endpoints: support calls, loan replies and reminder activity.
"""

from datetime import timedelta

from app.constants.statuses import DIRECTION_OUTBOUND, REMINDER_SUPPORT_PROMPT
from app.db.models import LoanReply, Message, SupportCall, SystemEvent
from app.utils.datetime_utils import utc_now
from tests.helpers.factories import NOW, OTHER_PHONE, VENDOR_PHONE, make_message


def _support_call(db, phone=VENDOR_PHONE, completed=False, requested_at=NOW) -> SupportCall:
    call = SupportCall(
        vendor_name="Sharma Chaat Corner", contact_number=phone, requested_at=requested_at, completed=completed
    )
    db.add(call)
    db.commit()
    db.refresh(call)
    return call


def test_list_support_calls_newest_first_with_filter(client, db):
    older = _support_call(db, requested_at=NOW - timedelta(hours=2))
    newer = _support_call(db, phone=OTHER_PHONE, completed=True)

    data = client.get("/api/webhook/support-calls").json()
    assert [c["id"] for c in data] == [newer.id, older.id]

    pending = client.get("/api/webhook/support-calls", params={"completed": "false"}).json()
    assert [c["id"] for c in pending] == [older.id]


def test_complete_support_call(client, db, admin_headers):
    call = _support_call(db)

    assert client.patch(f"/api/webhook/support-calls/{call.id}/complete").status_code == 401

    response = client.patch(f"/api/webhook/support-calls/{call.id}/complete", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["completed"] is True
    assert data["completed_by"] == "ops_admin"
    assert data["completed_at"] is not None

    event = db.query(SystemEvent).filter(SystemEvent.event_type == "support_call.completed").one()
    assert event.contact_number == VENDOR_PHONE
    assert event.payload["completed_by"] == "ops_admin"

    followup = db.query(Message).filter(Message.direction == DIRECTION_OUTBOUND).one()
    assert followup.template_name == "post_support_call_message_for_vendors"
    assert followup.meta == {"support_call_id": call.id}

    # Completing again is a no-op
    again = client.patch(f"/api/webhook/support-calls/{call.id}/complete", headers=admin_headers)
    assert again.status_code == 200
    assert db.query(Message).filter(Message.direction == DIRECTION_OUTBOUND).count() == 1


def test_complete_unknown_support_call(client, admin_headers):
    response = client.patch("/api/webhook/support-calls/999/complete", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Support call not found"


def test_loan_replies(client, db):
    db.add(LoanReply(vendor_name="Sharma Chaat Corner", contact_number=VENDOR_PHONE, replied_at=NOW))
    db.add(
        LoanReply(
            vendor_name="Unknown",
            contact_number=OTHER_PHONE,
            replied_at=NOW - timedelta(days=1),
            aadhar_verified=True,
        )
    )
    db.commit()

    data = client.get("/api/webhook/loan-replies").json()
    assert [r["contact_number"] for r in data] == [VENDOR_PHONE, OTHER_PHONE]
    assert data[1]["aadhar_verified"] is True


def test_message_health_and_recent_activity(client, db):
    now = utc_now()
    make_message(
        db,
        direction=DIRECTION_OUTBOUND,
        meta={"reminder_type": REMINDER_SUPPORT_PROMPT},
        delivery_status="sent",
        timestamp=now - timedelta(hours=1),
    )

    health = client.get("/api/webhook/message-health").json()
    assert health["groups"]["support_prompt"]["sent"] == 1
    assert health["total"] == 1

    activity = client.get("/api/webhook/recent-activity").json()
    assert activity["success"] is True
    assert activity["summary"]["total_support_reminders"] == 1
    assert activity["support_call_reminders"][0]["contact_number"] == VENDOR_PHONE
