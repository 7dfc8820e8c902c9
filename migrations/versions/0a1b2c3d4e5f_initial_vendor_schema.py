"""initial_vendor_schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e5f"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("contact_number", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("open_time", sa.String(length=16), nullable=True),
        sa.Column("close_time", sa.String(length=16), nullable=True),
        sa.Column("operating_days", sa.JSON(), nullable=False),
        sa.Column("food_type", sa.String(length=20), nullable=True),
        sa.Column("best_dishes", sa.JSON(), nullable=False),
        sa.Column("menu_link", sa.String(length=500), nullable=True),
        sa.Column("profile_picture_url", sa.String(length=500), nullable=True),
        sa.Column("preferred_languages", sa.JSON(), nullable=False),
        sa.Column("food_categories", sa.JSON(), nullable=False),
        sa.Column("stall_type", sa.String(length=32), nullable=True),
        sa.Column("onboarding_type", sa.String(length=32), nullable=True),
        sa.Column("whatsapp_consent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("aadhar_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("aadhar_verified_at", nullable=True),
        sa.Column("maps_link", sa.String(length=500), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        _ts("location_updated_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_vendors_contact_number"), "vendors", ["contact_number"], unique=True)

    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        _ts("last_seen"),
        _ts("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_contacts_phone"), "contacts", ["phone"], unique=True)
    op.create_index(op.f("ix_contacts_last_seen"), "contacts", ["last_seen"], unique=False)

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("from_number", sa.String(length=64), nullable=False),
        sa.Column("to_number", sa.String(length=64), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("direction", sa.String(length=16), nullable=False),
        _ts("timestamp"),
        sa.Column("message_type", sa.String(length=32), nullable=False),
        sa.Column("template_name", sa.String(length=128), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("provider", sa.String(length=16), nullable=True),
        sa.Column("wa_message_id", sa.String(length=255), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("delivery_status", sa.String(length=16), nullable=True),
        sa.Column("error_code", sa.String(length=64), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_messages_from_number"), "messages", ["from_number"], unique=False)
    op.create_index(op.f("ix_messages_to_number"), "messages", ["to_number"], unique=False)
    op.create_index(op.f("ix_messages_direction"), "messages", ["direction"], unique=False)
    op.create_index(op.f("ix_messages_timestamp"), "messages", ["timestamp"], unique=False)
    op.create_index(op.f("ix_messages_wa_message_id"), "messages", ["wa_message_id"], unique=False)

    op.create_table(
        "vendor_locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        _ts("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_vendor_locations_phone"), "vendor_locations", ["phone"], unique=True)

    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="admin"),
        _ts("last_login", nullable=True),
        _ts("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admins_username"), "admins", ["username"], unique=True)

    op.create_table(
        "support_calls",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_name", sa.String(length=200), nullable=False),
        sa.Column("contact_number", sa.String(length=32), nullable=False),
        _ts("requested_at"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_by", sa.String(length=64), nullable=True),
        _ts("completed_at", nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_support_calls_contact_number"), "support_calls", ["contact_number"], unique=False)
    op.create_index(op.f("ix_support_calls_requested_at"), "support_calls", ["requested_at"], unique=False)

    op.create_table(
        "support_reminder_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("contact_number", sa.String(length=32), nullable=False),
        _ts("sent_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_support_reminder_logs_contact_number"), "support_reminder_logs", ["contact_number"], unique=False
    )
    op.create_index(op.f("ix_support_reminder_logs_sent_at"), "support_reminder_logs", ["sent_at"], unique=False)

    op.create_table(
        "loan_replies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_name", sa.String(length=200), nullable=False),
        sa.Column("contact_number", sa.String(length=32), nullable=False),
        _ts("replied_at"),
        sa.Column("aadhar_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_loan_replies_contact_number"), "loan_replies", ["contact_number"], unique=False)
    op.create_index(op.f("ix_loan_replies_replied_at"), "loan_replies", ["replied_at"], unique=False)

    op.create_table(
        "dispatch_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=True),
        sa.Column("contact_number", sa.String(length=32), nullable=False),
        sa.Column("dispatch_date", sa.String(length=10), nullable=False),
        sa.Column("dispatch_type", sa.String(length=32), nullable=False),
        _ts("sent_at"),
        sa.Column("wa_message_id", sa.String(length=255), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "contact_number", "dispatch_date", "dispatch_type", name="uq_dispatch_contact_date_type"
        ),
    )
    op.create_index(op.f("ix_dispatch_logs_vendor_id"), "dispatch_logs", ["vendor_id"], unique=False)

    op.create_table(
        "verifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("otp", sa.String(length=6), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("expires_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_verifications_phone"), "verifications", ["phone"], unique=True)

    op.create_table(
        "processed_messages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("provider", sa.String(length=20), nullable=False, server_default="meta"),
        sa.Column("message_id", sa.String(length=255), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=True),
        _ts("processed_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider", "message_id", name="uq_processed_messages_provider_message_id"),
    )
    op.create_index(op.f("ix_processed_messages_message_id"), "processed_messages", ["message_id"], unique=False)

    op.create_table(
        "system_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("level", sa.String(length=10), nullable=False),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("contact_number", sa.String(length=32), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        _ts("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_system_events_level"), "system_events", ["level"], unique=False)
    op.create_index(op.f("ix_system_events_event_type"), "system_events", ["event_type"], unique=False)
    op.create_index(op.f("ix_system_events_contact_number"), "system_events", ["contact_number"], unique=False)
    op.create_index(op.f("ix_system_events_created_at"), "system_events", ["created_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "system_events",
        "processed_messages",
        "verifications",
        "dispatch_logs",
        "loan_replies",
        "support_reminder_logs",
        "support_calls",
        "admins",
        "vendor_locations",
        "messages",
        "contacts",
        "vendors",
    ):
        op.drop_table(table)
