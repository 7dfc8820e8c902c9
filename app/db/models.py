from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(UTC)


class Vendor(Base):
    """Registered street-food vendor (target of campaigns)."""

    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    contact_number: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Operating hours: "h:mm AM", "HH:mm" or "H:mm"; days 0=Sunday..6=Saturday
    open_time: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    close_time: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    operating_days: Mapped[list] = mapped_column(JSON, default=list)

    food_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # veg, nonveg, swaminarayan, jain
    best_dishes: Mapped[list] = mapped_column(JSON, default=list)  # [{"name": ..., "price": ...}]
    menu_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    profile_picture_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    preferred_languages: Mapped[list] = mapped_column(JSON, default=list)
    food_categories: Mapped[list] = mapped_column(JSON, default=list)
    stall_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)  # fixed, mobile
    onboarding_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    whatsapp_consent: Mapped[bool] = mapped_column(Boolean, default=False)
    aadhar_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    aadhar_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Location
    maps_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Contact(Base):
    """Any WhatsApp number that has messaged us, with last activity."""

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    phone: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    last_seen: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Message(Base):
    """Inbound or outbound WhatsApp message."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    from_number: Mapped[str] = mapped_column(String(64), index=True)
    to_number: Mapped[str] = mapped_column(String(64), index=True)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    direction: Mapped[str] = mapped_column(String(16), index=True)  # inbound, outbound
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    message_type: Mapped[str] = mapped_column(String(32), default="text")  # text, template, interactive, location, button
    template_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    provider: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)  # meta, twilio
    wa_message_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    meta: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # e.g. {"reminder_type": "support_prompt"}

    delivery_status: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)  # sent, failed, dry_run, delivered, read
    error_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class VendorLocation(Base):
    """Latest location shared over WhatsApp, keyed by phone."""

    __tablename__ = "vendor_locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    phone: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Admin(Base):
    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="admin")  # admin, super_admin, onground
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class SupportCall(Base):
    """Vendor asked for a support call-back."""

    __tablename__ = "support_calls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vendor_name: Mapped[str] = mapped_column(String(200))
    contact_number: Mapped[str] = mapped_column(String(32), index=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class SupportReminderLog(Base):
    """One row per inactive-vendor support prompt sent."""

    __tablename__ = "support_reminder_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contact_number: Mapped[str] = mapped_column(String(32), index=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)


class LoanReply(Base):
    """Vendor replied to the loan prompt."""

    __tablename__ = "loan_replies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vendor_name: Mapped[str] = mapped_column(String(200))
    contact_number: Mapped[str] = mapped_column(String(32), index=True)
    replied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    aadhar_verified: Mapped[bool] = mapped_column(Boolean, default=False)


class DispatchLog(Base):
    """Campaign send slot: one (contact, local date, type) may only be claimed once."""

    __tablename__ = "dispatch_logs"
    __table_args__ = (
        UniqueConstraint(
            "contact_number", "dispatch_date", "dispatch_type", name="uq_dispatch_contact_date_type"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vendor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    contact_number: Mapped[str] = mapped_column(String(32))
    dispatch_date: Mapped[str] = mapped_column(String(10))  # YYYY-MM-DD in local timezone
    dispatch_type: Mapped[str] = mapped_column(String(32))  # open, support_prompt, announcement, weekly, ...
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    wa_message_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    success: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)  # None while in flight
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Verification(Base):
    """Phone OTP verification."""

    __tablename__ = "verifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    phone: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    otp: Mapped[str] = mapped_column(String(6))
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    failed_attempts: Mapped[int] = mapped_column(Integer, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class ProcessedMessage(Base):
    """Idempotency table - stores processed provider message IDs to prevent duplicates."""

    __tablename__ = "processed_messages"
    __table_args__ = (
        UniqueConstraint("provider", "message_id", name="uq_processed_messages_provider_message_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    provider: Mapped[str] = mapped_column(String(20), default="meta")
    message_id: Mapped[str] = mapped_column(String(255), index=True)
    event_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class SystemEvent(Base):
    """Structured operational event (send failures, signature failures, job errors)."""

    __tablename__ = "system_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    level: Mapped[str] = mapped_column(String(10), index=True)  # INFO, WARN, ERROR
    event_type: Mapped[str] = mapped_column(String(100), index=True)
    contact_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
