"""
Contact tracking (last_seen per WhatsApp number).
"""

import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.helpers import is_unique_violation
from app.db.models import Contact, Vendor
from app.utils.datetime_utils import utc_now
from app.utils.phone import phone_variants, to_e164

logger = logging.getLogger(__name__)


def touch_contact(db: Session, phone: str, seen_at: datetime | None = None) -> Contact | None:
    """Upsert a contact and move last_seen forward."""
    e164 = to_e164(phone)
    if not e164:
        return None
    seen_at = seen_at or utc_now()
    contact = db.execute(select(Contact).where(Contact.phone == e164)).scalar_one_or_none()
    if contact is None:
        contact = Contact(phone=e164, last_seen=seen_at)
        db.add(contact)
        try:
            db.flush()
        except IntegrityError as e:
            # Concurrent webhook created it first
            if not is_unique_violation(e):
                raise
            db.rollback()
            contact = db.execute(select(Contact).where(Contact.phone == e164)).scalar_one()
            contact.last_seen = seen_at
    else:
        contact.last_seen = seen_at
    db.commit()
    return contact


def vendor_names_by_phone(db: Session, phones: list[str]) -> dict[str, str]:
    """Map each given phone to a vendor name, matching any stored phone format."""
    variant_to_phone: dict[str, str] = {}
    for phone in phones:
        for variant in phone_variants(phone):
            variant_to_phone.setdefault(variant, phone)
    if not variant_to_phone:
        return {}
    rows = db.execute(
        select(Vendor.contact_number, Vendor.name).where(
            Vendor.contact_number.in_(list(variant_to_phone))
        )
    ).all()
    names: dict[str, str] = {}
    for contact_number, name in rows:
        names.setdefault(variant_to_phone[contact_number], name)
    return names


def list_contacts(db: Session, limit: int = 50) -> list[dict]:
    contacts = db.execute(
        select(Contact).order_by(Contact.last_seen.desc()).limit(limit)
    ).scalars().all()
    names = vendor_names_by_phone(db, [c.phone for c in contacts])
    return [
        {
            "id": c.id,
            "phone": c.phone,
            "name": names.get(c.phone),
            "last_seen": c.last_seen,
        }
        for c in contacts
    ]


def get_contact(db: Session, phone: str) -> Contact | None:
    variants = phone_variants(phone)
    if not variants:
        return None
    return db.execute(select(Contact).where(Contact.phone.in_(variants))).scalars().first()


def delete_contacts(db: Session, phones: list[str]) -> int:
    variants = [v for p in phones for v in phone_variants(p)]
    if not variants:
        return 0
    result = db.execute(delete(Contact).where(Contact.phone.in_(variants)))
    db.commit()
    logger.info(f"Deleted {result.rowcount} contacts")
    return result.rowcount
