"""
Vendor records: CRUD validation, phone-variant lookup, location and opening hours.
"""

import logging
import re
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.helpers import commit_and_refresh
from app.db.models import Vendor, VendorLocation
from app.utils.datetime_utils import js_weekday, local_now, parse_clock_time, utc_now
from app.utils.phone import phone_variants, to_e164

logger = logging.getLogger(__name__)

_MAPS_AT_RE = re.compile(r"@(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)")
_MAPS_Q_RE = re.compile(r"[?&]q=(-?\d+(?:\.\d+)?),\s*(-?\d+(?:\.\d+)?)")

# Fields a create/update payload may set directly
VENDOR_FIELDS = (
    "name",
    "contact_number",
    "status",
    "open_time",
    "close_time",
    "operating_days",
    "food_type",
    "best_dishes",
    "menu_link",
    "maps_link",
    "profile_picture_url",
    "preferred_languages",
    "food_categories",
    "stall_type",
    "whatsapp_consent",
    "onboarding_type",
)


class VendorValidationError(ValueError):
    pass


class VendorConflictError(Exception):
    pass


def find_vendor_by_phone(db: Session, phone: str | None) -> Vendor | None:
    variants = phone_variants(phone)
    if not variants:
        return None
    return db.execute(
        select(Vendor).where(Vendor.contact_number.in_(variants)).order_by(Vendor.id)
    ).scalars().first()


def _clean_best_dishes(dishes: list | None) -> list[dict]:
    """At least one named dish is required; unnamed entries are dropped."""
    if not dishes or not (dishes[0].get("name") or "").strip():
        raise VendorValidationError("At least one best dish is required and must have a name")
    return [
        {"name": d["name"].strip(), "price": d.get("price")}
        for d in dishes
        if (d.get("name") or "").strip()
    ]


def create_vendor(db: Session, data: dict) -> Vendor:
    """
    Raises:
        VendorValidationError: missing name/contact or no named dish
        VendorConflictError: a vendor with that contact number exists
    """
    if not data.get("contact_number") or not data.get("name"):
        raise VendorValidationError("Contact number and name are required")
    best_dishes = _clean_best_dishes(data.get("best_dishes"))

    if find_vendor_by_phone(db, data["contact_number"]) is not None:
        raise VendorConflictError("User with that contact number already exists")

    values = {k: data[k] for k in VENDOR_FIELDS if data.get(k) is not None}
    values["best_dishes"] = best_dishes
    vendor = Vendor(**values)
    coords = extract_coordinates_from_maps_link(vendor.maps_link)
    if coords:
        vendor.latitude, vendor.longitude = coords
        vendor.location_updated_at = utc_now()
    db.add(vendor)
    commit_and_refresh(db, vendor)
    logger.info(f"Created vendor {vendor.id} ({vendor.contact_number})")
    return vendor


def update_vendor(db: Session, vendor: Vendor, data: dict) -> Vendor:
    """Partial update: only keys present and not None are applied."""
    if data.get("best_dishes") is not None:
        data = {**data, "best_dishes": _clean_best_dishes(data["best_dishes"])}
    if data.get("contact_number") and data["contact_number"] != vendor.contact_number:
        other = find_vendor_by_phone(db, data["contact_number"])
        if other is not None and other.id != vendor.id:
            raise VendorConflictError("User with that contact number already exists")
    for key in VENDOR_FIELDS:
        if key in data and data[key] is not None:
            setattr(vendor, key, data[key])
    if data.get("maps_link"):
        coords = extract_coordinates_from_maps_link(vendor.maps_link)
        if coords:
            vendor.latitude, vendor.longitude = coords
            vendor.location_updated_at = utc_now()
    commit_and_refresh(db, vendor)
    return vendor


def delete_vendor(db: Session, vendor_id: int) -> bool:
    vendor = db.get(Vendor, vendor_id)
    if vendor is None:
        return False
    db.delete(vendor)
    db.commit()
    logger.info(f"Deleted vendor {vendor_id}")
    return True


def extract_coordinates_from_maps_link(link: str | None) -> tuple[float, float] | None:
    """Google Maps link -> (lat, lng) from "@lat,lng" or "?q=lat,lng"."""
    if not link:
        return None
    match = _MAPS_AT_RE.search(link) or _MAPS_Q_RE.search(link)
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def update_vendor_location(
    db: Session,
    contact_number: str,
    maps_link: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
) -> Vendor:
    """
    Set a vendor's maps link and/or coordinates. Coordinates are derived from the
    maps link when not given.

    Raises:
        ValueError: nothing to update
        LookupError: vendor not found
    """
    if (lat is None or lng is None) and maps_link:
        coords = extract_coordinates_from_maps_link(maps_link)
        if coords:
            lat, lng = coords
    if not maps_link and (lat is None or lng is None):
        raise ValueError("Nothing to update: provide at least one of mapsLink, lat, or lng")

    vendor = find_vendor_by_phone(db, contact_number)
    if vendor is None:
        raise LookupError("Vendor not found")

    if maps_link:
        vendor.maps_link = maps_link
    if lat is not None and lng is not None:
        vendor.latitude = float(lat)
        vendor.longitude = float(lng)
        vendor.location_updated_at = utc_now()
    commit_and_refresh(db, vendor)
    return vendor


def apply_shared_location(db: Session, phone: str, lat: float, lng: float) -> Vendor | None:
    """
    Location pinned over WhatsApp: upsert VendorLocation and, for registered
    vendors, update coordinates + maps link.
    """
    e164 = to_e164(phone) or phone
    location = db.execute(
        select(VendorLocation).where(VendorLocation.phone == e164)
    ).scalar_one_or_none()
    if location is None:
        location = VendorLocation(phone=e164, latitude=lat, longitude=lng)
        db.add(location)
    else:
        location.latitude = lat
        location.longitude = lng
        location.updated_at = utc_now()

    vendor = find_vendor_by_phone(db, phone)
    if vendor is not None:
        vendor.latitude = lat
        vendor.longitude = lng
        vendor.maps_link = f"https://maps.google.com/?q={lat},{lng}"
        vendor.location_updated_at = utc_now()
    db.commit()
    return vendor


def is_open_now(vendor: Vendor, now: datetime | None = None) -> bool:
    """
    Open if today is an operating day and local time is within [open, close).
    Overnight hours (close <= open) count from open until midnight today and
    from midnight until close on the day after an operating day.
    """
    days = vendor.operating_days or []
    open_minutes = parse_clock_time(vendor.open_time)
    close_minutes = parse_clock_time(vendor.close_time)
    if open_minutes is None or close_minutes is None or not days:
        return False

    local = local_now(now)
    day = js_weekday(local)
    yesterday = (day + 6) % 7
    now_minutes = local.hour * 60 + local.minute

    if open_minutes < close_minutes:
        return day in days and open_minutes <= now_minutes < close_minutes
    if now_minutes >= open_minutes:
        return day in days
    if now_minutes < close_minutes:
        return yesterday in days
    return False


def count_open_vendors(db: Session, now: datetime | None = None) -> int:
    vendors = db.execute(select(Vendor)).scalars().all()
    return sum(1 for v in vendors if is_open_now(v, now))


def vendor_contacts(db: Session) -> list[dict]:
    rows = db.execute(select(Vendor.contact_number, Vendor.name).order_by(Vendor.name)).all()
    return [{"contact_number": c, "name": n} for c, n in rows]
