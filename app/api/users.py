"""
Vendor records ("users" in the dashboard).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.auth import get_current_admin
from app.api.dependencies import get_vendor_or_404
from app.constants.providers import PROVIDER_TWILIO
from app.core.config import settings
from app.db.deps import get_db
from app.db.models import Admin, Vendor
from app.schemas.vendors import VendorCreate, VendorResponse, VendorUpdate
from app.services.messaging.outbound import send_and_record
from app.services.messaging.whatsapp_templates import TEMPLATE_WELCOME_ONBOARDING
from app.services.vendors import (
    VendorConflictError,
    VendorValidationError,
    create_vendor,
    delete_vendor,
    update_vendor,
    vendor_contacts,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/user-contacts")
def list_user_contacts(db: Session = Depends(get_db)):
    """Public: contact numbers and names of all vendors."""
    return vendor_contacts(db)


@router.get("", response_model=list[VendorResponse])
def list_users(db: Session = Depends(get_db), _admin: Admin = Depends(get_current_admin)):
    return db.execute(select(Vendor).order_by(Vendor.created_at.desc(), Vendor.id.desc())).scalars().all()


@router.post("", response_model=VendorResponse, status_code=201)
async def create_user(
    body: VendorCreate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    try:
        vendor = create_vendor(db, body.model_dump(exclude_none=True))
    except VendorValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except VendorConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    # Welcome message; a failed send never fails the create
    result = await send_and_record(
        db,
        vendor.contact_number,
        provider=PROVIDER_TWILIO,
        template_name=TEMPLATE_WELCOME_ONBOARDING,
        content_sid=settings.twilio_welcome_content_sid,
        meta={"vendor_id": vendor.id, "created_by": admin.username},
    )
    if result["status"] == "failed":
        logger.warning(f"Welcome message to vendor {vendor.id} failed: {result.get('error')}")
    return vendor


@router.put("/{vendor_id}", response_model=VendorResponse)
def update_user(
    body: VendorUpdate,
    vendor: Vendor = Depends(get_vendor_or_404),
    db: Session = Depends(get_db),
    _admin: Admin = Depends(get_current_admin),
):
    try:
        return update_vendor(db, vendor, body.model_dump(exclude_none=True))
    except VendorValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except VendorConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{vendor_id}")
def delete_user(
    vendor_id: int,
    db: Session = Depends(get_db),
    _admin: Admin = Depends(get_current_admin),
):
    if not delete_vendor(db, vendor_id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "id": vendor_id}
