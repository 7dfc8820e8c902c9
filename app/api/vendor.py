import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.db.models import Vendor
from app.schemas.vendors import LocationUpdateRequest, VendorResponse
from app.services.vendors import count_open_vendors, update_vendor_location

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[VendorResponse])
def list_vendors(db: Session = Depends(get_db)):
    return db.execute(select(Vendor).order_by(Vendor.name, Vendor.id)).scalars().all()


@router.get("/open-count")
def open_vendor_count(db: Session = Depends(get_db)):
    """Vendors open right now (local time, operating days and hours)."""
    return {"count": count_open_vendors(db)}


@router.post("/update-location", response_model=VendorResponse)
def update_location(body: LocationUpdateRequest, db: Session = Depends(get_db)):
    try:
        return update_vendor_location(
            db, body.contact_number, maps_link=body.maps_link, lat=body.lat, lng=body.lng
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
