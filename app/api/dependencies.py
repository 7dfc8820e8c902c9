"""FastAPI dependencies for API routes."""

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.deps import get_db
from app.db.models import Vendor


def get_vendor_or_404(vendor_id: int, db: Session = Depends(get_db)) -> Vendor:
    """
    Resolve vendor by path parameter vendor_id; raise 404 if not found.

    Use as a dependency on routes with path parameter {vendor_id}.
    """
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise HTTPException(status_code=404, detail="User not found")
    return vendor
