import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.auth import get_current_admin
from app.db.deps import get_db
from app.db.models import Admin
from app.schemas.messages import ContactResponse, DeleteContactsRequest
from app.services.contacts import delete_contacts, get_contact, list_contacts

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[ContactResponse])
def get_contacts(limit: int = 50, db: Session = Depends(get_db)):
    """Most recently active contacts first."""
    return list_contacts(db, limit=max(1, min(limit, 500)))


@router.delete("/delete-many")
def delete_many_contacts(
    body: DeleteContactsRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    deleted = delete_contacts(db, body.phones)
    logger.info(f"{admin.username} deleted {deleted} contacts")
    return {"success": True, "deleted": deleted}


@router.get("/{phone}", response_model=ContactResponse)
def get_contact_by_phone(phone: str, db: Session = Depends(get_db)):
    contact = get_contact(db, phone)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact
