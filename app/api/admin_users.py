"""
Dashboard admin-user management (super_admin only).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.auth import require_super_admin
from app.constants.statuses import ADMIN_ROLES
from app.db.deps import get_db
from app.db.helpers import commit_and_refresh
from app.db.models import Admin
from app.schemas.auth import AdminCreateRequest, AdminResponse, AdminUpdateRequest
from app.services.auth_service import AdminConflictError, create_admin, hash_password

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_admin_or_404(db: Session, admin_id: int) -> Admin:
    admin = db.get(Admin, admin_id)
    if admin is None:
        raise HTTPException(status_code=404, detail="Admin user not found")
    return admin


@router.get("", response_model=list[AdminResponse])
def list_admins(db: Session = Depends(get_db), _admin: Admin = Depends(require_super_admin)):
    return db.execute(select(Admin).order_by(Admin.created_at.desc(), Admin.id.desc())).scalars().all()


@router.post("", response_model=AdminResponse, status_code=201)
def create_admin_user(
    body: AdminCreateRequest,
    db: Session = Depends(get_db),
    current: Admin = Depends(require_super_admin),
):
    try:
        admin = create_admin(db, body.username, body.password, email=body.email, role=body.role)
    except AdminConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Admin {current.username} created admin {admin.username}")
    return admin


@router.put("/{admin_id}", response_model=AdminResponse)
def update_admin_user(
    admin_id: int,
    body: AdminUpdateRequest,
    db: Session = Depends(get_db),
    current: Admin = Depends(require_super_admin),
):
    admin = _get_admin_or_404(db, admin_id)
    if body.role is not None:
        if body.role not in ADMIN_ROLES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid role '{body.role}'. Must be one of: {', '.join(ADMIN_ROLES)}",
            )
        if admin.id == current.id and body.role != admin.role:
            raise HTTPException(status_code=400, detail="You cannot change your own role")
        admin.role = body.role
    if body.email is not None:
        admin.email = body.email
    if body.password:
        admin.password_hash = hash_password(body.password)
    commit_and_refresh(db, admin)
    return admin


@router.delete("/{admin_id}")
def delete_admin_user(
    admin_id: int,
    db: Session = Depends(get_db),
    current: Admin = Depends(require_super_admin),
):
    admin = _get_admin_or_404(db, admin_id)
    if admin.id == current.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    db.delete(admin)
    db.commit()
    logger.info(f"Admin {current.username} deleted admin {admin_id}")
    return {"success": True, "id": admin_id}
