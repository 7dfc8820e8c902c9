import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.auth import get_current_admin
from app.constants.event_types import EVENT_ADMIN_LOGIN_FAILURE
from app.db.deps import get_db
from app.db.models import Admin
from app.schemas.auth import AdminResponse, LoginRequest, TokenResponse
from app.services.auth_service import authenticate, create_access_token
from app.services.system_event_service import warn

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    admin = authenticate(db, body.username, body.password)
    if admin is None:
        logger.warning(f"Failed login for username={body.username!r}")
        warn(db=db, event_type=EVENT_ADMIN_LOGIN_FAILURE, payload={"username": body.username[:64]})
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return TokenResponse(
        access_token=create_access_token(admin),
        admin=AdminResponse.model_validate(admin),
    )


@router.get("/me", response_model=AdminResponse)
def me(admin: Admin = Depends(get_current_admin)):
    return admin
