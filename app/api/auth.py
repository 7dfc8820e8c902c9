"""
Authentication dependencies.

- Dashboard routes: Bearer JWT issued by /api/auth/login (get_current_admin)
- Ops routes (/admin/...): X-Admin-API-Key header or a Bearer JWT (get_ops_auth)
"""

import hmac

from fastapi import Depends, HTTPException, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.constants.statuses import ROLE_SUPER_ADMIN
from app.core.config import settings
from app.db.deps import get_db
from app.db.models import Admin
from app.services.auth_service import decode_access_token

# API Key header name
API_KEY_HEADER = "X-Admin-API-Key"

# Security schemes
api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


def get_admin_auth(api_key: str | None = Security(api_key_header)) -> bool:
    """
    Verify admin API key from header.

    Raises:
        HTTPException: If API key is missing or invalid
        RuntimeError: If in production without admin_api_key configured
    """
    # Production safety: never fall open without a key in production
    if settings.app_env == "production" and not settings.admin_api_key:
        raise RuntimeError(
            "ADMIN_API_KEY must be set in production environment. "
            "Set ADMIN_API_KEY environment variable or set APP_ENV=dev for development."
        )

    # If no admin_api_key is configured, allow access (dev mode only)
    if not settings.admin_api_key:
        return True

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing API key. Provide X-Admin-API-Key header."
        )

    if not hmac.compare_digest(api_key, settings.admin_api_key):
        raise HTTPException(
            status_code=403,
            detail="Invalid API key."
        )

    return True


def _admin_from_token(db: Session, token: str) -> Admin | None:
    claims = decode_access_token(token)
    if not claims or not claims.get("sub"):
        return None
    try:
        admin_id = int(claims["sub"])
    except (TypeError, ValueError):
        return None
    return db.get(Admin, admin_id)


def get_current_admin(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    db: Session = Depends(get_db),
) -> Admin:
    """Resolve the Bearer token to an Admin. 401 if missing, invalid or expired."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access token required")
    admin = _admin_from_token(db, credentials.credentials)
    if admin is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return admin


def require_super_admin(admin: Admin = Depends(get_current_admin)) -> Admin:
    if admin.role != ROLE_SUPER_ADMIN:
        raise HTTPException(status_code=403, detail="Super admin access required")
    return admin


def get_ops_auth(
    api_key: str | None = Security(api_key_header),
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    db: Session = Depends(get_db),
) -> bool:
    """
    Ops endpoints accept either a valid admin JWT or the admin API key.
    Without a Bearer token this behaves exactly like get_admin_auth.
    """
    if credentials is not None and credentials.credentials and not api_key:
        if _admin_from_token(db, credentials.credentials) is None:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        return True
    return get_admin_auth(api_key)
