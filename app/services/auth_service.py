"""
Admin authentication: bcrypt password hashes and JWT access tokens.
"""

import logging
from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.constants.statuses import ADMIN_ROLES, ROLE_ADMIN
from app.core.config import settings
from app.db.helpers import commit_and_refresh
from app.db.models import Admin

logger = logging.getLogger(__name__)


class AdminConflictError(Exception):
    pass


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(admin: Admin, expires_minutes: int | None = None) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=expires_minutes or settings.jwt_expire_minutes)
    claims = {"sub": str(admin.id), "username": admin.username, "role": admin.role, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Return claims, or None if the token is invalid or expired."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.info(f"Rejected access token: {e}")
        return None


def authenticate(db: Session, username: str, password: str) -> Admin | None:
    admin = db.execute(select(Admin).where(Admin.username == username)).scalar_one_or_none()
    if admin is None or not verify_password(password, admin.password_hash):
        return None
    admin.last_login = datetime.now(UTC)
    commit_and_refresh(db, admin)
    return admin


def create_admin(
    db: Session,
    username: str,
    password: str,
    email: str | None = None,
    role: str = ROLE_ADMIN,
) -> Admin:
    if role not in ADMIN_ROLES:
        raise ValueError(f"Invalid role '{role}'. Must be one of: {', '.join(ADMIN_ROLES)}")
    if db.execute(select(Admin.id).where(Admin.username == username)).first() is not None:
        raise AdminConflictError("Username already exists")
    admin = Admin(username=username, password_hash=hash_password(password), email=email, role=role)
    db.add(admin)
    commit_and_refresh(db, admin)
    logger.info(f"Created admin {admin.id} ({username}, role={role})")
    return admin
