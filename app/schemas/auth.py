"""
Admin auth and admin-user management schemas.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

# bcrypt only hashes the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


def _check_password_bytes(value: str | None) -> str | None:
    if value is not None and len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


class LoginRequest(BaseModel):
    username: str
    password: str


class AdminResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str | None = None
    role: str
    last_login: datetime | None = None
    created_at: datetime | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminResponse


class AdminCreateRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=6, max_length=72)
    email: str | None = None
    role: str = "admin"

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)


class AdminUpdateRequest(BaseModel):
    """Partial update; only provided fields change."""

    email: str | None = None
    role: str | None = None
    password: str | None = Field(default=None, min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)
