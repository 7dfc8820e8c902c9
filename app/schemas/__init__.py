"""
Pydantic schemas for API request/response validation.
"""

from app.schemas.auth import (
    AdminCreateRequest,
    AdminResponse,
    AdminUpdateRequest,
    LoginRequest,
    TokenResponse,
)
from app.schemas.messages import (
    ContactResponse,
    DeleteContactsRequest,
    LoanReplyResponse,
    MessageResponse,
    OtpRequest,
    OtpVerifyRequest,
    SendMessageRequest,
    SupportCallResponse,
)
from app.schemas.ops import BroadcastRequest, SystemEventResponse
from app.schemas.vendors import LocationUpdateRequest, VendorCreate, VendorResponse, VendorUpdate

__all__ = [
    "LoginRequest",
    "AdminResponse",
    "TokenResponse",
    "AdminCreateRequest",
    "AdminUpdateRequest",
    "VendorCreate",
    "VendorUpdate",
    "VendorResponse",
    "LocationUpdateRequest",
    "SendMessageRequest",
    "MessageResponse",
    "ContactResponse",
    "DeleteContactsRequest",
    "SupportCallResponse",
    "LoanReplyResponse",
    "OtpRequest",
    "OtpVerifyRequest",
    "BroadcastRequest",
    "SystemEventResponse",
]
