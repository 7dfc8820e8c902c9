"""
Message, contact and engagement schemas.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class SendMessageRequest(BaseModel):
    to: str
    body: str = Field(min_length=1)
    provider: str = "twilio"  # twilio, meta


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    from_number: str
    to_number: str
    body: str | None = None
    direction: str
    timestamp: datetime
    message_type: str | None = None
    template_name: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    provider: str | None = None
    wa_message_id: str | None = None
    meta: dict[str, Any] | None = None
    delivery_status: str | None = None
    error_code: str | None = None
    error_message: str | None = None


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: str
    name: str | None = None
    last_seen: datetime


class DeleteContactsRequest(BaseModel):
    phones: list[str] = Field(min_length=1)


class SupportCallResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vendor_name: str
    contact_number: str
    requested_at: datetime
    completed: bool
    completed_by: str | None = None
    completed_at: datetime | None = None


class LoanReplyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vendor_name: str
    contact_number: str
    replied_at: datetime
    aadhar_verified: bool


class OtpRequest(BaseModel):
    phone: str = Field(validation_alias=AliasChoices("phone", "phoneNumber"))


class OtpVerifyRequest(BaseModel):
    phone: str = Field(validation_alias=AliasChoices("phone", "phoneNumber"))
    otp: str = Field(min_length=4, max_length=6)
