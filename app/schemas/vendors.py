"""
Vendor (user) request/response schemas.

Request bodies accept the dashboard's camelCase keys as well as snake_case.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class BestDish(BaseModel):
    name: str | None = None
    price: float | None = None


class VendorBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str | None = None
    open_time: str | None = Field(default=None, validation_alias=AliasChoices("open_time", "openTime"))
    close_time: str | None = Field(default=None, validation_alias=AliasChoices("close_time", "closeTime"))
    operating_days: list[int] | None = Field(
        default=None, validation_alias=AliasChoices("operating_days", "operatingDays")
    )
    food_type: str | None = Field(default=None, validation_alias=AliasChoices("food_type", "foodType"))
    best_dishes: list[BestDish] | None = Field(
        default=None, validation_alias=AliasChoices("best_dishes", "bestDishes")
    )
    menu_link: str | None = Field(default=None, validation_alias=AliasChoices("menu_link", "menuLink"))
    maps_link: str | None = Field(default=None, validation_alias=AliasChoices("maps_link", "mapsLink"))
    profile_picture_url: str | None = Field(
        default=None, validation_alias=AliasChoices("profile_picture_url", "profilePictureUrl")
    )
    preferred_languages: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("preferred_languages", "preferredLanguages")
    )
    food_categories: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("food_categories", "foodCategories")
    )
    stall_type: str | None = Field(default=None, validation_alias=AliasChoices("stall_type", "stallType"))
    whatsapp_consent: bool | None = Field(
        default=None, validation_alias=AliasChoices("whatsapp_consent", "whatsappConsent")
    )
    onboarding_type: str | None = Field(
        default=None, validation_alias=AliasChoices("onboarding_type", "onboardingType")
    )


class VendorCreate(VendorBase):
    name: str | None = None
    contact_number: str | None = Field(
        default=None, validation_alias=AliasChoices("contact_number", "contactNumber")
    )


class VendorUpdate(VendorBase):
    name: str | None = None
    contact_number: str | None = Field(
        default=None, validation_alias=AliasChoices("contact_number", "contactNumber")
    )


class VendorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    contact_number: str
    status: str | None = None
    open_time: str | None = None
    close_time: str | None = None
    operating_days: list[int] | None = None
    food_type: str | None = None
    best_dishes: list[dict[str, Any]] | None = None
    menu_link: str | None = None
    maps_link: str | None = None
    profile_picture_url: str | None = None
    preferred_languages: list[str] | None = None
    food_categories: list[str] | None = None
    stall_type: str | None = None
    whatsapp_consent: bool = False
    onboarding_type: str | None = None
    aadhar_verified: bool = False
    aadhar_verified_at: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None
    location_updated_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LocationUpdateRequest(BaseModel):
    contact_number: str = Field(validation_alias=AliasChoices("contact_number", "contactNumber"))
    maps_link: str | None = Field(default=None, validation_alias=AliasChoices("maps_link", "mapsLink"))
    lat: float | None = None
    lng: float | None = None
