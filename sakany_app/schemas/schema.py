from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Literal, Optional, Union

import phonenumbers
from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    TypeAdapter,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from core.date_helper import as_utc
from models.enums import ApprovalStatus, PropertyStatus, PropertyTypes, TwoFactorMethod


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def normalize_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        parsed = phonenumbers.parse(value, None)
    except phonenumbers.NumberParseException:
        raise ValueError("Invalid phone number format. Use e.g. +201001234567")
    if not phonenumbers.is_valid_number(parsed):
        raise ValueError("Invalid phone number. Use full international format.")
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


class Preferences(CamelModel):
    location: str
    budget: int = Field(..., ge=0)
    property_type: PropertyTypes
    lifestyle: List[str] = Field(default_factory=list)


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(
        ..., min_length=6, json_schema_extra={"type": "string", "format": "password"}
    )
    name: str = Field(..., min_length=1, max_length=255)
    is_landlord: bool = False
    phone_number: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        if isinstance(value, str):
            value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, value):
        return normalize_phone(value)


class UserLogin(CamelModel):
    email: EmailStr
    password: str
    code: Optional[str] = Field(default=None, pattern=r"^\d{6}$")


class UserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    current_password: Optional[str] = None
    is_landlord: Optional[bool] = None
    preferences: Optional[Preferences] = None
    phone_number: Optional[str] = None

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, value):
        return normalize_phone(value)

    @model_validator(mode="after")
    def require_current_password(self):
        if self.password and not self.current_password:
            raise ValueError("Current password is required to set a new password")
        return self


class AdminUserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    is_landlord: Optional[bool] = None
    is_admin: Optional[bool] = None
    is_active: Optional[bool] = None


class TwoFactorToggle(CamelModel):
    enabled: bool
    method: Optional[TwoFactorMethod] = None


class ForgotPasswordIn(CamelModel):
    email: EmailStr


class ResetPasswordIn(CamelModel):
    token: str
    password: str = Field(..., min_length=6)


class UserPublicOut(CamelModel):
    id: uuid.UUID
    name: str
    email: EmailStr
    is_landlord: bool


class UserOut(UserPublicOut):
    is_admin: bool
    is_active: bool
    two_factor_enabled: bool
    two_factor_method: TwoFactorMethod = TwoFactorMethod.EMAIL
    phone_number: Optional[str] = None
    preferences: Optional[dict] = None
    last_login: Optional[datetime] = None
    created_at: datetime


class PropertyBase(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    price: int = Field(..., ge=0)
    location: str = Field(..., min_length=1, max_length=255)
    bedrooms: int = Field(..., ge=0)
    bathrooms: int = Field(..., ge=0)
    area: int = Field(..., gt=0)
    property_type: PropertyTypes = Field(..., alias="type")
    features: List[str] = Field(default_factory=list)
    images: List[HttpUrl] = Field(default_factory=list, max_length=20)
    for_sale: bool = False
    for_rent: bool = False
    is_featured: bool = False


class PropertyCreate(PropertyBase):
    @model_validator(mode="after")
    def sale_or_rent(self):
        if not (self.for_sale or self.for_rent):
            raise ValueError("A property must be for sale, for rent, or both")
        return self


class PropertyUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    price: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = Field(default=None, min_length=1, max_length=255)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    area: Optional[int] = Field(default=None, gt=0)
    property_type: Optional[PropertyTypes] = Field(default=None, alias="type")
    features: Optional[List[str]] = None
    images: Optional[List[HttpUrl]] = Field(default=None, max_length=20)
    for_sale: Optional[bool] = None
    for_rent: Optional[bool] = None
    is_featured: Optional[bool] = None
    status: Optional[PropertyStatus] = None


class RejectPropertyIn(CamelModel):
    note: str

    @field_validator("note")
    @classmethod
    def note_required(cls, value: str):
        if not value.strip():
            raise ValueError("Rejection note is required")
        return value.strip()


class PropertyFilter(CamelModel):
    """Browse filters for the public listing."""

    property_type: Optional[PropertyTypes] = None
    listing_type: Optional[Literal["sale", "rent"]] = None
    q: Optional[str] = None
    location: Optional[str] = None
    min_price: Optional[int] = Field(default=None, ge=0)
    max_price: Optional[int] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)

    @field_validator("q", "location")
    @classmethod
    def blank_is_none(cls, value):
        if value is not None:
            value = value.strip()
        return value or None


class PropertyOut(CamelModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: str
    price: int
    location: str
    bedrooms: int
    bathrooms: int
    area: int
    property_type: PropertyTypes = Field(..., alias="type")
    features: List[str]
    images: List[str]
    for_sale: bool
    for_rent: bool
    is_featured: bool
    status: PropertyStatus
    approval_status: ApprovalStatus
    rejection_note: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MessageOut(CamelModel):
    id: int
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    @field_serializer("created_at", "read_at")
    def serialize_utc(self, value: datetime | None):
        value = as_utc(value)
        return value.isoformat() if value else None


class ConversationOut(CamelModel):
    id: int
    user1_id: uuid.UUID
    user2_id: uuid.UUID
    last_message_at: datetime
    other_user: UserPublicOut
    unread_count: int = 0

    @field_serializer("last_message_at")
    def serialize_utc(self, value: datetime):
        return as_utc(value).isoformat()


class MarkReadIn(CamelModel):
    sender_id: uuid.UUID


class MarkReadOut(CamelModel):
    updated: int


class ChatFrame(CamelModel):
    type: Literal["message"]
    receiver_id: uuid.UUID
    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str):
        if not value.strip():
            raise ValueError("Message content cannot be empty")
        return value


class PingFrame(CamelModel):
    type: Literal["ping"]


class PongFrame(CamelModel):
    type: Literal["pong"]


InboundFrame = Annotated[
    Union[ChatFrame, PingFrame, PongFrame], Field(discriminator="type")
]
inbound_frame_adapter: TypeAdapter[InboundFrame] = TypeAdapter(InboundFrame)
