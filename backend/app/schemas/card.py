"""eCard schemas."""
from datetime import datetime, timezone

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize an aware datetime to naive UTC; naive values are taken as UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys for the web frontend."""

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class CardCreate(BaseModel):
    """Parameters for creating an eCard."""

    sender_name: str = Field(..., min_length=1, max_length=200)
    sender_email: EmailStr
    recipient_name: str = Field(..., min_length=1, max_length=200)
    recipient_email: EmailStr
    message: str = Field(..., min_length=1, max_length=2000)
    scheduled_send_date: datetime | None = Field(
        None,
        description="When to send; omit to send as soon as possible",
    )
    premade_art_id: str | None = Field(None, max_length=100)

    @field_validator("scheduled_send_date")
    @classmethod
    def normalize_schedule(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v)

    @field_validator("premade_art_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SenderSummary(CamelModel):
    id: str
    name: str
    email: str


class CardResponse(CamelModel):
    """eCard as returned to its sender."""

    id: str
    recipient_name: str
    recipient_email: str
    message: str
    created_date: datetime
    scheduled_send_date: datetime | None
    is_sent: bool
    sent_date: datetime | None
    custom_art_path: str | None = None
    premade_art_id: str | None = None
    expiry_date: datetime
    first_viewed_date: datetime | None = None
    view_count: int = 0


class CardDetailResponse(CardResponse):
    sender: SenderSummary


class ViewRecordResponse(CamelModel):
    id: str
    ecard_id: str
    viewed_date: datetime
    ip_address: str | None
    user_agent: str | None


class ResendResponse(CamelModel):
    message: str
    sent_date: datetime


class AppConfigResponse(CamelModel):
    app_name: str


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
