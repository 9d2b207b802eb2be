"""Premade template schemas."""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from app.schemas.card import CamelModel


class TemplateWrite(BaseModel):
    """Admin create/update request for a premade template."""

    id: str | None = Field(None, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    icon_emoji: str = Field("", max_length=10)
    description: str | None = Field(None, max_length=1000)
    image_path: str | None = Field(None, max_length=500)
    is_active: bool = True
    sort_order: int = 0

    class Config:
        populate_by_name = True
        alias_generator = to_camel


class TemplateResponse(CamelModel):
    id: str
    name: str
    category: str
    icon_emoji: str
    description: str | None
    image_path: str | None
    is_active: bool
    sort_order: int
