from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import WidgetStatus
from .widget_config import LayoutType, ReviewProvider


# Widgets
class WidgetCreate(BaseModel):
    company_id: str
    name: str
    template: str | None = None
    config: Any = None  # normalized server-side, never rejected

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value


class WidgetUpdate(BaseModel):
    name: str | None = None
    config: Any = None


class WidgetRead(BaseModel):
    id: int
    company_id: str
    name: str
    type: LayoutType
    status: WidgetStatus
    published_at: datetime | None = None
    config_json: dict
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


# Widget locations
class WidgetLocationCreate(BaseModel):
    provider: ReviewProvider = ReviewProvider.google
    place_id: str
    label: str | None = None
    weight: int = Field(default=1, ge=0)
    enabled: bool = True

    @field_validator("place_id")
    @classmethod
    def normalize_place_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("place_id must not be empty")
        return value


class WidgetLocationUpdate(BaseModel):
    provider: ReviewProvider | None = None
    label: str | None = None
    weight: int | None = Field(default=None, ge=0)
    enabled: bool | None = None


class WidgetLocationRead(BaseModel):
    id: int
    widget_id: int
    provider: ReviewProvider
    place_id: str
    label: str | None = None
    weight: int
    enabled: bool

    class Config:
        from_attributes = True


# Moderation overrides
class ReviewOverrideUpsert(BaseModel):
    hidden: bool = False
    pinned: bool = False
    custom_excerpt: str | None = None
    tags: list[str] | None = None
    notes: str | None = None


class ReviewOverrideRead(ReviewOverrideUpsert):
    id: int
    review_id: int

    class Config:
        from_attributes = True


# Templates
class WidgetTemplateRead(BaseModel):
    key: str
    name: str
    description: str
    thumbnail: str


# Public payload (camelCase on the wire)
class WidgetSummaryRead(BaseModel):
    avg_rating: float
    total_reviews: int
    last_synced_at: datetime | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PublicReview(BaseModel):
    id: int
    author_name: str
    author_avatar_url: str | None = None
    rating: int
    text: str | None = None
    date: datetime
    review_url: str | None = None
    pinned: bool = False

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class WidgetPayload(BaseModel):
    config: dict[str, Any]
    summary: WidgetSummaryRead | None = None
    reviews: list[PublicReview] = Field(default_factory=list)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
