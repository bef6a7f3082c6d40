from __future__ import annotations

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship as sa_relationship

from .db import Base
from .widget_config import LayoutType, ReviewProvider


def relationship(*args, **kwargs):
    """Wrap SQLAlchemy relationship to forbid lazy loading by default."""
    kwargs.setdefault("lazy", "raise")
    return sa_relationship(*args, **kwargs)


class WidgetStatus(str, Enum):
    draft = "DRAFT"
    published = "PUBLISHED"


class Widget(Base):
    __tablename__ = "widgets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[str] = mapped_column(sa.String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    type: Mapped[LayoutType] = mapped_column(sa.String(32), nullable=False, server_default=LayoutType.carousel.value)
    status: Mapped[WidgetStatus] = mapped_column(sa.String(16), nullable=False, server_default=WidgetStatus.draft.value)
    published_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    config_json: Mapped[dict] = mapped_column(sa.JSON(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    locations: Mapped[list["WidgetLocation"]] = relationship(
        back_populates="widget",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WidgetLocation.id",
    )
    summary: Mapped["WidgetSummary | None"] = relationship(
        back_populates="widget", cascade="all, delete-orphan", uselist=False, passive_deletes=True
    )


class WidgetLocation(Base):
    __tablename__ = "widget_locations"
    __table_args__ = (sa.UniqueConstraint("widget_id", "place_id", name="uq_widget_locations_widget_place"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    widget_id: Mapped[int] = mapped_column(sa.ForeignKey("widgets.id", ondelete="CASCADE"), nullable=False, index=True)
    provider: Mapped[ReviewProvider] = mapped_column(
        sa.String(32), nullable=False, server_default=ReviewProvider.google.value
    )
    place_id: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    label: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    weight: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="1")
    enabled: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.true())
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    widget: Mapped[Widget] = relationship(back_populates="locations")
    reviews: Mapped[list["Review"]] = relationship(
        back_populates="location", cascade="all, delete-orphan", passive_deletes=True
    )


class Review(Base):
    """Imported third-party review. Written only by the sync job."""

    __tablename__ = "reviews"
    __table_args__ = (
        sa.UniqueConstraint("provider", "provider_review_id", name="uq_reviews_provider_review"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    widget_location_id: Mapped[int] = mapped_column(
        sa.ForeignKey("widget_locations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[ReviewProvider] = mapped_column(
        sa.String(32), nullable=False, server_default=ReviewProvider.google.value
    )
    provider_review_id: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    author_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    author_avatar_url: Mapped[str | None] = mapped_column(sa.String(1024), nullable=True)
    rating: Mapped[int] = mapped_column(sa.Integer(), nullable=False)
    text: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    language: Mapped[str | None] = mapped_column(sa.String(16), nullable=True)
    review_url: Mapped[str | None] = mapped_column(sa.String(1024), nullable=True)
    review_created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    location: Mapped[WidgetLocation] = relationship(back_populates="reviews")
    override: Mapped["ReviewOverride | None"] = relationship(
        back_populates="review", cascade="all, delete-orphan", uselist=False, passive_deletes=True
    )


class ReviewOverride(Base):
    __tablename__ = "review_overrides"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    review_id: Mapped[int] = mapped_column(
        sa.ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    hidden: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false())
    pinned: Mapped[bool] = mapped_column(sa.Boolean(), nullable=False, server_default=sa.false())
    custom_excerpt: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    tags: Mapped[list | None] = mapped_column(sa.JSON(), nullable=True)
    notes: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    review: Mapped[Review] = relationship(back_populates="override")


class WidgetSummary(Base):
    """Derived cache, recomputed wholesale after each review sync."""

    __tablename__ = "widget_summaries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    widget_id: Mapped[int] = mapped_column(
        sa.ForeignKey("widgets.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    avg_rating: Mapped[float] = mapped_column(sa.Float(), nullable=False)
    total_reviews: Mapped[int] = mapped_column(sa.Integer(), nullable=False)
    last_synced_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    widget: Mapped[Widget] = relationship(back_populates="summary")
