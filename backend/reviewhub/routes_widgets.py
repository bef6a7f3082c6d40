from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .models import Review, ReviewOverride, Widget, WidgetLocation
from .schemas import (
    ReviewOverrideRead,
    ReviewOverrideUpsert,
    WidgetCreate,
    WidgetLocationCreate,
    WidgetLocationRead,
    WidgetLocationUpdate,
    WidgetRead,
    WidgetUpdate,
)
from .services.summary_cache import refresh_widget_summary
from .services.widget_lifecycle import publish_widget, unpublish_widget
from .services.widget_store import SqlWidgetStore
from .widget_config import create_default_widget_config, normalize_widget_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["widgets"])
SessionDep = Depends(get_session)


async def _get_widget_or_404(session: AsyncSession, widget_id: int) -> Widget:
    widget = await session.get(Widget, widget_id)
    if not widget:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Widget not found")
    return widget


# ============ Widgets ============

@router.get("/widgets", response_model=list[WidgetRead])
async def list_widgets(
    session: AsyncSession = SessionDep,
    company_id: Optional[str] = Query(None, description="Filter by owning company"),
):
    query = select(Widget).order_by(Widget.created_at.desc())
    if company_id:
        query = query.where(Widget.company_id == company_id)
    res = await session.execute(query)
    return res.scalars().all()


@router.post("/widgets", response_model=WidgetRead, status_code=status.HTTP_201_CREATED)
async def create_widget(data: WidgetCreate, session: AsyncSession = SessionDep):
    if data.config is not None:
        config = normalize_widget_config(data.config)
    else:
        config = create_default_widget_config(data.template)
    widget = Widget(
        company_id=data.company_id,
        name=data.name,
        type=config["layout"]["type"],
        config_json=config,
    )
    session.add(widget)
    await session.commit()
    await session.refresh(widget)
    logger.info(f"[widgets] Created widget {widget.id} ({widget.type}) for company {widget.company_id}")
    return widget


@router.get("/widgets/{widget_id}", response_model=WidgetRead)
async def get_widget(widget_id: int, session: AsyncSession = SessionDep):
    return await _get_widget_or_404(session, widget_id)


@router.patch("/widgets/{widget_id}", response_model=WidgetRead)
async def update_widget(widget_id: int, data: WidgetUpdate, session: AsyncSession = SessionDep):
    widget = await _get_widget_or_404(session, widget_id)
    if data.name is not None and data.name.strip():
        widget.name = data.name.strip()
    if data.config is not None:
        widget.config_json = normalize_widget_config(data.config)
        widget.type = widget.config_json["layout"]["type"]
    session.add(widget)
    await session.commit()
    await session.refresh(widget)
    return widget


@router.delete("/widgets/{widget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_widget(widget_id: int, session: AsyncSession = SessionDep):
    widget = await _get_widget_or_404(session, widget_id)
    await session.delete(widget)
    await session.commit()
    return {}


@router.post("/widgets/{widget_id}/publish", response_model=WidgetRead)
async def publish(widget_id: int, session: AsyncSession = SessionDep):
    widget = await _get_widget_or_404(session, widget_id)
    publish_widget(widget)
    session.add(widget)
    await session.commit()
    await session.refresh(widget)
    logger.info(f"[widgets] Widget {widget_id} published (first published at {widget.published_at})")
    return widget


@router.post("/widgets/{widget_id}/unpublish", response_model=WidgetRead)
async def unpublish(widget_id: int, session: AsyncSession = SessionDep):
    widget = await _get_widget_or_404(session, widget_id)
    unpublish_widget(widget)
    session.add(widget)
    await session.commit()
    await session.refresh(widget)
    return widget


@router.post("/widgets/{widget_id}/summary/refresh")
async def refresh_summary(widget_id: int, session: AsyncSession = SessionDep):
    try:
        record = await refresh_widget_summary(SqlWidgetStore(session), widget_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {
        "widget_id": record.widget_id,
        "avg_rating": record.avg_rating,
        "total_reviews": record.total_reviews,
        "last_synced_at": record.last_synced_at.isoformat(),
    }


# ============ Locations ============

@router.get("/widgets/{widget_id}/locations", response_model=list[WidgetLocationRead])
async def list_locations(widget_id: int, session: AsyncSession = SessionDep):
    await _get_widget_or_404(session, widget_id)
    res = await session.execute(
        select(WidgetLocation).where(WidgetLocation.widget_id == widget_id).order_by(WidgetLocation.id)
    )
    return res.scalars().all()


@router.post(
    "/widgets/{widget_id}/locations", response_model=WidgetLocationRead, status_code=status.HTTP_201_CREATED
)
async def create_location(widget_id: int, data: WidgetLocationCreate, session: AsyncSession = SessionDep):
    await _get_widget_or_404(session, widget_id)
    existing = await session.scalar(
        select(WidgetLocation.id).where(
            WidgetLocation.widget_id == widget_id, WidgetLocation.place_id == data.place_id
        )
    )
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Location already linked to this widget")
    location = WidgetLocation(
        widget_id=widget_id,
        provider=data.provider.value,
        place_id=data.place_id,
        label=data.label,
        weight=data.weight,
        enabled=data.enabled,
    )
    session.add(location)
    await session.commit()
    await session.refresh(location)
    return location


@router.patch("/widget-locations/{location_id}", response_model=WidgetLocationRead)
async def update_location(location_id: int, data: WidgetLocationUpdate, session: AsyncSession = SessionDep):
    location = await session.get(WidgetLocation, location_id)
    if not location:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    if data.provider is not None:
        location.provider = data.provider.value
    for field in ["label", "weight", "enabled"]:
        value = getattr(data, field)
        if value is not None:
            setattr(location, field, value)
    session.add(location)
    await session.commit()
    await session.refresh(location)
    return location


@router.delete("/widget-locations/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(location_id: int, session: AsyncSession = SessionDep):
    location = await session.get(WidgetLocation, location_id)
    if not location:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    await session.delete(location)
    await session.commit()
    return {}


# ============ Moderation overrides ============

@router.put("/reviews/{review_id}/override", response_model=ReviewOverrideRead)
async def upsert_override(review_id: int, data: ReviewOverrideUpsert, session: AsyncSession = SessionDep):
    review = await session.get(Review, review_id)
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    override = await session.scalar(select(ReviewOverride).where(ReviewOverride.review_id == review_id))
    if not override:
        override = ReviewOverride(review_id=review_id)
    override.hidden = data.hidden
    override.pinned = data.pinned
    override.custom_excerpt = data.custom_excerpt
    override.tags = data.tags
    override.notes = data.notes
    session.add(override)
    await session.commit()
    await session.refresh(override)
    return override


@router.delete("/reviews/{review_id}/override", status_code=status.HTTP_204_NO_CONTENT)
async def delete_override(review_id: int, session: AsyncSession = SessionDep):
    override = await session.scalar(select(ReviewOverride).where(ReviewOverride.review_id == review_id))
    if not override:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Override not found")
    await session.delete(override)
    await session.commit()
    return {}
