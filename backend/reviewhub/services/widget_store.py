"""
Read/write access used by the aggregation engine and the summary cache.

WidgetStore is the storage boundary: the engine only talks to this protocol,
SqlWidgetStore implements it on top of an AsyncSession. Query errors are not
caught here; they propagate to the caller unchanged.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from fastapi import Depends
from sqlalchemy import false, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from reviewhub.db import get_session
from reviewhub.models import Review, ReviewOverride, Widget, WidgetLocation, WidgetSummary


class WidgetStore(Protocol):
    async def find_widget(self, widget_id: int) -> Widget | None: ...

    async def find_enabled_locations(self, widget_id: int) -> Sequence[WidgetLocation]: ...

    async def find_reviews(self, location_id: int, limit: int) -> Sequence[Review]: ...

    async def find_overrides(self, review_ids: Sequence[int]) -> dict[int, ReviewOverride]: ...

    async def find_summary(self, widget_id: int) -> WidgetSummary | None: ...

    async def aggregate_review_stats(self, widget_id: int) -> tuple[float, int]: ...

    async def upsert_summary(
        self, widget_id: int, avg_rating: float, total_reviews: int, synced_at: datetime
    ) -> None: ...


class SqlWidgetStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_widget(self, widget_id: int) -> Widget | None:
        return await self.session.get(Widget, widget_id)

    async def find_enabled_locations(self, widget_id: int) -> Sequence[WidgetLocation]:
        res = await self.session.execute(
            select(WidgetLocation)
            .where(WidgetLocation.widget_id == widget_id, WidgetLocation.enabled.is_(True))
            .order_by(WidgetLocation.id)
        )
        return res.scalars().all()

    async def find_reviews(self, location_id: int, limit: int) -> Sequence[Review]:
        res = await self.session.execute(
            select(Review)
            .where(Review.widget_location_id == location_id)
            .order_by(Review.review_created_at.desc(), Review.id.desc())
            .limit(limit)
        )
        return res.scalars().all()

    async def find_overrides(self, review_ids: Sequence[int]) -> dict[int, ReviewOverride]:
        if not review_ids:
            return {}
        res = await self.session.execute(select(ReviewOverride).where(ReviewOverride.review_id.in_(review_ids)))
        return {override.review_id: override for override in res.scalars().all()}

    async def find_summary(self, widget_id: int) -> WidgetSummary | None:
        res = await self.session.execute(select(WidgetSummary).where(WidgetSummary.widget_id == widget_id))
        return res.scalar_one_or_none()

    async def aggregate_review_stats(self, widget_id: int) -> tuple[float, int]:
        """Average rating and count over every non-hidden review of the widget."""
        res = await self.session.execute(
            select(func.avg(Review.rating), func.count(Review.id))
            .join(WidgetLocation, Review.widget_location_id == WidgetLocation.id)
            .outerjoin(ReviewOverride, ReviewOverride.review_id == Review.id)
            .where(WidgetLocation.widget_id == widget_id)
            .where(or_(ReviewOverride.id.is_(None), ReviewOverride.hidden == false()))
        )
        avg_rating, total = res.one()
        return float(avg_rating or 0.0), int(total or 0)

    async def upsert_summary(
        self, widget_id: int, avg_rating: float, total_reviews: int, synced_at: datetime
    ) -> None:
        # Both dialects share the ON CONFLICT DO UPDATE form
        insert = sqlite_insert if self.session.get_bind().dialect.name == "sqlite" else pg_insert
        stmt = insert(WidgetSummary).values(
            widget_id=widget_id,
            avg_rating=avg_rating,
            total_reviews=total_reviews,
            last_synced_at=synced_at,
        ).on_conflict_do_update(
            index_elements=[WidgetSummary.widget_id],
            set_={
                "avg_rating": avg_rating,
                "total_reviews": total_reviews,
                "last_synced_at": synced_at,
                "updated_at": func.now(),
            },
        )
        await self.session.execute(stmt)
        await self.session.commit()


async def get_widget_store(session: AsyncSession = Depends(get_session)) -> WidgetStore:
    return SqlWidgetStore(session)
