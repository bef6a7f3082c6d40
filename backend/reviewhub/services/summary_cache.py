"""
Cached rating summary per widget.

refresh_widget_summary() recomputes average and count from the full review
set (hidden reviews excluded) and upserts the single summary row. It is run
by the review sync job, never by payload reads.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from reviewhub.services.widget_store import WidgetStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryRecord:
    widget_id: int
    avg_rating: float
    total_reviews: int
    last_synced_at: datetime


async def refresh_widget_summary(store: WidgetStore, widget_id: int, *, now: datetime | None = None) -> SummaryRecord:
    widget = await store.find_widget(widget_id)
    if widget is None:
        raise LookupError(f"Widget {widget_id} not found")

    now = now or datetime.now(timezone.utc)
    avg_rating, total_reviews = await store.aggregate_review_stats(widget_id)
    if total_reviews == 0:
        avg_rating = 0.0

    await store.upsert_summary(widget_id, avg_rating, total_reviews, now)
    logger.info(f"[summary] widget {widget_id}: avg={avg_rating:.2f} total={total_reviews}")
    return SummaryRecord(
        widget_id=widget_id,
        avg_rating=avg_rating,
        total_reviews=total_reviews,
        last_synced_at=now,
    )
