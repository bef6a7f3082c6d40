"""
Celery tasks for widget maintenance.

widgets.refresh_summary is enqueued by the review sync job once it has
finished importing reviews for a widget. It runs the async summary refresh
in a fresh event loop with its own engine.
"""
from __future__ import annotations

import asyncio
import logging

from reviewhub.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _refresh_summary_async(widget_id: int) -> dict:
    """Recompute the widget summary with a fresh session."""
    from sqlalchemy.pool import NullPool
    from reviewhub.db import make_engine, make_session_factory
    from reviewhub.services.summary_cache import refresh_widget_summary
    from reviewhub.services.widget_store import SqlWidgetStore

    # Each task runs in its own event loop, so pooled connections cannot be reused
    engine = make_engine(poolclass=NullPool)
    session_factory = make_session_factory(engine)

    try:
        async with session_factory() as session:
            try:
                record = await refresh_widget_summary(SqlWidgetStore(session), widget_id)
            except LookupError:
                logger.warning(f"[worker] Widget {widget_id} not found, summary not refreshed")
                return {"error": f"Widget {widget_id} not found"}
            return {
                "widget_id": record.widget_id,
                "avg_rating": record.avg_rating,
                "total_reviews": record.total_reviews,
                "last_synced_at": record.last_synced_at.isoformat(),
            }
    finally:
        await engine.dispose()


@celery_app.task(
    bind=True,
    name="widgets.refresh_summary",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
    queue="widgets",
)
def refresh_summary(self, widget_id: int) -> dict:
    """Celery task: recompute avg rating / total reviews for a widget."""
    logger.info(f"[worker] Refreshing summary for widget {widget_id} (celery_id={self.request.id}, attempt={self.request.retries + 1})")
    try:
        return asyncio.run(_refresh_summary_async(widget_id))
    except Exception as e:
        logger.error(f"[worker] Summary refresh for widget {widget_id} failed (attempt {self.request.retries + 1}): {e}")
        raise


def enqueue_summary_refresh(widget_id: int) -> None:
    """Entry point for the review sync job."""
    from reviewhub.settings import get_settings
    if not get_settings().celery_enabled:
        asyncio.run(_refresh_summary_async(widget_id))
        return
    refresh_summary.delay(widget_id)
