"""Widget status transitions: DRAFT <-> PUBLISHED."""
from __future__ import annotations

from datetime import datetime, timezone

from reviewhub.models import Widget, WidgetStatus


def publish_widget(widget: Widget, now: datetime | None = None) -> Widget:
    """Mark the widget PUBLISHED. published_at is written on the first publish only."""
    widget.status = WidgetStatus.published.value
    if widget.published_at is None:
        widget.published_at = now or datetime.now(timezone.utc)
    return widget


def unpublish_widget(widget: Widget) -> Widget:
    """Back to DRAFT; published_at is kept so a later publish does not reset it."""
    widget.status = WidgetStatus.draft.value
    return widget
