"""
Public payload builder for embedded widgets.

Steps for one widget:
  1. Only PUBLISHED widgets produce a payload (missing and draft look the same).
  2. Enabled locations only; disabled ones contribute nothing.
  3. Per location: newest reviews first, bounded by a per-location cap.
  4. Overrides resolved in one batch; hidden reviews dropped.
  5. Flatten in location order, then pinned first (kept in that order),
     everything else newest first.

The config's reviews policy (minRating, maxReviews, filters, sortBy) is left
to the embed renderer unless enforce_policy is set, in which case
apply_review_policy() runs on the ordered list.

Read-only: nothing here writes to the store.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from reviewhub.models import WidgetStatus
from reviewhub.schemas import PublicReview, WidgetPayload, WidgetSummaryRead
from reviewhub.services.override_resolver import EffectiveReview, resolve_review
from reviewhub.services.widget_store import WidgetStore
from reviewhub.settings import get_settings
from reviewhub.widget_config import ReviewMatchFilter, ReviewsConfig, normalize_widget_config

logger = logging.getLogger(__name__)


class DataIntegrityError(RuntimeError):
    """Store returned rows that break ownership invariants."""


def order_reviews(reviews: Iterable[EffectiveReview]) -> list[EffectiveReview]:
    reviews = list(reviews)
    pinned = [r for r in reviews if r.pinned]
    # sorted() is stable, so equal timestamps keep location order
    rest = sorted((r for r in reviews if not r.pinned), key=lambda r: r.created_at, reverse=True)
    return pinned + rest


def _matches(review: EffectiveReview, rule: ReviewMatchFilter) -> bool:
    needle = rule.value.strip().lower()
    if rule.type == "author":
        return needle in (review.author_name or "").lower()
    if rule.type == "text":
        return needle in (review.text or "").lower()
    return any(tag.strip().lower() == needle for tag in review.tags)


def apply_review_policy(reviews: Iterable[EffectiveReview], policy: ReviewsConfig) -> list[EffectiveReview]:
    """Filter, sort and truncate according to the config's reviews section.

    Pinned reviews stay in front whatever sortBy says; maxReviews is applied
    last so it keeps the top of the sorted list.
    """
    include = [rule for rule in policy.include_filters if rule.value.strip()]
    exclude = [rule for rule in policy.exclude_filters if rule.value.strip()]

    kept = []
    for review in reviews:
        if review.rating < policy.min_rating:
            continue
        if not policy.show_without_text and not (review.text or "").strip():
            continue
        if include and not any(_matches(review, rule) for rule in include):
            continue
        if any(_matches(review, rule) for rule in exclude):
            continue
        kept.append(review)

    kept = order_reviews(kept)
    if policy.sort_by != "newest":
        pinned = [r for r in kept if r.pinned]
        rest = sorted(
            (r for r in kept if not r.pinned),
            key=lambda r: r.rating,
            reverse=policy.sort_by == "highest",
        )
        kept = pinned + rest

    if policy.max_reviews != "all":
        kept = kept[: policy.max_reviews]
    return kept


def to_public_review(review: EffectiveReview) -> PublicReview:
    return PublicReview(
        id=review.id,
        author_name=review.author_name,
        author_avatar_url=review.author_avatar_url,
        rating=review.rating,
        text=review.text,
        date=review.created_at,
        review_url=review.review_url,
        pinned=review.pinned,
    )


async def collect_effective_reviews(store: WidgetStore, widget_id: int, per_location_limit: int) -> list[EffectiveReview]:
    """Resolved reviews of all enabled locations, in location order."""
    locations = await store.find_enabled_locations(widget_id)

    fetched: list[Any] = []
    for location in locations:
        if location.widget_id != widget_id:
            raise DataIntegrityError(f"Location {location.id} does not belong to widget {widget_id}")
        if not location.enabled:
            continue
        rows = await store.find_reviews(location.id, per_location_limit)
        for review in rows:
            if review.widget_location_id != location.id:
                raise DataIntegrityError(f"Review {review.id} does not belong to location {location.id}")
        fetched.extend(rows)

    overrides = await store.find_overrides([review.id for review in fetched])

    effective = []
    for review in fetched:
        resolved = resolve_review(review, overrides.get(review.id))
        if resolved is not None:
            effective.append(resolved)
    return effective


async def build_widget_payload(
    store: WidgetStore,
    widget_id: int,
    *,
    per_location_limit: int | None = None,
    enforce_policy: bool | None = None,
) -> WidgetPayload | None:
    """Return the public payload, or None when the widget is missing or unpublished."""
    settings = get_settings()
    if per_location_limit is None:
        per_location_limit = settings.payload_reviews_per_location
    if enforce_policy is None:
        enforce_policy = settings.enforce_review_policy

    widget = await store.find_widget(widget_id)
    if widget is None or widget.status != WidgetStatus.published:
        return None

    config = normalize_widget_config(widget.config_json)
    reviews = order_reviews(await collect_effective_reviews(store, widget_id, per_location_limit))
    if enforce_policy:
        reviews = apply_review_policy(reviews, ReviewsConfig.model_validate(config["reviews"]))

    summary = await store.find_summary(widget_id)
    summary_view = None
    if summary is not None:
        summary_view = WidgetSummaryRead(
            avg_rating=summary.avg_rating,
            total_reviews=summary.total_reviews,
            last_synced_at=summary.last_synced_at,
        )

    logger.debug(f"[payload] widget {widget_id}: {len(reviews)} reviews")
    return WidgetPayload(
        config=config,
        summary=summary_view,
        reviews=[to_public_review(review) for review in reviews],
    )
