"""
Apply a moderator override to an imported review.

resolve_review() returns None when the override hides the review; otherwise
an EffectiveReview with the custom excerpt (if any) in place of the text.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol


class ReviewLike(Protocol):
    id: int
    widget_location_id: int
    author_name: str
    author_avatar_url: str | None
    rating: int
    text: str | None
    review_url: str | None
    review_created_at: datetime


class OverrideLike(Protocol):
    review_id: int
    hidden: bool
    pinned: bool
    custom_excerpt: str | None
    tags: list | None


@dataclass(frozen=True)
class EffectiveReview:
    id: int
    location_id: int
    author_name: str
    author_avatar_url: str | None
    rating: int
    text: str | None
    created_at: datetime
    review_url: str | None
    pinned: bool = False
    tags: tuple[str, ...] = field(default_factory=tuple)


def resolve_review(review: ReviewLike, override: OverrideLike | None) -> EffectiveReview | None:
    if override is not None and override.hidden:
        return None

    text = review.text
    pinned = False
    tags: tuple[str, ...] = ()
    if override is not None:
        if override.custom_excerpt:
            text = override.custom_excerpt
        pinned = bool(override.pinned)
        tags = tuple(str(tag) for tag in (override.tags or []))

    return EffectiveReview(
        id=review.id,
        location_id=review.widget_location_id,
        author_name=review.author_name,
        author_avatar_url=review.author_avatar_url,
        rating=review.rating,
        text=text,
        created_at=review.review_created_at,
        review_url=review.review_url,
        pinned=pinned,
        tags=tags,
    )
