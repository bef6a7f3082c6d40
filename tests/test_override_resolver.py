"""Unit tests for moderation override resolution."""

from conftest import FakeOverride, FakeReview, utc

from reviewhub.services.override_resolver import EffectiveReview, resolve_review


def _review(**kwargs) -> FakeReview:
    defaults = {"id": 7, "widget_location_id": 3, "rating": 4, "review_created_at": utc(2024, 5, 1)}
    defaults.update(kwargs)
    return FakeReview(**defaults)


class TestResolveReview:
    def test_no_override_returns_raw_review(self):
        review = _review(text="Great coffee", review_url="https://maps.example/r/7")

        result = resolve_review(review, None)

        assert result == EffectiveReview(
            id=7,
            location_id=3,
            author_name="Jane Doe",
            author_avatar_url=None,
            rating=4,
            text="Great coffee",
            created_at=utc(2024, 5, 1),
            review_url="https://maps.example/r/7",
            pinned=False,
            tags=(),
        )

    def test_hidden_override_excludes(self):
        assert resolve_review(_review(), FakeOverride(review_id=7, hidden=True)) is None

    def test_hidden_wins_over_pinned(self):
        assert resolve_review(_review(), FakeOverride(review_id=7, hidden=True, pinned=True)) is None

    def test_custom_excerpt_replaces_text(self):
        result = resolve_review(_review(text="Long rambling text"), FakeOverride(review_id=7, custom_excerpt="Short"))

        assert result.text == "Short"

    def test_empty_excerpt_keeps_original_text(self):
        result = resolve_review(_review(text="Original"), FakeOverride(review_id=7, custom_excerpt=""))

        assert result.text == "Original"

    def test_pinned_and_tags_pass_through(self):
        result = resolve_review(_review(), FakeOverride(review_id=7, pinned=True, tags=["vip", "staff"]))

        assert result.pinned is True
        assert result.tags == ("vip", "staff")
        assert result.rating == 4

    def test_review_is_not_mutated(self):
        review = _review(text="Original")

        resolve_review(review, FakeOverride(review_id=7, custom_excerpt="Edited"))

        assert review.text == "Original"
