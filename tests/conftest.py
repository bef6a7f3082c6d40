"""
Pytest configuration and shared fixtures.

- store: empty in-memory WidgetStore
- scenario_store: published widget with two locations (r1, r2 on L1; r3 hidden on L2)
- Fake* dataclasses: rows shaped like the ORM models
- sqlite_db: file-backed SQLite schema for SqlWidgetStore and the admin routes
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import pytest
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from reviewhub.db import Base, make_session_factory
from reviewhub.models import WidgetStatus
from reviewhub.widget_config import create_default_widget_config


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


@dataclass
class FakeWidget:
    id: int
    company_id: str = "acme"
    name: str = "Homepage reviews"
    status: str = WidgetStatus.draft.value
    published_at: datetime | None = None
    config_json: dict = field(default_factory=create_default_widget_config)


@dataclass
class FakeLocation:
    id: int
    widget_id: int
    place_id: str
    provider: str = "google"
    label: str | None = None
    weight: int = 1
    enabled: bool = True


@dataclass
class FakeReview:
    id: int
    widget_location_id: int
    rating: int
    review_created_at: datetime
    author_name: str = "Jane Doe"
    author_avatar_url: str | None = None
    text: str | None = "Lovely place"
    review_url: str | None = None
    provider: str = "google"


@dataclass
class FakeOverride:
    review_id: int
    hidden: bool = False
    pinned: bool = False
    custom_excerpt: str | None = None
    tags: list | None = None
    notes: str | None = None


@dataclass
class FakeSummary:
    widget_id: int
    avg_rating: float
    total_reviews: int
    last_synced_at: datetime


class InMemoryWidgetStore:
    """WidgetStore backed by plain dicts; counts reads and writes."""

    def __init__(self):
        self.widgets: dict[int, FakeWidget] = {}
        self.locations: dict[int, FakeLocation] = {}
        self.reviews: dict[int, FakeReview] = {}
        self.overrides: dict[int, FakeOverride] = {}
        self.summaries: dict[int, FakeSummary] = {}
        self.review_fetches: list[tuple[int, int]] = []
        self.writes = 0

    def add(self, *rows):
        for row in rows:
            if isinstance(row, FakeWidget):
                self.widgets[row.id] = row
            elif isinstance(row, FakeLocation):
                self.locations[row.id] = row
            elif isinstance(row, FakeReview):
                self.reviews[row.id] = row
            elif isinstance(row, FakeOverride):
                self.overrides[row.review_id] = row
            elif isinstance(row, FakeSummary):
                self.summaries[row.widget_id] = row
        return self

    async def find_widget(self, widget_id):
        return self.widgets.get(widget_id)

    async def find_enabled_locations(self, widget_id):
        return sorted(
            (loc for loc in self.locations.values() if loc.widget_id == widget_id and loc.enabled),
            key=lambda loc: loc.id,
        )

    async def find_reviews(self, location_id, limit):
        self.review_fetches.append((location_id, limit))
        rows = [r for r in self.reviews.values() if r.widget_location_id == location_id]
        rows.sort(key=lambda r: (r.review_created_at, r.id), reverse=True)
        return rows[:limit]

    async def find_overrides(self, review_ids):
        return {rid: self.overrides[rid] for rid in review_ids if rid in self.overrides}

    async def find_summary(self, widget_id):
        return self.summaries.get(widget_id)

    async def aggregate_review_stats(self, widget_id):
        location_ids = {loc.id for loc in self.locations.values() if loc.widget_id == widget_id}
        ratings = [
            r.rating
            for r in self.reviews.values()
            if r.widget_location_id in location_ids
            and not (r.id in self.overrides and self.overrides[r.id].hidden)
        ]
        if not ratings:
            return 0.0, 0
        return sum(ratings) / len(ratings), len(ratings)

    async def upsert_summary(self, widget_id, avg_rating, total_reviews, synced_at):
        self.writes += 1
        self.summaries[widget_id] = FakeSummary(widget_id, avg_rating, total_reviews, synced_at)


@pytest.fixture
def store() -> InMemoryWidgetStore:
    return InMemoryWidgetStore()


@pytest.fixture
def scenario_store(store) -> InMemoryWidgetStore:
    """W(1) published; L1(10): r1 5* 2024-01-01, r2 4* 2024-02-01; L2(20): r3 2* 2024-03-01 hidden."""
    return store.add(
        FakeWidget(id=1, status=WidgetStatus.published.value, published_at=utc(2024, 1, 1)),
        FakeLocation(id=10, widget_id=1, place_id="place-l1"),
        FakeLocation(id=20, widget_id=1, place_id="place-l2"),
        FakeReview(id=1, widget_location_id=10, rating=5, review_created_at=utc(2024, 1, 1), author_name="Ann"),
        FakeReview(id=2, widget_location_id=10, rating=4, review_created_at=utc(2024, 2, 1), author_name="Bob"),
        FakeReview(id=3, widget_location_id=20, rating=2, review_created_at=utc(2024, 3, 1), author_name="Cid"),
        FakeOverride(review_id=3, hidden=True),
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@dataclass
class SqliteDatabase:
    """Sync engine for seeding, async session factory for the code under test."""

    engine: sa.Engine
    session_factory: async_sessionmaker[AsyncSession]

    def seed(self, *rows) -> list[int]:
        with Session(self.engine, expire_on_commit=False) as session:
            session.add_all(rows)
            session.commit()
        return [row.id for row in rows]


@pytest.fixture
def sqlite_db(tmp_path):
    path = tmp_path / "reviewhub.sqlite"
    engine = sa.create_engine(f"sqlite:///{path}")
    sa.event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)

    # NullPool: TestClient runs requests on its own event loop, so connections are never shared
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    sa.event.listen(async_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    yield SqliteDatabase(engine=engine, session_factory=make_session_factory(async_engine))
    engine.dispose()
