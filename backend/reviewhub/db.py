from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .settings import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    """Declarative base for widget, location, review, override and summary tables."""


def make_engine(**kwargs: Any) -> AsyncEngine:
    """Engine for the configured database; the worker builds one per task."""
    options: dict[str, Any] = {"echo": settings.db_echo, "pool_pre_ping": True}
    options.update(kwargs)
    return create_async_engine(settings.async_database_url, **options)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Routes serialize ORM objects after commit
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine(pool_size=settings.db_pool_size)
AsyncSessionLocal = make_session_factory(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session
