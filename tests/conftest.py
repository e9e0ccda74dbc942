"""Shared fixtures for cookshare tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from cookshare.content.dialect import enable_sqlite_foreign_keys
from cookshare.entities.books import BookRepository
from cookshare.entities.lists import ListRepository
from cookshare.entities.planners import PlannerRepository
from cookshare.entities.recipes import RecipeRepository
from cookshare.models import User

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

USER_NAMES = ("alice", "bob", "carol", "dave")


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with foreign keys on and all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    enable_sqlite_foreign_keys(eng)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLModel session on the shared in-memory database."""
    factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with factory() as session:
        yield session


@pytest.fixture
async def users(async_session: AsyncSession) -> dict[str, str]:
    """Committed users keyed by first name; each user id equals the name."""
    async_session.add_all(
        [
            User(user_id=name, email=f"{name}@example.com", first_name=name.title())
            for name in USER_NAMES
        ]
    )
    await async_session.commit()
    return {name: name for name in USER_NAMES}


@pytest.fixture
def books() -> BookRepository:
    return BookRepository()


@pytest.fixture
def lists() -> ListRepository:
    return ListRepository()


@pytest.fixture
def planners() -> PlannerRepository:
    return PlannerRepository()


@pytest.fixture
def recipes() -> RecipeRepository:
    return RecipeRepository()
