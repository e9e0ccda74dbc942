"""CookshareAsync — async facade wiring the engine, repositories and workflows."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from cookshare.config import DatabaseConfig
from cookshare.content.dialect import SUPPORTED_DIALECTS, enable_sqlite_foreign_keys, get_dialect
from cookshare.entities.books import BookRepository
from cookshare.entities.lists import ListRepository
from cookshare.entities.planners import PlannerRepository
from cookshare.entities.recipes import RecipeRepository
from cookshare.models import (
    Attachment,
    Book,
    BookRecipe,
    Content,
    ContentAttachment,
    ContentMember,
    ListItem,
    Planner,
    PlannerMeal,
    Recipe,
    RecipeRating,
    RecipeSection,
    ShoppingList,
    User,
)
from cookshare.services.membership import MembershipWorkflow

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from cookshare.content.repository import EntityRepository

logger = logging.getLogger(__name__)

_TABLES = [
    User,
    Content,
    ContentMember,
    Attachment,
    ContentAttachment,
    Book,
    ShoppingList,
    ListItem,
    Recipe,
    BookRecipe,
    RecipeSection,
    RecipeRating,
    Planner,
    PlannerMeal,
]


class CookshareAsync:
    """Async facade over the content engine.

    Repositories never commit; ``transaction()`` hands out a session that
    commits on success and rolls back on error::

        app = CookshareAsync(config=DatabaseConfig(url="sqlite+aiosqlite://"))
        await app.create_tables()
        async with app.transaction() as session:
            [book] = await app.books.create(session, user_id, [{"name": "Dinners"}])

    An engine passed in by the caller is not disposed by ``close()``.
    """

    def __init__(
        self,
        *,
        engine: AsyncEngine | None = None,
        config: DatabaseConfig | None = None,
    ) -> None:
        self._config = config or DatabaseConfig()
        self._owns_engine = engine is None
        self._engine = engine or create_async_engine(self._config.url, echo=self._config.echo)
        self._closed = False

        self._dialect = get_dialect(self._engine)
        if self._dialect not in SUPPORTED_DIALECTS:
            raise ValueError(
                f"Unsupported dialect: {self._dialect!r}. "
                f"Must be one of {', '.join(SUPPORTED_DIALECTS)}."
            )
        if self._config.enforce_foreign_keys:
            enable_sqlite_foreign_keys(self._engine)

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=self._config.expire_on_commit,
        )

        self.books = BookRepository(dialect=self._dialect)
        self.lists = ListRepository(dialect=self._dialect)
        self.planners = PlannerRepository(dialect=self._dialect)
        self.recipes = RecipeRepository(dialect=self._dialect)

        self._repositories: dict[str, EntityRepository[Any, Any]] = {}
        for repository in (self.books, self.lists, self.planners, self.recipes):
            self._repositories[repository.descriptor.kind] = repository
            self._repositories[repository.descriptor.collection] = repository
        self._workflows: dict[str, MembershipWorkflow] = {}

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._dialect

    def repository(self, kind: str) -> EntityRepository[Any, Any]:
        """Repository for ``"book"``/``"books"``, ``"list"``/``"lists"`` and so on."""
        try:
            return self._repositories[kind]
        except KeyError:
            raise ValueError(f"Unknown entity kind: {kind!r}") from None

    def members(self, kind: str) -> MembershipWorkflow:
        """Membership workflow for an entity kind."""
        repository = self.repository(kind)
        workflow = self._workflows.get(repository.kind)
        if workflow is None:
            workflow = MembershipWorkflow(repository)
            self._workflows[repository.kind] = workflow
        return workflow

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; commit on success, roll back on any error."""
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            logger.debug("Rolling back transaction", exc_info=True)
            await session.rollback()
            raise
        finally:
            await session.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_tables(self) -> None:
        """Create every cookshare table that does not exist yet."""
        tables = [model.__table__ for model in _TABLES]  # type: ignore[attr-defined]
        async with self._engine.begin() as conn:
            await conn.run_sync(lambda c: SQLModel.metadata.create_all(c, tables=tables))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_engine:
            await self._engine.dispose()

    async def __aenter__(self) -> CookshareAsync:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
