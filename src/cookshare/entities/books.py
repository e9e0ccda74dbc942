"""Recipe books."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select

from cookshare.content.descriptor import EntityDescriptor
from cookshare.content.dialect import upsert_rows
from cookshare.content.repository import EntityRepository
from cookshare.content.types import EntityView
from cookshare.models.entities import Book, BookRecipe

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

BOOKS: EntityDescriptor[Book] = EntityDescriptor(
    kind="book",
    model=Book,
    id_field="book_id",
    collection="books",
    columns=("name", "description", "color", "icon"),
)


@dataclass
class BookView(EntityView):
    color: str | None = None
    icon: str | None = None


class BookRepository(EntityRepository[Book, BookView]):
    """Books plus the recipes filed in them."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(BOOKS, BookView, **kwargs)

    async def save_recipes(
        self, session: AsyncSession, book_id: str, recipe_ids: Sequence[str]
    ) -> int:
        """File recipes in a book; recipes already there are left alone."""
        rows = [{"book_id": book_id, "recipe_id": rid} for rid in recipe_ids]
        count = await upsert_rows(
            session,
            self._dialect,
            BookRecipe,
            rows,
            ["book_id", "recipe_id"],
            update_keys=[],
        )
        await self._ledger.touch(session, [book_id])
        return count

    async def remove_recipes(
        self, session: AsyncSession, book_id: str, recipe_ids: Sequence[str]
    ) -> int:
        if not recipe_ids:
            return 0
        result = await session.execute(
            delete(BookRecipe).where(
                BookRecipe.book_id == book_id,  # type: ignore[arg-type]
                BookRecipe.recipe_id.in_(list(recipe_ids)),  # type: ignore[attr-defined]
            )
        )
        await self._ledger.touch(session, [book_id])
        return result.rowcount  # type: ignore[return-value]

    async def read_recipes(
        self, session: AsyncSession, book_ids: Sequence[str]
    ) -> dict[str, list[str]]:
        """Recipe ids filed in each book; every requested id is a key."""
        recipes: dict[str, list[str]] = {bid: [] for bid in book_ids}
        if not book_ids:
            return recipes
        result = await session.execute(
            select(BookRecipe.book_id, BookRecipe.recipe_id)  # type: ignore[call-overload]
            .where(BookRecipe.book_id.in_(list(book_ids)))  # type: ignore[attr-defined]
            .order_by(BookRecipe.book_id, BookRecipe.recipe_id)
        )
        for row in result:
            recipes[row.book_id].append(row.recipe_id)
        return recipes
