"""ContentLedger — the ownership record every shareable entity hangs off."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select, update

from cookshare.models.content import Content, ContentBase

from .dialect import insert_rows

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class ContentLedger:
    """Creates, touches and deletes ``Content`` rows.

    Stateless: the concrete content model is fixed at construction and the
    session is passed at call time.
    """

    def __init__(self, content_model: type[ContentBase] = Content) -> None:
        self._content_model = content_model

    @property
    def model(self) -> type[ContentBase]:
        return self._content_model

    async def create(self, session: AsyncSession, user_id: str, count: int) -> list[str]:
        """Insert *count* content rows owned by *user_id* in one statement.

        Returns the new ids in insertion order.  Flushes nothing else.
        """
        if count <= 0:
            return []
        rows = [self._content_model(created_by=user_id).model_dump() for _ in range(count)]
        await insert_rows(session, self._content_model, rows)
        logger.debug("Created %d content rows for %s", count, user_id)
        return [row["content_id"] for row in rows]

    async def touch(self, session: AsyncSession, ids: Sequence[str]) -> None:
        """Bump ``updated_at`` on the given content rows."""
        if not ids:
            return
        model = self._content_model
        await session.execute(
            update(model)
            .where(model.content_id.in_(list(ids)))  # type: ignore[union-attr]
            .values(updated_at=datetime.now(UTC))
        )

    async def delete(
        self,
        session: AsyncSession,
        ids: Sequence[str],
        *,
        within: Any = None,
    ) -> int:
        """Delete content rows, cascading to entity and membership rows.

        *within* restricts deletion to ids present in that entity id column,
        so deleting "books" can never remove a list that shares the id space.
        """
        if not ids:
            return 0
        model = self._content_model
        stmt = delete(model).where(model.content_id.in_(list(ids)))  # type: ignore[union-attr]
        if within is not None:
            stmt = stmt.where(
                model.content_id.in_(  # type: ignore[union-attr]
                    select(within).where(within.in_(list(ids)))
                )
            )
        result = await session.execute(stmt)
        count: int = result.rowcount  # type: ignore[assignment]
        logger.debug("Deleted %d of %d content rows", count, len(ids))
        return count

    async def owners(self, session: AsyncSession, ids: Sequence[str]) -> dict[str, str | None]:
        """Map content id to ``created_by`` for the ids that exist."""
        if not ids:
            return {}
        model = self._content_model
        result = await session.execute(
            select(model.content_id, model.created_by).where(  # type: ignore[call-overload]
                model.content_id.in_(list(ids))  # type: ignore[union-attr]
            )
        )
        return {row.content_id: row.created_by for row in result}
