"""Shopping lists and their items.

Items are content rows of their own, so each carries its own timestamps.
Access to an item follows access to its list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update

from cookshare.content.descriptor import EntityDescriptor
from cookshare.content.dialect import insert_rows
from cookshare.content.modifiers import with_parent_permissions
from cookshare.content.repository import EntityRepository
from cookshare.content.types import EntityView
from cookshare.models.content import Content
from cookshare.models.entities import ListItem, ShoppingList

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

LISTS: EntityDescriptor[ShoppingList] = EntityDescriptor(
    kind="list",
    model=ShoppingList,
    id_field="list_id",
    collection="lists",
    columns=("name", "description", "color", "icon"),
)

LIST_ITEMS: EntityDescriptor[ListItem] = EntityDescriptor(
    kind="list item",
    model=ListItem,
    id_field="item_id",
    collection="items",
    columns=("name", "completed", "ingredient_id", "unit", "amount", "notes"),
)


@dataclass
class ListView(EntityView):
    color: str | None = None
    icon: str | None = None
    outstanding: int = 0
    """Items not yet ticked off."""


@dataclass
class ListItemView:
    id: str
    list_id: str
    name: str
    completed: bool = False
    ingredient_id: str | None = None
    unit: str | None = None
    amount: float | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _outstanding_count() -> Any:
    return (
        select(func.count())
        .select_from(ListItem)
        .where(
            ListItem.list_id == ShoppingList.list_id,  # type: ignore[arg-type]
            ListItem.completed.is_(False),  # type: ignore[attr-defined]
        )
        .correlate(ShoppingList)
        .scalar_subquery()
    )


class ListRepository(EntityRepository[ShoppingList, ListView]):
    """Lists plus item CRUD.  Deleting a list deletes its items' content."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(LISTS, ListView, **kwargs)

    def _extend_query(self, query: Select, user_id: str) -> Select:
        return query.add_columns(_outstanding_count().label("outstanding"))

    def _view_extras(self, row: Mapping[str, Any], user_id: str) -> dict[str, Any]:
        return {"outstanding": row["outstanding"] or 0}

    async def _before_delete(self, session: AsyncSession, ids: Sequence[str]) -> None:
        result = await session.execute(
            select(ListItem.item_id).where(
                ListItem.list_id.in_(list(ids))  # type: ignore[attr-defined]
            )
        )
        item_ids = list(result.scalars().all())
        if item_ids:
            await self._ledger.delete(session, item_ids)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @staticmethod
    def _item_query() -> Select:
        return (
            select(
                *ListItem.__table__.columns,  # type: ignore[attr-defined]
                Content.created_by,
                Content.created_at,
                Content.updated_at,
            )
            .select_from(ListItem)
            .join(Content, Content.content_id == ListItem.item_id)  # type: ignore[arg-type]
        )

    @staticmethod
    def _to_item(row: Mapping[str, Any]) -> ListItemView:
        return ListItemView(
            id=row["item_id"],
            list_id=row["list_id"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            **{c: row[c] for c in LIST_ITEMS.columns},
        )

    async def _items_by_id(
        self, session: AsyncSession, item_ids: Sequence[str]
    ) -> list[ListItemView]:
        if not item_ids:
            return []
        query = self._item_query().where(
            ListItem.item_id.in_(list(item_ids))  # type: ignore[attr-defined]
        )
        rows = (await session.execute(query)).mappings().all()
        by_id = {row["item_id"]: self._to_item(row) for row in rows}
        return [by_id[i] for i in item_ids if i in by_id]

    async def create_items(
        self,
        session: AsyncSession,
        user_id: str,
        list_id: str,
        items: Sequence[Mapping[str, Any]],
    ) -> list[ListItemView]:
        """Add items to a list; each gets its own content row."""
        if not items:
            return []
        prepared = [LIST_ITEMS.row("", item, list_id=list_id) for item in items]
        ids = await self._ledger.create(session, user_id, len(items))
        await insert_rows(
            session,
            ListItem,
            [{**row, "item_id": item_id} for row, item_id in zip(prepared, ids, strict=True)],
        )
        await self._ledger.touch(session, [list_id])
        logger.debug("Added %d items to list %s", len(ids), list_id)
        return await self._items_by_id(session, ids)

    async def update_items(
        self,
        session: AsyncSession,
        list_id: str,
        items: Sequence[Mapping[str, Any]],
    ) -> list[ListItemView]:
        """Patch items of one list; items belonging elsewhere are ignored."""
        requested = [LIST_ITEMS.entity_id(item) for item in items]
        owned = set(await self._owned_items(session, list_id, requested))
        ids: list[str] = []
        for item in items:
            item_id = LIST_ITEMS.entity_id(item)
            if item_id not in owned:
                continue
            ids.append(item_id)
            values = LIST_ITEMS.patch(item)
            if values:
                await session.execute(
                    update(ListItem)
                    .where(ListItem.item_id == item_id)  # type: ignore[arg-type]
                    .values(**values)
                )
        if ids:
            await self._ledger.touch(session, [*ids, list_id])
        return await self._items_by_id(session, ids)

    async def _owned_items(
        self, session: AsyncSession, list_id: str, item_ids: Sequence[str]
    ) -> list[str]:
        if not item_ids:
            return []
        result = await session.execute(
            select(ListItem.item_id).where(
                ListItem.list_id == list_id,  # type: ignore[arg-type]
                ListItem.item_id.in_(list(item_ids)),  # type: ignore[attr-defined]
            )
        )
        return list(result.scalars().all())

    async def delete_items(
        self, session: AsyncSession, list_id: str, item_ids: Sequence[str]
    ) -> int:
        owned = await self._owned_items(session, list_id, item_ids)
        if not owned:
            return 0
        count = await self._ledger.delete(session, owned)
        if count:
            await self._ledger.touch(session, [list_id])
        return count

    async def read_items(
        self, session: AsyncSession, user_id: str, list_id: str
    ) -> list[ListItemView]:
        """Items of a list the user may read; ``[]`` when they may not."""
        query = with_parent_permissions(
            self._item_query().where(ListItem.list_id == list_id),  # type: ignore[arg-type]
            user_id=user_id,
            parent_id_column=ListItem.list_id,
            statuses=self.read_statuses,
        ).order_by(Content.created_at, ListItem.item_id)
        rows = (await session.execute(query)).mappings().all()
        return [self._to_item(row) for row in rows]

    async def count_outstanding(
        self, session: AsyncSession, list_ids: Sequence[str]
    ) -> dict[str, int]:
        counts = dict.fromkeys(list_ids, 0)
        if not list_ids:
            return counts
        result = await session.execute(
            select(ListItem.list_id, func.count())  # type: ignore[call-overload]
            .where(
                ListItem.list_id.in_(list(list_ids)),  # type: ignore[attr-defined]
                ListItem.completed.is_(False),  # type: ignore[attr-defined]
            )
            .group_by(ListItem.list_id)
        )
        for list_id, count in result:
            counts[list_id] = count
        return counts

    async def latest_updated(
        self, session: AsyncSession, list_ids: Sequence[str]
    ) -> dict[str, datetime | None]:
        """Most recent change to each list or any of its items."""
        latest: dict[str, datetime | None] = dict.fromkeys(list_ids)
        if not list_ids:
            return latest
        lists = await session.execute(
            select(Content.content_id, Content.updated_at).where(  # type: ignore[call-overload]
                Content.content_id.in_(list(list_ids))  # type: ignore[attr-defined]
            )
        )
        for list_id, updated_at in lists:
            latest[list_id] = updated_at
        items = await session.execute(
            select(ListItem.list_id, func.max(Content.updated_at))  # type: ignore[call-overload]
            .join(Content, Content.content_id == ListItem.item_id)
            .where(ListItem.list_id.in_(list(list_ids)))  # type: ignore[attr-defined]
            .group_by(ListItem.list_id)
        )
        for list_id, updated_at in items:
            current = latest.get(list_id)
            if updated_at is not None and (current is None or updated_at > current):
                latest[list_id] = updated_at
        return latest
