"""EntityRepository — CRUD, permissions and membership for one entity kind.

One generic implementation serves books, lists, planners and recipes; each
kind is an ``EntityDescriptor`` plus a view dataclass.  Subclasses extend
behaviour through the ``_extend_query`` / ``_view_extras`` / ``_after_*``
hooks rather than by rewriting queries.

Every method takes the caller's ``AsyncSession`` and never commits or rolls
back.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.orm import aliased

from cookshare.models.content import Content, ContentMember

from .descriptor import EntityDescriptor, ModelT
from .dialect import insert_rows
from .ledger import ContentLedger
from .membership import MembershipStore
from .modifiers import join_membership, with_content_author, with_read_permissions
from .permissions import PermissionEvaluator
from .status import (
    LIST_STATUSES,
    READ_STATUSES,
    AccessStatus,
    MemberStatus,
    resolve_access_status,
)
from .types import EntityView, OwnerInfo

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from .membership import MemberInput
    from .types import MemberInfo

logger = logging.getLogger(__name__)

ViewT = TypeVar("ViewT", bound=EntityView)


class EntityRepository(Generic[ModelT, ViewT]):
    """Generic repository over an entity table joined to the content ledger."""

    read_statuses: ClassVar[frozenset[AccessStatus]] = READ_STATUSES
    """Default statuses for ``read``."""

    list_statuses: ClassVar[frozenset[AccessStatus]] = LIST_STATUSES
    """Default statuses for ``read_all``; includes pending invitations."""

    verify_statuses: ClassVar[frozenset[AccessStatus]] = READ_STATUSES
    """Default statuses for ``verify_permissions``."""

    def __init__(
        self,
        descriptor: EntityDescriptor[ModelT],
        view_type: type[ViewT],
        *,
        dialect: str = "sqlite",
        ledger: ContentLedger | None = None,
        members: MembershipStore | None = None,
        evaluator: PermissionEvaluator | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.view_type = view_type
        self._dialect = dialect
        self._ledger = ledger or ContentLedger()
        self._members = members or MembershipStore(dialect)
        self._evaluator = evaluator or PermissionEvaluator(
            self._ledger.model, self._members.model
        )

    @property
    def kind(self) -> str:
        return self.descriptor.kind

    # ------------------------------------------------------------------
    # Query construction
    # ------------------------------------------------------------------

    def _base_query(
        self,
        user_id: str,
        statuses: Iterable[AccessStatus | str] | AccessStatus | str,
    ) -> Select:
        """Entity ⋈ content ⋈ (left) this user's membership, permission-gated."""
        model = self.descriptor.model
        id_column = self.descriptor.id_column
        member = aliased(ContentMember)

        query = (
            select(
                *model.__table__.columns,  # type: ignore[attr-defined]
                Content.created_at,
                Content.updated_at,
                member.status.label("member_status"),
            )
            .select_from(model)
            .join(Content, Content.content_id == id_column)  # type: ignore[arg-type]
        )
        query = join_membership(query, user_id=user_id, id_column=id_column, member=member)
        query = with_content_author(query)
        query = self._apply_read_permissions(
            query, user_id=user_id, member=member, statuses=statuses
        )
        return self._extend_query(query, user_id)

    def _apply_read_permissions(
        self,
        query: Select,
        *,
        user_id: str,
        member: Any,
        statuses: Iterable[AccessStatus | str] | AccessStatus | str,
    ) -> Select:
        return with_read_permissions(
            query,
            user_id=user_id,
            id_column=self.descriptor.id_column,
            statuses=statuses,
            member=member,
        )

    def _extend_query(self, query: Select, user_id: str) -> Select:
        """Hook for extra columns and joins."""
        return query

    def _view_extras(self, row: Mapping[str, Any], user_id: str) -> dict[str, Any]:
        """Hook for view fields that are not plain entity columns."""
        return {}

    def _to_view(
        self, row: Mapping[str, Any], user_id: str, members: list[MemberInfo]
    ) -> ViewT:
        created_by = row["created_by"]
        return self.view_type(
            id=row[self.descriptor.id_field],
            owner=OwnerInfo(created_by, row["owner_first_name"]) if created_by else None,
            status=resolve_access_status(user_id, created_by, row["member_status"]),
            members=members,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            **{c: row[c] for c in self.descriptor.columns},
            **self._view_extras(row, user_id),
        )

    async def _fetch(
        self, session: AsyncSession, user_id: str, query: Select
    ) -> list[ViewT]:
        rows = (await session.execute(query)).mappings().all()
        ids = [row[self.descriptor.id_field] for row in rows]
        members = await self._members.read(session, ids)
        return [
            self._to_view(row, user_id, members[row[self.descriptor.id_field]]) for row in rows
        ]

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(
        self,
        session: AsyncSession,
        user_id: str,
        items: Sequence[Mapping[str, Any]],
    ) -> list[ViewT]:
        """Create entities owned by *user_id*, in one insert per table.

        An item may carry ``members``; they are saved with trim semantics.
        """
        if not items:
            return []
        prepared = [self.descriptor.row("", item) for item in items]
        ids = await self._ledger.create(session, user_id, len(items))
        rows = [
            {**row, self.descriptor.id_field: entity_id}
            for row, entity_id in zip(prepared, ids, strict=True)
        ]
        await insert_rows(session, self.descriptor.model, rows)

        for entity_id, item in zip(ids, items, strict=True):
            if "members" in item:
                await self._members.save(session, entity_id, item["members"], trim_not_in=True)
        await self._after_create(session, user_id, ids, items)

        logger.debug("Created %d %s for %s", len(ids), self.descriptor.collection, user_id)
        return await self.read(session, user_id, ids)

    async def _after_create(
        self,
        session: AsyncSession,
        user_id: str,
        ids: list[str],
        items: Sequence[Mapping[str, Any]],
    ) -> None:
        """Hook run after entity and member rows are inserted."""

    async def read(
        self,
        session: AsyncSession,
        user_id: str,
        ids: Sequence[str],
        *,
        statuses: Iterable[AccessStatus | str] | AccessStatus | str | None = None,
    ) -> list[ViewT]:
        """Entities *user_id* may read, in the order requested.

        Ids the user may not see, or that do not exist, are left out.
        """
        if not ids:
            return []
        query = self._base_query(user_id, self.read_statuses if statuses is None else statuses)
        query = query.where(self.descriptor.id_column.in_(list(ids)))
        views = {view.id: view for view in await self._fetch(session, user_id, query)}
        return [views[i] for i in dict.fromkeys(ids) if i in views]

    async def read_all(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        owner: str | None = None,
        statuses: Iterable[AccessStatus | str] | AccessStatus | str | None = None,
    ) -> list[ViewT]:
        """Every entity *user_id* may list, oldest first.

        *owner* narrows the listing to entities created by that user.
        """
        query = self._base_query(user_id, self.list_statuses if statuses is None else statuses)
        if owner is not None:
            query = query.where(Content.created_by == owner)  # type: ignore[arg-type]
        query = query.order_by(Content.created_at, self.descriptor.id_column)
        return await self._fetch(session, user_id, query)

    async def update(
        self,
        session: AsyncSession,
        user_id: str,
        items: Sequence[Mapping[str, Any]],
    ) -> list[ViewT]:
        """Patch entities; only keys present in an item are written.

        An item carrying ``members`` replaces the member list, keeping
        accepted members accepted.  Permissions are not checked here.  Ids
        that are not rows of this kind are skipped.
        """
        if not items:
            return []
        model = self.descriptor.model
        known = await self._existing_ids(
            session, [self.descriptor.entity_id(item) for item in items]
        )
        items = [item for item in items if self.descriptor.entity_id(item) in known]
        if not items:
            return []
        ids: list[str] = []
        for item in items:
            entity_id = self.descriptor.entity_id(item)
            ids.append(entity_id)
            values = self.descriptor.patch(item)
            if values:
                await session.execute(
                    update(model)
                    .where(self.descriptor.id_column == entity_id)
                    .values(**values)
                )
            if "members" in item:
                await self._members.save(
                    session,
                    entity_id,
                    item["members"],
                    trim_not_in=True,
                    preserve_accepted=True,
                )
        await self._ledger.touch(session, ids)
        await self._after_update(session, user_id, ids, items)
        return await self.read(session, user_id, ids)

    async def _after_update(
        self,
        session: AsyncSession,
        user_id: str,
        ids: list[str],
        items: Sequence[Mapping[str, Any]],
    ) -> None:
        """Hook run after entity rows are patched."""

    async def delete(self, session: AsyncSession, ids: Sequence[str]) -> int:
        """Delete entities by removing their content rows. Returns the count."""
        if not ids:
            return 0
        await self._before_delete(session, ids)
        return await self._ledger.delete(session, ids, within=self.descriptor.id_column)

    async def _before_delete(self, session: AsyncSession, ids: Sequence[str]) -> None:
        """Hook run before the entities' content rows are deleted."""

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    async def verify_permissions(
        self,
        session: AsyncSession,
        user_id: str,
        ids: Sequence[str],
        statuses: Iterable[AccessStatus | str] | AccessStatus | str | None = None,
    ) -> dict[str, bool]:
        """Map each id to whether *user_id* holds one of *statuses* on it."""
        return await self._evaluator.verify(
            session,
            user_id,
            ids,
            self.verify_statuses if statuses is None else statuses,
            id_column=self.descriptor.id_column,
        )

    async def has_permission(
        self,
        session: AsyncSession,
        user_id: str,
        entity_id: str,
        statuses: Iterable[AccessStatus | str] | AccessStatus | str | None = None,
    ) -> bool:
        access = await self.verify_permissions(session, user_id, [entity_id], statuses)
        return access[entity_id]

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def read_members(
        self, session: AsyncSession, ids: Sequence[str]
    ) -> dict[str, list[MemberInfo]]:
        return await self._members.read(session, ids)

    async def member_status(
        self, session: AsyncSession, entity_id: str, user_id: str
    ) -> MemberStatus | None:
        return await self._members.status_of(session, entity_id, user_id)

    async def save_members(
        self,
        session: AsyncSession,
        entity_id: str,
        members: Iterable[MemberInput],
        *,
        trim_not_in: bool = False,
        preserve_accepted: bool = False,
    ) -> list[MemberInfo]:
        return await self._members.save(
            session,
            entity_id,
            members,
            trim_not_in=trim_not_in,
            preserve_accepted=preserve_accepted,
        )

    async def remove_members(
        self, session: AsyncSession, entity_id: str, user_ids: Sequence[str]
    ) -> int:
        return await self._members.remove(session, entity_id, user_ids)

    async def owner_of(self, session: AsyncSession, entity_id: str) -> str | None:
        """``created_by`` of an entity of this kind, or ``None`` if absent."""
        id_column = self.descriptor.id_column
        result = await session.execute(
            select(Content.created_by)  # type: ignore[call-overload]
            .select_from(self.descriptor.model)
            .join(Content, Content.content_id == id_column)
            .where(id_column == entity_id)
        )
        return result.scalar_one_or_none()

    async def exists(self, session: AsyncSession, entity_id: str) -> bool:
        return entity_id in await self._existing_ids(session, [entity_id])

    async def _existing_ids(self, session: AsyncSession, ids: Sequence[str]) -> set[str]:
        """The subset of *ids* present in this kind's table."""
        if not ids:
            return set()
        id_column = self.descriptor.id_column
        result = await session.execute(select(id_column).where(id_column.in_(list(ids))))
        return set(result.scalars().all())
