"""Permission evaluation from ownership and membership status."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import aliased

from cookshare.models.content import Content, ContentMember

from .modifiers import join_membership
from .status import AccessStatus, MemberStatus, normalize_statuses, parse_member_status

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


def decide_access(
    user_id: str,
    created_by: str | None,
    member_status: str | MemberStatus | None,
    allowed: Iterable[AccessStatus | str] | AccessStatus | str,
) -> bool:
    """Decide one user's access to one entity.

    Access is granted when the owner status is allowed and *user_id* created
    the entity, or when the user's member status is allowed.  A blacklisted
    member is denied in every case.
    """
    statuses = normalize_statuses(allowed)
    status = parse_member_status(member_status)
    if status is MemberStatus.BLACKLISTED:
        return False
    if AccessStatus.OWNER in statuses and created_by is not None and created_by == user_id:
        return True
    return status is not None and AccessStatus(status.value) in statuses


class PermissionEvaluator:
    """Answers "may *user* act on these ids?" with one query per call."""

    def __init__(
        self,
        content_model: Any = Content,
        member_model: Any = ContentMember,
    ) -> None:
        self._content_model = content_model
        self._member_model = member_model

    async def verify(
        self,
        session: AsyncSession,
        user_id: str,
        ids: Sequence[str],
        statuses: Iterable[AccessStatus | str] | AccessStatus | str,
        *,
        id_column: Any = None,
    ) -> dict[str, bool]:
        """Map each id to whether *user_id* holds one of *statuses* on it.

        *id_column* scopes the check to an entity table; ids missing from it
        (or from the content table) map to ``False``.
        """
        allowed = normalize_statuses(statuses)
        access = dict.fromkeys(ids, False)
        if not ids:
            return access

        content = self._content_model
        member = aliased(self._member_model)
        if id_column is None:
            id_column = content.content_id
            query = select(id_column.label("id"), content.created_by, member.status)
            query = query.select_from(content)
        else:
            query = select(id_column.label("id"), content.created_by, member.status)
            query = query.select_from(id_column.class_).join(
                content, content.content_id == id_column
            )
        query = join_membership(query, user_id=user_id, id_column=id_column, member=member)
        query = query.where(id_column.in_(list(ids)))

        result = await session.execute(query)
        for row in result:
            access[row.id] = decide_access(user_id, row.created_by, row.status, allowed)
        return access
