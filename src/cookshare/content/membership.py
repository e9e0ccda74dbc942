"""MembershipStore — per-entity collaborator rows.

Stateless service that receives the member and user models at construction
and a session at call time.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, case, delete, select

from cookshare.models.content import ContentMember, ContentMemberBase
from cookshare.models.users import User, UserBase

from .dialect import upsert_rows
from .status import ACCEPTED_STATUSES, MemberStatus
from .types import MemberInfo, MemberRequest

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

MemberInput = MemberRequest | Mapping[str, Any] | str


def coerce_members(members: Iterable[MemberInput]) -> list[MemberRequest]:
    """Normalize member input and collapse duplicates (last one wins)."""
    by_user: dict[str, MemberRequest] = {}
    for member in members:
        if isinstance(member, MemberRequest):
            request = member
        elif isinstance(member, str):
            request = MemberRequest(user_id=member)
        else:
            request = MemberRequest(user_id=member["user_id"], status=member.get("status"))
        by_user[request.user_id] = request
    return list(by_user.values())


class MembershipStore:
    """Reads and writes ``ContentMember`` rows for any entity kind."""

    def __init__(
        self,
        dialect: str,
        member_model: type[ContentMemberBase] = ContentMember,
        user_model: type[UserBase] = User,
    ) -> None:
        self._dialect = dialect
        self._member_model = member_model
        self._user_model = user_model

    @property
    def model(self) -> type[ContentMemberBase]:
        return self._member_model

    async def read(
        self,
        session: AsyncSession,
        content_ids: Sequence[str],
    ) -> dict[str, list[MemberInfo]]:
        """Members of each content id, ordered by user id.

        Every requested id is a key; ids without members map to ``[]``.
        """
        members: dict[str, list[MemberInfo]] = {cid: [] for cid in content_ids}
        if not content_ids:
            return members

        m = self._member_model
        u = self._user_model
        result = await session.execute(
            select(  # type: ignore[call-overload]
                m.content_id, m.user_id, m.status, u.first_name, u.last_name
            )
            .outerjoin(u, u.user_id == m.user_id)
            .where(m.content_id.in_(list(content_ids)))  # type: ignore[union-attr]
            .order_by(m.content_id, m.user_id)
        )
        for row in result:
            members[row.content_id].append(
                MemberInfo(
                    user_id=row.user_id,
                    status=MemberStatus(row.status),
                    first_name=row.first_name,
                    last_name=row.last_name,
                )
            )
        return members

    async def status_of(
        self, session: AsyncSession, content_id: str, user_id: str
    ) -> MemberStatus | None:
        """The persisted status of one user on one content row, if any."""
        m = self._member_model
        result = await session.execute(
            select(m.status).where(  # type: ignore[call-overload]
                m.content_id == content_id, m.user_id == user_id
            )
        )
        status = result.scalar_one_or_none()
        return MemberStatus(status) if status is not None else None

    async def save(
        self,
        session: AsyncSession,
        content_id: str,
        members: Iterable[MemberInput],
        *,
        trim_not_in: bool = False,
        preserve_accepted: bool = False,
    ) -> list[MemberInfo]:
        """Upsert members of *content_id* and return the resulting member list.

        - ``trim_not_in`` — first delete rows whose user is not in *members*;
          an empty *members* removes everyone.
        - ``preserve_accepted`` — an incoming pending status never downgrades
          an existing administrator or member.
        - A member given without a status is inserted as pending and never
          changes an existing row.

        Unknown users raise ``ForeignKeyViolationError``.
        """
        requests = coerce_members(members)
        m = self._member_model

        if trim_not_in:
            keep = [r.user_id for r in requests]
            stmt = delete(m).where(m.content_id == content_id)  # type: ignore[arg-type]
            if keep:
                stmt = stmt.where(m.user_id.not_in(keep))  # type: ignore[union-attr]
            result = await session.execute(stmt)
            if result.rowcount:
                logger.debug("Trimmed %d members from %s", result.rowcount, content_id)

        explicit = [
            {"content_id": content_id, "user_id": r.user_id, "status": r.status.value}
            for r in requests
            if r.status is not None
        ]
        implicit = [
            {"content_id": content_id, "user_id": r.user_id, "status": MemberStatus.PENDING.value}
            for r in requests
            if r.status is None
        ]

        if explicit:
            await upsert_rows(
                session,
                self._dialect,
                m,
                explicit,
                ["content_id", "user_id"],
                update_set=self._status_update(preserve_accepted),
            )
        if implicit:
            await upsert_rows(
                session,
                self._dialect,
                m,
                implicit,
                ["content_id", "user_id"],
                update_keys=[],
            )
        logger.debug("Saved %d members on %s", len(requests), content_id)
        return (await self.read(session, [content_id]))[content_id]

    def _status_update(self, preserve_accepted: bool) -> Any:
        def build(stmt: Any) -> dict[str, Any]:
            if not preserve_accepted:
                return {"status": stmt.excluded.status}
            current = self._member_model.__table__.c.status  # type: ignore[attr-defined]
            accepted = [s.value for s in ACCEPTED_STATUSES]
            return {
                "status": case(
                    (
                        and_(
                            current.in_(accepted),
                            stmt.excluded.status == MemberStatus.PENDING.value,
                        ),
                        current,
                    ),
                    else_=stmt.excluded.status,
                )
            }

        return build

    async def remove(
        self,
        session: AsyncSession,
        content_id: str,
        user_ids: Sequence[str],
    ) -> int:
        """Delete the given users' rows. Returns the number removed."""
        if not user_ids:
            return 0
        m = self._member_model
        result = await session.execute(
            delete(m).where(
                m.content_id == content_id,  # type: ignore[arg-type]
                m.user_id.in_(list(user_ids)),  # type: ignore[union-attr]
            )
        )
        count: int = result.rowcount  # type: ignore[assignment]
        logger.debug("Removed %d members from %s", count, content_id)
        return count
