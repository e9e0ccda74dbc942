"""MembershipWorkflow — who may change whose membership, and how.

The repository's member operations are unconditional; this layer checks
the acting user's status first.  A failed check raises ``NotFoundError``
so callers never learn whether an entity they cannot see exists.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from cookshare.content.exceptions import (
    ForeignKeyViolationError,
    InvalidOperationError,
    NotFoundError,
)
from cookshare.content.status import (
    AccessStatus,
    MemberStatus,
    parse_member_status,
)
from cookshare.content.types import MemberRequest

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from cookshare.content.repository import EntityRepository
    from cookshare.content.types import MemberInfo

logger = logging.getLogger(__name__)

_OWNER = frozenset({AccessStatus.OWNER})
_ACCEPTED = frozenset({AccessStatus.ADMINISTRATOR, AccessStatus.MEMBER})
_PENDING = frozenset({AccessStatus.PENDING})

UPDATABLE_STATUSES = frozenset(
    {MemberStatus.ADMINISTRATOR, MemberStatus.MEMBER, MemberStatus.BLACKLISTED}
)


class MembershipWorkflow:
    """Invitation lifecycle for one entity kind."""

    def __init__(self, repository: EntityRepository[Any, Any]) -> None:
        self._repository = repository

    @property
    def kind(self) -> str:
        return self._repository.kind

    async def _require(
        self,
        session: AsyncSession,
        user_id: str,
        entity_id: str,
        statuses: frozenset[AccessStatus],
    ) -> None:
        if not await self._repository.has_permission(session, user_id, entity_id, statuses):
            raise NotFoundError(self.kind, entity_id)

    async def _members(self, session: AsyncSession, entity_id: str) -> list[MemberInfo]:
        return (await self._repository.read_members(session, [entity_id]))[entity_id]

    async def get_members(
        self, session: AsyncSession, user_id: str, entity_id: str
    ) -> list[MemberInfo]:
        """Members of an entity; only its owner may list them."""
        await self._require(session, user_id, entity_id, _OWNER)
        return await self._members(session, entity_id)

    async def invite(
        self, session: AsyncSession, user_id: str, entity_id: str, target_user_id: str
    ) -> list[MemberInfo]:
        """Invite *target_user_id* as pending."""
        await self._require(session, user_id, entity_id, _OWNER)
        if target_user_id == user_id:
            raise InvalidOperationError(self.kind, "owner cannot invite themselves")
        members = await self._members(session, entity_id)
        if any(m.user_id == target_user_id for m in members):
            raise InvalidOperationError(self.kind, "user is already a member")

        try:
            result = await self._repository.save_members(
                session,
                entity_id,
                [MemberRequest(target_user_id, MemberStatus.PENDING)],
            )
        except ForeignKeyViolationError as exc:
            raise NotFoundError("user", target_user_id) from exc
        logger.info("Invited %s to %s %s", target_user_id, self.kind, entity_id)
        return result

    async def update_member(
        self,
        session: AsyncSession,
        user_id: str,
        entity_id: str,
        member_id: str,
        status: MemberStatus | str,
    ) -> MemberInfo:
        """Change an accepted member's status (A, M or B)."""
        new_status = parse_member_status(status)
        if new_status not in UPDATABLE_STATUSES:
            raise ValueError(f"Cannot set member status to {status!r}")
        await self._require(session, user_id, entity_id, _OWNER)

        current = await self._repository.member_status(session, entity_id, member_id)
        if current is None:
            raise NotFoundError(f"{self.kind} member", member_id)
        if current is MemberStatus.PENDING:
            raise InvalidOperationError(self.kind, "cannot update a pending invitation")

        members = await self._repository.save_members(
            session, entity_id, [MemberRequest(member_id, new_status)]
        )
        logger.info(
            "Changed %s on %s %s: %s -> %s",
            member_id, self.kind, entity_id, current.value, new_status.value,
        )
        member = next((m for m in members if m.user_id == member_id), None)
        if member is None:
            raise NotFoundError(f"{self.kind} member", member_id)
        return member

    async def remove_member(
        self, session: AsyncSession, user_id: str, entity_id: str, member_id: str
    ) -> int:
        """Remove another user's membership; owners cannot remove themselves."""
        await self._require(session, user_id, entity_id, _OWNER)
        if member_id == user_id:
            raise InvalidOperationError(self.kind, "owner cannot remove themselves")
        count = await self._repository.remove_members(session, entity_id, [member_id])
        logger.info("Removed %s from %s %s", member_id, self.kind, entity_id)
        return count

    async def leave(self, session: AsyncSession, user_id: str, entity_id: str) -> None:
        """An accepted member leaves."""
        await self._require(session, user_id, entity_id, _ACCEPTED)
        await self._repository.remove_members(session, entity_id, [user_id])
        logger.info("%s left %s %s", user_id, self.kind, entity_id)

    async def accept(self, session: AsyncSession, user_id: str, entity_id: str) -> None:
        """Accept a pending invitation; the invitee becomes a member."""
        await self._require(session, user_id, entity_id, _PENDING)
        await self._repository.save_members(
            session, entity_id, [MemberRequest(user_id, MemberStatus.MEMBER)]
        )
        logger.info("%s accepted invitation to %s %s", user_id, self.kind, entity_id)

    async def decline(self, session: AsyncSession, user_id: str, entity_id: str) -> None:
        """Decline a pending invitation; the row is removed."""
        await self._require(session, user_id, entity_id, _PENDING)
        await self._repository.remove_members(session, entity_id, [user_id])
        logger.info("%s declined invitation to %s %s", user_id, self.kind, entity_id)
