"""Membership and access status codes.

``MemberStatus`` is what a membership row can hold.  ``AccessStatus`` is what
callers ask for and what views surface; it adds ``OWNER``, which is derived
from ``Content.created_by`` and never persisted.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class MemberStatus(str, Enum):
    """Persisted status of a membership row."""

    ADMINISTRATOR = "A"
    MEMBER = "M"
    PENDING = "P"
    BLACKLISTED = "B"


class AccessStatus(str, Enum):
    """Status a user holds on an entity, including the virtual owner status."""

    OWNER = "O"
    ADMINISTRATOR = "A"
    MEMBER = "M"
    PENDING = "P"

    @property
    def member_status(self) -> MemberStatus | None:
        """The persisted counterpart, or ``None`` for ``OWNER``."""
        if self is AccessStatus.OWNER:
            return None
        return MemberStatus(self.value)


ACCEPTED_STATUSES: frozenset[MemberStatus] = frozenset(
    {MemberStatus.ADMINISTRATOR, MemberStatus.MEMBER}
)
"""Statuses an invitee holds once they have accepted."""

READ_STATUSES: frozenset[AccessStatus] = frozenset(
    {AccessStatus.OWNER, AccessStatus.ADMINISTRATOR, AccessStatus.MEMBER}
)
"""Default statuses for reading entities by id."""

LIST_STATUSES: frozenset[AccessStatus] = READ_STATUSES | {AccessStatus.PENDING}
"""Default statuses for listings, so invitees see their pending invitations."""


def parse_member_status(value: str | MemberStatus | None) -> MemberStatus | None:
    """Parse a stored or requested member status code.

    Returns ``None`` for ``None`` (a NULL column from an outer join).  Raises
    ``ValueError`` for unknown codes, including ``"O"``.
    """
    if value is None or isinstance(value, MemberStatus):
        return value
    try:
        return MemberStatus(value)
    except ValueError:
        msg = f"Invalid member status: {value!r}. Must be one of A, M, P, B."
        raise ValueError(msg) from None


def normalize_statuses(
    statuses: AccessStatus | str | Iterable[AccessStatus | str],
) -> frozenset[AccessStatus]:
    """Turn a single status or an iterable of statuses into a validated set.

    The set must be non-empty and may not contain ``"B"``: blacklisting is
    never a way to be granted access.
    """
    if isinstance(statuses, (str, AccessStatus)):
        statuses = [statuses]

    result: set[AccessStatus] = set()
    for status in statuses:
        if status == MemberStatus.BLACKLISTED.value:
            raise ValueError("Blacklisted is never an allowed status")
        try:
            result.add(AccessStatus(status))
        except ValueError:
            msg = f"Invalid access status: {status!r}. Must be one of O, A, M, P."
            raise ValueError(msg) from None

    if not result:
        raise ValueError("At least one allowed status is required")
    return frozenset(result)


def resolve_access_status(
    user_id: str,
    created_by: str | None,
    member_status: str | MemberStatus | None,
) -> AccessStatus | None:
    """Status to surface for *user_id*: ``OWNER`` if they created the entity."""
    if created_by is not None and created_by == user_id:
        return AccessStatus.OWNER
    parsed = parse_member_status(member_status)
    if parsed is None or parsed is MemberStatus.BLACKLISTED:
        return None
    return AccessStatus(parsed.value)
