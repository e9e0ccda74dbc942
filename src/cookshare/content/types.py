"""Result and request types: EntityView, MemberInfo, MemberRequest, etc."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from .status import AccessStatus, MemberStatus, parse_member_status

if TYPE_CHECKING:
    from datetime import datetime

T = TypeVar("T")


@dataclass
class OwnerInfo:
    """The user who created an entity."""

    user_id: str
    first_name: str | None = None


@dataclass
class MemberInfo:
    """A membership row joined to its user."""

    user_id: str
    status: MemberStatus
    first_name: str | None = None
    last_name: str | None = None


@dataclass
class MemberRequest:
    """A membership change requested by a caller.

    ``status=None`` means "add as pending, leave an existing row alone".
    """

    user_id: str
    status: MemberStatus | None = None

    def __post_init__(self) -> None:
        self.status = parse_member_status(self.status)


@dataclass
class HeroImage:
    """Cover image attached to an entity."""

    attachment_id: str
    uri: str


@dataclass
class EntityView:
    """Fields shared by every shareable entity as seen by one user."""

    id: str
    name: str
    description: str | None = None
    owner: OwnerInfo | None = None
    status: AccessStatus | None = None
    members: list[MemberInfo] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Page(Generic[T]):
    """One page of a listing."""

    items: list[T]
    page: int
    page_size: int
    has_more: bool = False
