"""Composable ``select()`` modifiers shared by every entity repository.

Each modifier takes a query and returns a new one; none of them execute
anything.  The read-permission predicate here must agree with
``permissions.decide_access``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import and_, false, or_
from sqlalchemy.orm import aliased

from cookshare.models.content import (
    HERO_DISPLAY_TYPE,
    Attachment,
    Content,
    ContentAttachment,
    ContentMember,
)
from cookshare.models.users import User

from .status import AccessStatus, MemberStatus, normalize_statuses
from .types import Page

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import Select

T = TypeVar("T")


def join_membership(
    query: Select,
    *,
    user_id: str,
    id_column: Any,
    member: Any = ContentMember,
) -> Select:
    """Left-join *user_id*'s membership row for the entity in *id_column*."""
    return query.outerjoin(
        member,
        and_(member.content_id == id_column, member.user_id == user_id),
    )


def read_permission_clause(
    *,
    user_id: str,
    statuses: Iterable[AccessStatus | str] | AccessStatus | str,
    owner_column: Any = None,
    member_status_column: Any = None,
    extra_grants: Sequence[Any] = (),
) -> Any:
    """``WHERE`` clause granting access by ownership or membership status.

    A blacklisted row always denies, even for the owner.  *extra_grants*
    are further conditions OR-ed with the status grants (e.g. a public flag).
    """
    allowed = normalize_statuses(statuses)
    if owner_column is None:
        owner_column = Content.created_by
    if member_status_column is None:
        member_status_column = ContentMember.status

    grants: list[Any] = list(extra_grants)
    if AccessStatus.OWNER in allowed:
        grants.append(owner_column == user_id)
    member_codes = sorted(s.value for s in allowed if s is not AccessStatus.OWNER)
    if member_codes:
        grants.append(member_status_column.in_(member_codes))
    if not grants:
        return false()

    not_blacklisted = or_(
        member_status_column.is_(None),
        member_status_column != MemberStatus.BLACKLISTED.value,
    )
    return and_(not_blacklisted, or_(*grants))


def with_read_permissions(
    query: Select,
    *,
    user_id: str,
    id_column: Any,
    statuses: Iterable[AccessStatus | str] | AccessStatus | str,
    owner_column: Any = None,
    member: Any = None,
    extra_grants: Sequence[Any] = (),
) -> Select:
    """Restrict *query* to rows *user_id* may see with one of *statuses*.

    When *member* is ``None`` the membership row is joined here under a
    fresh alias; pass the alias already joined by the caller to reuse it.
    *owner_column* defaults to ``Content.created_by``, so the caller must
    have joined ``Content`` in that case.
    """
    if member is None:
        member = aliased(ContentMember)
        query = join_membership(query, user_id=user_id, id_column=id_column, member=member)
    return query.where(
        read_permission_clause(
            user_id=user_id,
            statuses=statuses,
            owner_column=owner_column,
            member_status_column=member.status,
            extra_grants=extra_grants,
        )
    )


def with_parent_permissions(
    query: Select,
    *,
    user_id: str,
    parent_id_column: Any,
    statuses: Iterable[AccessStatus | str] | AccessStatus | str,
) -> Select:
    """Gate child rows (list items, meals) by access to their parent entity."""
    parent = aliased(Content)
    query = query.join(parent, parent.content_id == parent_id_column)
    return with_read_permissions(
        query,
        user_id=user_id,
        id_column=parent_id_column,
        statuses=statuses,
        owner_column=parent.created_by,
    )


def with_content_author(query: Select, *, owner_column: Any = None) -> Select:
    """Add ``created_by`` and ``owner_first_name`` columns to *query*."""
    if owner_column is None:
        owner_column = Content.created_by
    author = aliased(User)
    return query.add_columns(
        owner_column.label("created_by"),
        author.first_name.label("owner_first_name"),
    ).outerjoin(author, author.user_id == owner_column)


def with_hero_attachment(query: Select, id_column: Any) -> Select:
    """Add ``hero_attachment_id`` and ``hero_attachment_uri`` columns."""
    link = aliased(ContentAttachment)
    attachment = aliased(Attachment)
    return (
        query.add_columns(
            attachment.attachment_id.label("hero_attachment_id"),
            attachment.uri.label("hero_attachment_uri"),
        )
        .outerjoin(
            link,
            and_(link.content_id == id_column, link.display_type == HERO_DISPLAY_TYPE),
        )
        .outerjoin(attachment, attachment.attachment_id == link.attachment_id)
    )


def with_pagination(query: Select, page: int, page_size: int) -> Select:
    """Fetch one extra row so ``paginate`` can tell whether more pages exist."""
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return query.limit(page_size + 1).offset((page - 1) * page_size)


def paginate(rows: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Split the look-ahead row off a ``with_pagination`` result."""
    return Page(
        items=list(rows[:page_size]),
        page=page,
        page_size=page_size,
        has_more=len(rows) > page_size,
    )
