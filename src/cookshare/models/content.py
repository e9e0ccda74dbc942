"""Content ledger, membership and attachment models.

``Content`` is the root record every shareable entity attaches to.  Entity
tables reuse ``content_id`` as their own primary key, so deleting a content
row cascades to the entity row and to every membership row for it.

Owner is not a membership row: it is ``Content.created_by``.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CONTENT_TABLE = "cookshare_content"
USER_TABLE = "cookshare_users"

HERO_DISPLAY_TYPE = "hero"
"""``ContentAttachment.display_type`` for an entity's cover image."""


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ContentBase(SQLModel):
    """Base fields for a content record. Subclass with ``table=True`` for a concrete table."""

    content_id: str = Field(default_factory=_new_id, primary_key=True)
    created_by: str | None = Field(
        default=None,
        foreign_key=f"{USER_TABLE}.user_id",
        ondelete="SET NULL",
        index=True,
    )
    created_at: datetime = Field(
        default_factory=_now,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    updated_at: datetime = Field(
        default_factory=_now,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class Content(ContentBase, table=True):
    """Default content table — ``cookshare_content``."""

    __tablename__ = CONTENT_TABLE


class ContentMemberBase(SQLModel):
    """One user's collaboration status on one content record.

    ``status`` holds a persisted ``MemberStatus`` code (A, M, P or B).
    """

    content_id: str = Field(
        primary_key=True,
        foreign_key=f"{CONTENT_TABLE}.content_id",
        ondelete="CASCADE",
    )
    user_id: str = Field(
        primary_key=True,
        foreign_key=f"{USER_TABLE}.user_id",
        ondelete="CASCADE",
        index=True,
    )
    status: str = Field(default="P", max_length=1)


class ContentMember(ContentMemberBase, table=True):
    """Default membership table — ``cookshare_content_members``."""

    __tablename__ = "cookshare_content_members"


class AttachmentBase(SQLModel):
    """An uploaded file, referenced by URI."""

    attachment_id: str = Field(default_factory=_new_id, primary_key=True)
    uri: str
    created_by: str | None = Field(
        default=None,
        foreign_key=f"{USER_TABLE}.user_id",
        ondelete="SET NULL",
    )
    created_at: datetime = Field(
        default_factory=_now,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class Attachment(AttachmentBase, table=True):
    """Default attachment table — ``cookshare_attachments``."""

    __tablename__ = "cookshare_attachments"


class ContentAttachmentBase(SQLModel):
    """Links an attachment to a content record with a display role."""

    content_id: str = Field(
        primary_key=True,
        foreign_key=f"{CONTENT_TABLE}.content_id",
        ondelete="CASCADE",
    )
    attachment_id: str = Field(
        primary_key=True,
        foreign_key="cookshare_attachments.attachment_id",
        ondelete="CASCADE",
    )
    display_type: str = Field(default=HERO_DISPLAY_TYPE)
    display_id: str | None = Field(default=None)
    display_order: int | None = Field(default=None)


class ContentAttachment(ContentAttachmentBase, table=True):
    """Default content attachment table — ``cookshare_content_attachments``."""

    __tablename__ = "cookshare_content_attachments"
