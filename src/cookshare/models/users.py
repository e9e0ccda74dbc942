"""User profile model.

Only the columns the membership engine joins against (names for owner and
member views) are modelled here; authentication lives elsewhere.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class UserBase(SQLModel):
    """Base fields for a user profile. Subclass with ``table=True`` for a concrete table."""

    user_id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    email: str = Field(index=True, unique=True)
    first_name: str = Field(default="")
    last_name: str = Field(default="")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class User(UserBase, table=True):
    """Default user table — ``cookshare_users``."""

    __tablename__ = "cookshare_users"
