"""Tests for database models — defaults, keys and delete behaviour."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from cookshare.models import (
    Book,
    Content,
    ContentAttachment,
    ContentMember,
    ListItem,
    PlannerMeal,
    Recipe,
    RecipeRating,
    User,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def _ondelete(model, column: str) -> str | None:
    [fk] = model.__table__.columns[column].foreign_keys
    return fk.ondelete


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_content_ids_are_unique(self):
        assert Content().content_id != Content().content_id

    def test_content_timestamps(self):
        content = Content(created_by="alice")
        assert content.created_at.tzinfo is not None
        assert content.updated_at.tzinfo is not None

    def test_member_defaults_to_pending(self):
        assert ContentMember(content_id="c", user_id="u").status == "P"

    def test_recipe_defaults(self):
        recipe = Recipe(recipe_id="r", name="Soup")
        assert recipe.public is False
        assert recipe.times_cooked == 0

    def test_meal_defaults_to_dinner(self):
        assert PlannerMeal(meal_id="m").course == "dinner"

    def test_attachment_link_is_hero(self):
        assert ContentAttachment(content_id="c", attachment_id="a").display_type == "hero"


# ---------------------------------------------------------------------------
# Foreign keys
# ---------------------------------------------------------------------------


class TestForeignKeys:
    @pytest.mark.parametrize(
        ("model", "column", "ondelete"),
        [
            (Content, "created_by", "SET NULL"),
            (ContentMember, "content_id", "CASCADE"),
            (ContentMember, "user_id", "CASCADE"),
            (Book, "book_id", "CASCADE"),
            (ListItem, "list_id", "CASCADE"),
            (PlannerMeal, "recipe_id", "SET NULL"),
            (RecipeRating, "rater_id", "CASCADE"),
        ],
    )
    def test_ondelete(self, model, column: str, ondelete: str):
        assert _ondelete(model, column) == ondelete

    async def test_deleting_user_orphans_content(self, async_session: AsyncSession, users):
        content = Content(created_by="dave")
        async_session.add(content)
        await async_session.flush()
        async_session.add(ContentMember(content_id=content.content_id, user_id="bob", status="M"))
        await async_session.commit()

        await async_session.execute(delete(User).where(User.user_id == "dave"))
        await async_session.execute(delete(User).where(User.user_id == "bob"))
        await async_session.commit()
        async_session.expunge_all()

        owner = await async_session.execute(
            select(Content.created_by).where(Content.content_id == content.content_id)
        )
        members = await async_session.execute(
            select(ContentMember).where(ContentMember.content_id == content.content_id)
        )
        assert owner.scalar_one() is None
        assert members.first() is None

    async def test_unique_email(self, async_session: AsyncSession, users):
        async_session.add(User(user_id="alice2", email="alice@example.com"))
        with pytest.raises(IntegrityError):
            await async_session.flush()
