"""Tests for RecipeRepository — public visibility, ratings, sections, paging."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from cookshare.content.status import AccessStatus
from cookshare.content.types import HeroImage, MemberRequest
from cookshare.entities.recipes import RecipeRepository, RecipeView

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def _recipe(
    recipes: RecipeRepository, session: AsyncSession, owner: str = "alice", **fields
) -> RecipeView:
    fields.setdefault("name", "Pancakes")
    [recipe] = await recipes.create(session, owner, [fields])
    return recipe


class TestCreate:
    async def test_defaults(self, recipes: RecipeRepository, async_session: AsyncSession, users):
        recipe = await _recipe(recipes, async_session, servings=4, prep_time=10)
        assert recipe.servings == 4
        assert recipe.prep_time == 10
        assert recipe.public is False
        assert recipe.times_cooked == 0
        assert recipe.rating_average is None
        assert recipe.rating_personal is None
        assert recipe.hero is None
        assert recipe.status is AccessStatus.OWNER

    async def test_with_hero_and_sections(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(
            recipes,
            async_session,
            hero_image=HeroImage("img-1", "pancakes.jpg"),
            sections=[{"name": "Batter"}, {"name": "Topping", "description": "Berries"}],
        )
        assert recipe.hero == HeroImage("img-1", "pancakes.jpg")
        sections = (await recipes.read_sections(async_session, [recipe.id]))[recipe.id]
        assert [(s.position, s.name) for s in sections] == [(0, "Batter"), (1, "Topping")]


class TestVisibility:
    async def test_public_readable_by_anyone(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(recipes, async_session, public=True)
        [seen] = await recipes.read(async_session, "dave", [recipe.id])
        assert seen.id == recipe.id
        assert seen.status is None

    async def test_private_hidden(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(recipes, async_session)
        assert await recipes.read(async_session, "dave", [recipe.id]) == []

    async def test_blacklist_beats_public(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(
            recipes, async_session, public=True, members=[MemberRequest("bob", "B")]
        )
        assert await recipes.read(async_session, "bob", [recipe.id]) == []
        assert [r.id for r in await recipes.read_all(async_session, "carol")] == [recipe.id]
        assert await recipes.read_all(async_session, "bob") == []

    async def test_verify_defaults_to_owner(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(
            recipes, async_session, public=True, members=[MemberRequest("bob", "A")]
        )
        assert await recipes.verify_permissions(async_session, "alice", [recipe.id]) == {
            recipe.id: True
        }
        assert await recipes.verify_permissions(async_session, "bob", [recipe.id]) == {
            recipe.id: False
        }
        assert await recipes.has_permission(async_session, "bob", recipe.id, {"A"})

    async def test_public_grant_is_read_only(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(recipes, async_session, public=True)
        statuses = {"O", "A", "M"}
        visible = await recipes.read(async_session, "bob", [recipe.id], statuses=statuses)
        access = await recipes.verify_permissions(async_session, "bob", [recipe.id], statuses)
        assert [r.id for r in visible] == [recipe.id]
        assert access == {recipe.id: False}

    async def test_private_recipe_read_agrees_with_verify(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(recipes, async_session, members=[MemberRequest("bob", "M")])
        statuses = {"O", "A", "M"}
        for user_id, expected in (("alice", True), ("bob", True), ("carol", False)):
            visible = await recipes.read(async_session, user_id, [recipe.id], statuses=statuses)
            access = await recipes.verify_permissions(
                async_session, user_id, [recipe.id], statuses
            )
            assert (visible != []) is expected
            assert access == {recipe.id: expected}


class TestRatings:
    async def test_average_and_personal(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(recipes, async_session, public=True)
        await recipes.rate(async_session, "alice", recipe.id, 5)
        await recipes.rate(async_session, "bob", recipe.id, 2)
        await recipes.rate(async_session, "bob", recipe.id, 4)

        [as_alice] = await recipes.read(async_session, "alice", [recipe.id])
        [as_carol] = await recipes.read(async_session, "carol", [recipe.id])
        assert as_alice.rating_average == pytest.approx(4.5)
        assert as_alice.rating_personal == 5
        assert as_carol.rating_average == pytest.approx(4.5)
        assert as_carol.rating_personal is None

    @pytest.mark.parametrize("rating", [0, 6])
    async def test_out_of_range(
        self, recipes: RecipeRepository, async_session: AsyncSession, users, rating: int
    ):
        recipe = await _recipe(recipes, async_session)
        with pytest.raises(ValueError, match="between 1 and 5"):
            await recipes.rate(async_session, "alice", recipe.id, rating)

    async def test_mark_cooked(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(recipes, async_session)
        await recipes.mark_cooked(async_session, [recipe.id])
        await recipes.mark_cooked(async_session, [recipe.id])
        [seen] = await recipes.read(async_session, "alice", [recipe.id])
        assert seen.times_cooked == 2


class TestSections:
    async def test_save_replaces(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(recipes, async_session, sections=[{"name": "Old"}])
        sections = await recipes.save_sections(
            async_session, recipe.id, [{"name": "Dough"}, {"name": "Filling"}]
        )
        assert [s.name for s in sections] == ["Dough", "Filling"]
        assert [s.position for s in sections] == [0, 1]

    async def test_update_without_sections_keeps_them(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        recipe = await _recipe(recipes, async_session, sections=[{"name": "Batter"}])
        await recipes.update(async_session, "alice", [{"id": recipe.id, "tips": "Rest it"}])
        sections = (await recipes.read_sections(async_session, [recipe.id]))[recipe.id]
        assert [s.name for s in sections] == ["Batter"]

    async def test_read_sections_every_id_is_a_key(
        self, recipes: RecipeRepository, async_session: AsyncSession
    ):
        assert await recipes.read_sections(async_session, ["missing"]) == {"missing": []}


class TestReadPage:
    async def test_pages_in_name_order(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        await recipes.create(
            async_session,
            "alice",
            [{"name": name} for name in ("Crepes", "Bagels", "Apple pie", "Doughnuts")],
        )
        first = await recipes.read_page(async_session, "alice", page=1, page_size=3)
        second = await recipes.read_page(async_session, "alice", page=2, page_size=3)
        assert [r.name for r in first.items] == ["Apple pie", "Bagels", "Crepes"]
        assert first.has_more is True
        assert [r.name for r in second.items] == ["Doughnuts"]
        assert second.has_more is False

    async def test_search_is_case_insensitive(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        await recipes.create(
            async_session,
            "alice",
            [{"name": "Apple Pie"}, {"name": "Pumpkin pie"}, {"name": "Stew"}],
        )
        page = await recipes.read_page(async_session, "alice", search="PIE")
        assert [r.name for r in page.items] == ["Apple Pie", "Pumpkin pie"]

    async def test_search_escapes_wildcards(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        await recipes.create(async_session, "alice", [{"name": "100% rye"}, {"name": "Rye"}])
        page = await recipes.read_page(async_session, "alice", search="0%")
        assert [r.name for r in page.items] == ["100% rye"]

    async def test_includes_public_and_owner_filter(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        await _recipe(recipes, async_session, owner="alice", name="Shared", public=True)
        await _recipe(recipes, async_session, owner="alice", name="Secret")
        await _recipe(recipes, async_session, owner="bob", name="Mine")

        page = await recipes.read_page(async_session, "bob")
        assert [r.name for r in page.items] == ["Mine", "Shared"]
        page = await recipes.read_page(async_session, "bob", owner="alice")
        assert [r.name for r in page.items] == ["Shared"]

    async def test_invalid_page(
        self, recipes: RecipeRepository, async_session: AsyncSession, users
    ):
        with pytest.raises(ValueError):
            await recipes.read_page(async_session, "alice", page=0)
