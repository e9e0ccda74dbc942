"""Recipes: ratings, ordered sections, hero photo and public visibility."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.orm import aliased

from cookshare.content.attachments import AttachmentStore, hero_from_row
from cookshare.content.descriptor import EntityDescriptor
from cookshare.content.dialect import insert_rows, upsert_rows
from cookshare.content.modifiers import (
    paginate,
    with_hero_attachment,
    with_pagination,
    with_read_permissions,
)
from cookshare.content.repository import EntityRepository
from cookshare.content.status import AccessStatus
from cookshare.content.types import EntityView, HeroImage, Page
from cookshare.models.content import Content
from cookshare.models.entities import Recipe, RecipeRating, RecipeSection

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

RECIPES: EntityDescriptor[Recipe] = EntityDescriptor(
    kind="recipe",
    model=Recipe,
    id_field="recipe_id",
    collection="recipes",
    columns=(
        "name",
        "source",
        "summary",
        "tips",
        "servings",
        "prep_time",
        "cook_time",
        "public",
        "times_cooked",
    ),
)


@dataclass
class RecipeView(EntityView):
    source: str | None = None
    summary: str | None = None
    tips: str | None = None
    servings: int | None = None
    prep_time: int | None = None
    cook_time: int | None = None
    public: bool = False
    times_cooked: int = 0
    rating_average: float | None = None
    rating_personal: int | None = None
    hero: HeroImage | None = None


@dataclass
class RecipeSectionView:
    id: str
    recipe_id: str
    position: int
    name: str | None = None
    description: str | None = None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RecipeRepository(EntityRepository[Recipe, RecipeView]):
    """Recipes.  Public recipes are readable by everyone not blacklisted.

    The public grant applies to reads only.  ``verify_permissions`` checks
    ownership and membership alone, so for a public recipe ``read`` and
    ``verify_permissions`` can disagree on the same status set: a stranger
    reads it but is not granted it.  Write paths gate on
    ``verify_permissions``, which keeps public recipes read-only.
    """

    verify_statuses: ClassVar[frozenset[AccessStatus]] = frozenset({AccessStatus.OWNER})

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(RECIPES, RecipeView, **kwargs)
        self._attachments = AttachmentStore(self._dialect)

    def _apply_read_permissions(
        self,
        query: Select,
        *,
        user_id: str,
        member: Any,
        statuses: Iterable[AccessStatus | str] | AccessStatus | str,
    ) -> Select:
        return with_read_permissions(
            query,
            user_id=user_id,
            id_column=Recipe.recipe_id,
            statuses=statuses,
            member=member,
            extra_grants=(Recipe.public.is_(True),),  # type: ignore[attr-defined]
        )

    def _extend_query(self, query: Select, user_id: str) -> Select:
        average = (
            select(func.avg(RecipeRating.rating))
            .where(RecipeRating.recipe_id == Recipe.recipe_id)  # type: ignore[arg-type]
            .correlate(Recipe)
            .scalar_subquery()
        )
        personal = aliased(RecipeRating)
        query = query.add_columns(
            average.label("rating_average"),
            personal.rating.label("rating_personal"),
        ).outerjoin(
            personal,
            and_(personal.recipe_id == Recipe.recipe_id, personal.rater_id == user_id),
        )
        return with_hero_attachment(query, Recipe.recipe_id)

    def _view_extras(self, row: Mapping[str, Any], user_id: str) -> dict[str, Any]:
        average = row["rating_average"]
        return {
            "rating_average": float(average) if average is not None else None,
            "rating_personal": row["rating_personal"],
            "hero": hero_from_row(row),
        }

    async def _after_create(
        self,
        session: AsyncSession,
        user_id: str,
        ids: list[str],
        items: Sequence[Mapping[str, Any]],
    ) -> None:
        await self._save_extras(session, user_id, ids, items)

    async def _after_update(
        self,
        session: AsyncSession,
        user_id: str,
        ids: list[str],
        items: Sequence[Mapping[str, Any]],
    ) -> None:
        await self._save_extras(session, user_id, ids, items)

    async def _save_extras(
        self,
        session: AsyncSession,
        user_id: str,
        ids: list[str],
        items: Sequence[Mapping[str, Any]],
    ) -> None:
        heroes = {
            recipe_id: item["hero_image"]
            for recipe_id, item in zip(ids, items, strict=True)
            if "hero_image" in item
        }
        await self._attachments.set_heroes(session, user_id, heroes)
        for recipe_id, item in zip(ids, items, strict=True):
            if "sections" in item:
                await self.save_sections(session, recipe_id, item["sections"])

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def read_page(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        owner: str | None = None,
        statuses: Iterable[AccessStatus | str] | AccessStatus | str | None = None,
    ) -> Page[RecipeView]:
        """One page of readable recipes, optionally filtered by name."""
        query = self._base_query(user_id, self.list_statuses if statuses is None else statuses)
        if owner is not None:
            query = query.where(Content.created_by == owner)  # type: ignore[arg-type]
        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.where(
                Recipe.name.ilike(pattern, escape="\\")  # type: ignore[attr-defined]
            )
        query = with_pagination(
            query.order_by(Recipe.name, Recipe.recipe_id), page, page_size
        )
        return paginate(await self._fetch(session, user_id, query), page, page_size)

    # ------------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------------

    async def rate(
        self, session: AsyncSession, user_id: str, recipe_id: str, rating: int
    ) -> None:
        """Record or replace *user_id*'s rating of a recipe."""
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"rating must be between {MIN_RATING} and {MAX_RATING}")
        await upsert_rows(
            session,
            self._dialect,
            RecipeRating,
            [{"recipe_id": recipe_id, "rater_id": user_id, "rating": rating}],
            ["recipe_id", "rater_id"],
        )

    async def mark_cooked(self, session: AsyncSession, recipe_ids: Sequence[str]) -> None:
        """Increment ``times_cooked`` on each recipe."""
        if not recipe_ids:
            return
        await session.execute(
            update(Recipe)
            .where(Recipe.recipe_id.in_(list(recipe_ids)))  # type: ignore[attr-defined]
            .values(times_cooked=Recipe.times_cooked + 1)
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    async def save_sections(
        self,
        session: AsyncSession,
        recipe_id: str,
        sections: Sequence[Mapping[str, Any]],
    ) -> list[RecipeSectionView]:
        """Replace a recipe's sections; list order becomes ``position``."""
        await session.execute(
            delete(RecipeSection).where(
                RecipeSection.recipe_id == recipe_id  # type: ignore[arg-type]
            )
        )
        rows = [
            RecipeSection(
                recipe_id=recipe_id,
                position=position,
                name=section.get("name"),
                description=section.get("description"),
            ).model_dump()
            for position, section in enumerate(sections)
        ]
        await insert_rows(session, RecipeSection, rows)
        return (await self.read_sections(session, [recipe_id]))[recipe_id]

    async def read_sections(
        self, session: AsyncSession, recipe_ids: Sequence[str]
    ) -> dict[str, list[RecipeSectionView]]:
        sections: dict[str, list[RecipeSectionView]] = {rid: [] for rid in recipe_ids}
        if not recipe_ids:
            return sections
        result = await session.execute(
            select(RecipeSection)
            .where(RecipeSection.recipe_id.in_(list(recipe_ids)))  # type: ignore[attr-defined]
            .order_by(RecipeSection.recipe_id, RecipeSection.position)
        )
        for section in result.scalars():
            sections[section.recipe_id].append(
                RecipeSectionView(
                    id=section.section_id,
                    recipe_id=section.recipe_id,
                    position=section.position,
                    name=section.name,
                    description=section.description,
                )
            )
        return sections
