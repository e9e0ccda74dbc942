"""Meal planners and the meals scheduled on them.

Meals are content rows of their own; access to a meal follows access to its
planner.  A meal may carry a hero image.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update

from cookshare.content.attachments import AttachmentStore, hero_from_row
from cookshare.content.descriptor import EntityDescriptor
from cookshare.content.dialect import insert_rows
from cookshare.content.modifiers import with_hero_attachment, with_parent_permissions
from cookshare.content.repository import EntityRepository
from cookshare.content.types import EntityView, HeroImage
from cookshare.models.content import Content
from cookshare.models.entities import Planner, PlannerMeal

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

PLANNERS: EntityDescriptor[Planner] = EntityDescriptor(
    kind="planner",
    model=Planner,
    id_field="planner_id",
    collection="planners",
    columns=("name", "description", "color"),
)

MEALS: EntityDescriptor[PlannerMeal] = EntityDescriptor(
    kind="meal",
    model=PlannerMeal,
    id_field="meal_id",
    collection="meals",
    columns=(
        "planner_id",
        "year",
        "month",
        "day_of_month",
        "course",
        "description",
        "source",
        "sequence",
        "recipe_id",
        "notes",
    ),
)


@dataclass
class PlannerView(EntityView):
    color: str | None = None


@dataclass
class MealView:
    id: str
    planner_id: str | None = None
    year: int | None = None
    month: int | None = None
    day_of_month: int | None = None
    course: str = "dinner"
    description: str | None = None
    source: str | None = None
    sequence: int | None = None
    recipe_id: str | None = None
    notes: str | None = None
    hero: HeroImage | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PlannerRepository(EntityRepository[Planner, PlannerView]):
    """Planners plus meal CRUD.  Deleting a planner deletes its meals' content."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(PLANNERS, PlannerView, **kwargs)
        self._attachments = AttachmentStore(self._dialect)

    async def _before_delete(self, session: AsyncSession, ids: Sequence[str]) -> None:
        result = await session.execute(
            select(PlannerMeal.meal_id).where(
                PlannerMeal.planner_id.in_(list(ids))  # type: ignore[union-attr]
            )
        )
        meal_ids = list(result.scalars().all())
        if meal_ids:
            await self._ledger.delete(session, meal_ids)

    # ------------------------------------------------------------------
    # Meals
    # ------------------------------------------------------------------

    @staticmethod
    def _meal_query() -> Select:
        query = (
            select(
                *PlannerMeal.__table__.columns,  # type: ignore[attr-defined]
                Content.created_by,
                Content.created_at,
                Content.updated_at,
            )
            .select_from(PlannerMeal)
            .join(Content, Content.content_id == PlannerMeal.meal_id)  # type: ignore[arg-type]
        )
        return with_hero_attachment(query, PlannerMeal.meal_id)

    @staticmethod
    def _to_meal(row: Mapping[str, Any]) -> MealView:
        return MealView(
            id=row["meal_id"],
            hero=hero_from_row(row),
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            **{c: row[c] for c in MEALS.columns},
        )

    async def _meals_by_id(
        self, session: AsyncSession, meal_ids: Sequence[str]
    ) -> list[MealView]:
        if not meal_ids:
            return []
        query = self._meal_query().where(
            PlannerMeal.meal_id.in_(list(meal_ids))  # type: ignore[attr-defined]
        )
        rows = (await session.execute(query)).mappings().all()
        by_id = {row["meal_id"]: self._to_meal(row) for row in rows}
        return [by_id[i] for i in meal_ids if i in by_id]

    async def create_meals(
        self,
        session: AsyncSession,
        user_id: str,
        meals: Sequence[Mapping[str, Any]],
    ) -> list[MealView]:
        """Schedule meals; a ``hero_image`` on a meal becomes its hero."""
        if not meals:
            return []
        prepared = [MEALS.row("", meal) for meal in meals]
        ids = await self._ledger.create(session, user_id, len(meals))
        await insert_rows(
            session,
            PlannerMeal,
            [{**row, "meal_id": meal_id} for row, meal_id in zip(prepared, ids, strict=True)],
        )
        heroes = {
            meal_id: meal["hero_image"]
            for meal_id, meal in zip(ids, meals, strict=True)
            if meal.get("hero_image") is not None
        }
        await self._attachments.set_heroes(session, user_id, heroes)

        planner_ids = {row["planner_id"] for row in prepared if row["planner_id"]}
        await self._ledger.touch(session, sorted(planner_ids))
        logger.debug("Scheduled %d meals", len(ids))
        return await self._meals_by_id(session, ids)

    async def update_meals(
        self,
        session: AsyncSession,
        meals: Sequence[Mapping[str, Any]],
        *,
        user_id: str | None = None,
    ) -> list[MealView]:
        """Patch meals.  ``hero_image`` replaces the hero; ``None`` removes it."""
        ids: list[str] = []
        heroes: dict[str, Any] = {}
        for meal in meals:
            meal_id = MEALS.entity_id(meal)
            ids.append(meal_id)
            values = MEALS.patch(meal)
            if values:
                await session.execute(
                    update(PlannerMeal)
                    .where(PlannerMeal.meal_id == meal_id)  # type: ignore[arg-type]
                    .values(**values)
                )
            if "hero_image" in meal:
                heroes[meal_id] = meal["hero_image"]
        await self._attachments.set_heroes(session, user_id, heroes)
        await self._ledger.touch(session, ids)
        return await self._meals_by_id(session, ids)

    async def delete_meals(self, session: AsyncSession, meal_ids: Sequence[str]) -> int:
        return await self._ledger.delete(session, meal_ids, within=PlannerMeal.meal_id)

    async def read_meals(
        self,
        session: AsyncSession,
        user_id: str,
        planner_id: str,
        *,
        year: int | None = None,
        month: int | None = None,
    ) -> list[MealView]:
        """Meals on a planner the user may read, in calendar order."""
        query = self._meal_query().where(
            PlannerMeal.planner_id == planner_id  # type: ignore[arg-type]
        )
        if year is not None:
            query = query.where(PlannerMeal.year == year)  # type: ignore[arg-type]
        if month is not None:
            query = query.where(PlannerMeal.month == month)  # type: ignore[arg-type]
        query = with_parent_permissions(
            query,
            user_id=user_id,
            parent_id_column=PlannerMeal.planner_id,
            statuses=self.read_statuses,
        ).order_by(
            PlannerMeal.year,
            PlannerMeal.month,
            PlannerMeal.day_of_month,
            PlannerMeal.sequence,
            PlannerMeal.meal_id,
        )
        rows = (await session.execute(query)).mappings().all()
        return [self._to_meal(row) for row in rows]
