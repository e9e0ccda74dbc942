"""Shareable entity models and their sub-resources.

Every entity's primary key is also a foreign key to
``cookshare_content.content_id`` with ``ON DELETE CASCADE``.
"""

from __future__ import annotations

import uuid

from sqlmodel import Field, SQLModel

from .content import CONTENT_TABLE, USER_TABLE

_CONTENT_ID = f"{CONTENT_TABLE}.content_id"

# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


class BookBase(SQLModel):
    book_id: str = Field(primary_key=True, foreign_key=_CONTENT_ID, ondelete="CASCADE")
    name: str
    description: str | None = Field(default=None)
    color: str | None = Field(default=None)
    icon: str | None = Field(default=None)


class Book(BookBase, table=True):
    """Recipe book — ``cookshare_books``."""

    __tablename__ = "cookshare_books"


class BookRecipe(SQLModel, table=True):
    """A recipe filed in a book."""

    __tablename__ = "cookshare_book_recipes"

    book_id: str = Field(
        primary_key=True, foreign_key="cookshare_books.book_id", ondelete="CASCADE"
    )
    recipe_id: str = Field(
        primary_key=True, foreign_key="cookshare_recipes.recipe_id", ondelete="CASCADE"
    )


# ---------------------------------------------------------------------------
# Shopping lists
# ---------------------------------------------------------------------------


class ShoppingListBase(SQLModel):
    list_id: str = Field(primary_key=True, foreign_key=_CONTENT_ID, ondelete="CASCADE")
    name: str
    description: str | None = Field(default=None)
    color: str | None = Field(default=None)
    icon: str | None = Field(default=None)


class ShoppingList(ShoppingListBase, table=True):
    """Shopping list — ``cookshare_lists``."""

    __tablename__ = "cookshare_lists"


class ListItem(SQLModel, table=True):
    """A line on a shopping list.  Items are content records of their own."""

    __tablename__ = "cookshare_list_items"

    item_id: str = Field(primary_key=True, foreign_key=_CONTENT_ID, ondelete="CASCADE")
    list_id: str = Field(foreign_key="cookshare_lists.list_id", ondelete="CASCADE", index=True)
    name: str
    completed: bool = Field(default=False)
    ingredient_id: str | None = Field(default=None)
    unit: str | None = Field(default=None)
    amount: float | None = Field(default=None)
    notes: str | None = Field(default=None)


# ---------------------------------------------------------------------------
# Planners
# ---------------------------------------------------------------------------


class PlannerBase(SQLModel):
    planner_id: str = Field(primary_key=True, foreign_key=_CONTENT_ID, ondelete="CASCADE")
    name: str
    description: str | None = Field(default=None)
    color: str | None = Field(default=None)


class Planner(PlannerBase, table=True):
    """Meal planner — ``cookshare_planners``."""

    __tablename__ = "cookshare_planners"


class PlannerMeal(SQLModel, table=True):
    """A meal scheduled on a planner day.  Meals are content records of their own."""

    __tablename__ = "cookshare_planner_meals"

    meal_id: str = Field(primary_key=True, foreign_key=_CONTENT_ID, ondelete="CASCADE")
    planner_id: str | None = Field(
        default=None,
        foreign_key="cookshare_planners.planner_id",
        ondelete="CASCADE",
        index=True,
    )
    year: int | None = Field(default=None)
    month: int | None = Field(default=None)
    day_of_month: int | None = Field(default=None)
    course: str = Field(default="dinner")
    description: str | None = Field(default=None)
    source: str | None = Field(default=None)
    sequence: int | None = Field(default=None)
    recipe_id: str | None = Field(
        default=None,
        foreign_key="cookshare_recipes.recipe_id",
        ondelete="SET NULL",
    )
    notes: str | None = Field(default=None)


# ---------------------------------------------------------------------------
# Recipes
# ---------------------------------------------------------------------------


class RecipeBase(SQLModel):
    recipe_id: str = Field(primary_key=True, foreign_key=_CONTENT_ID, ondelete="CASCADE")
    name: str
    source: str | None = Field(default=None)
    summary: str | None = Field(default=None)
    tips: str | None = Field(default=None)
    servings: int | None = Field(default=None)
    prep_time: int | None = Field(default=None)
    cook_time: int | None = Field(default=None)
    public: bool = Field(default=False)
    times_cooked: int = Field(default=0)


class Recipe(RecipeBase, table=True):
    """Recipe — ``cookshare_recipes``."""

    __tablename__ = "cookshare_recipes"


class RecipeSection(SQLModel, table=True):
    """An ordered, named section of a recipe (e.g. "For the sauce")."""

    __tablename__ = "cookshare_recipe_sections"

    section_id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    recipe_id: str = Field(
        foreign_key="cookshare_recipes.recipe_id", ondelete="CASCADE", index=True
    )
    position: int = Field(default=0)
    name: str | None = Field(default=None)
    description: str | None = Field(default=None)


class RecipeRating(SQLModel, table=True):
    """One user's rating of a recipe."""

    __tablename__ = "cookshare_recipe_ratings"

    recipe_id: str = Field(
        primary_key=True, foreign_key="cookshare_recipes.recipe_id", ondelete="CASCADE"
    )
    rater_id: str = Field(
        primary_key=True, foreign_key=f"{USER_TABLE}.user_id", ondelete="CASCADE"
    )
    rating: int
