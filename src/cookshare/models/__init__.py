"""SQLModel database models for cookshare."""

from cookshare.models.content import (
    HERO_DISPLAY_TYPE,
    Attachment,
    Content,
    ContentAttachment,
    ContentMember,
)
from cookshare.models.entities import (
    Book,
    BookRecipe,
    ListItem,
    Planner,
    PlannerMeal,
    Recipe,
    RecipeRating,
    RecipeSection,
    ShoppingList,
)
from cookshare.models.users import User

__all__ = [
    "HERO_DISPLAY_TYPE",
    "Attachment",
    "Book",
    "BookRecipe",
    "Content",
    "ContentAttachment",
    "ContentMember",
    "ListItem",
    "Planner",
    "PlannerMeal",
    "Recipe",
    "RecipeRating",
    "RecipeSection",
    "ShoppingList",
    "User",
]
