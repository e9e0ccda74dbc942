"""Entity kinds built on the generic repository."""

from cookshare.entities.books import BOOKS, BookRepository, BookView
from cookshare.entities.lists import LISTS, ListItemView, ListRepository, ListView
from cookshare.entities.planners import PLANNERS, MealView, PlannerRepository, PlannerView
from cookshare.entities.recipes import RECIPES, RecipeRepository, RecipeSectionView, RecipeView

__all__ = [
    "BOOKS",
    "LISTS",
    "PLANNERS",
    "RECIPES",
    "BookRepository",
    "BookView",
    "ListItemView",
    "ListRepository",
    "ListView",
    "MealView",
    "PlannerRepository",
    "PlannerView",
    "RecipeRepository",
    "RecipeSectionView",
    "RecipeView",
]
