"""cookshare: shared recipe books, lists, planners and recipes.

Ownership, membership and permission checks live in ``cookshare.content``;
the entity kinds are thin specializations in ``cookshare.entities``.
"""

__version__ = "0.0.1"

from cookshare._cookshare_async import CookshareAsync
from cookshare.config import DatabaseConfig
from cookshare.content.exceptions import (
    ConstraintViolationError,
    CookshareError,
    ForeignKeyViolationError,
    InvalidOperationError,
    NotFoundError,
    UniqueViolationError,
)
from cookshare.content.status import AccessStatus, MemberStatus
from cookshare.content.types import (
    EntityView,
    HeroImage,
    MemberInfo,
    MemberRequest,
    OwnerInfo,
    Page,
)
from cookshare.entities.books import BookView
from cookshare.entities.lists import ListItemView, ListView
from cookshare.entities.planners import MealView, PlannerView
from cookshare.entities.recipes import RecipeSectionView, RecipeView
from cookshare.services.membership import MembershipWorkflow

__all__ = [
    "AccessStatus",
    "BookView",
    "ConstraintViolationError",
    "CookshareAsync",
    "CookshareError",
    "DatabaseConfig",
    "EntityView",
    "ForeignKeyViolationError",
    "HeroImage",
    "InvalidOperationError",
    "ListItemView",
    "ListView",
    "MealView",
    "MemberInfo",
    "MemberRequest",
    "MemberStatus",
    "MembershipWorkflow",
    "NotFoundError",
    "OwnerInfo",
    "Page",
    "PlannerView",
    "RecipeSectionView",
    "RecipeView",
    "UniqueViolationError",
]
