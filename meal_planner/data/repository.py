"""
Async access to the database for the planner services.

SQLite calls are blocking, so each call runs on a small thread pool and is
awaited by the caller. Recipe sources used by the plan generator live here
as well: each one is a named, awaitable fetch over the catalog.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, TypeVar

from .database import DatabaseInterface
from .models import GroceryList, Recipe, WeeklyPlan

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Thread pool for running sync sqlite operations
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="db_")


class PlanRepository:
    """Async wrapper around DatabaseInterface."""

    def __init__(self, db: DatabaseInterface):
        self.db = db

    async def _run(self, func: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, func)

    async def get_meal_plan(self, user_id: str, week_start: str) -> Optional[WeeklyPlan]:
        return await self._run(lambda: self.db.get_meal_plan(user_id, week_start))

    async def save_meal_plan(self, plan: WeeklyPlan, user_id: str) -> str:
        return await self._run(lambda: self.db.save_meal_plan(plan, user_id))

    async def get_recipe(self, recipe_id: int) -> Optional[Recipe]:
        return await self._run(lambda: self.db.get_recipe(recipe_id))

    async def search_recipes(self, **filters) -> List[Recipe]:
        return await self._run(lambda: self.db.search_recipes(**filters))

    async def get_saved_recipes(self, user_id: str) -> List[Recipe]:
        return await self._run(lambda: self.db.get_saved_recipes(user_id))

    async def list_cuisines(self) -> List[str]:
        return await self._run(self.db.list_cuisines)

    async def get_grocery_list(self, user_id: str, week_start: str) -> Optional[GroceryList]:
        return await self._run(lambda: self.db.get_grocery_list(user_id, week_start))

    async def save_grocery_list(self, grocery_list: GroceryList, user_id: str) -> str:
        return await self._run(lambda: self.db.save_grocery_list(grocery_list, user_id))


# =============================================================================
# RECIPE SOURCES
# =============================================================================

class RecipeSource(ABC):
    """A prioritized pool of candidate recipes for plan generation."""

    label: str = "recipes"

    @abstractmethod
    async def fetch(self) -> List[Recipe]:
        """Fetch this source's recipes."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class CategorySource(RecipeSource):
    """Recipes a user filed under one category."""

    def __init__(self, repository: PlanRepository, user_id: str, category_id: str):
        self.repository = repository
        self.user_id = user_id
        self.category_id = category_id
        self.label = f"category:{category_id}"

    async def fetch(self) -> List[Recipe]:
        return await self.repository.search_recipes(user_id=self.user_id, category_id=self.category_id)


class SavedRecipesSource(RecipeSource):
    """Recipes a user bookmarked."""

    def __init__(self, repository: PlanRepository, user_id: str):
        self.repository = repository
        self.user_id = user_id
        self.label = "saved"

    async def fetch(self) -> List[Recipe]:
        return await self.repository.get_saved_recipes(self.user_id)


class OwnRecipesSource(RecipeSource):
    """Every recipe the user owns."""

    def __init__(self, repository: PlanRepository, user_id: str):
        self.repository = repository
        self.user_id = user_id
        self.label = "my-recipes"

    async def fetch(self) -> List[Recipe]:
        return await self.repository.search_recipes(user_id=self.user_id)


class PublishedRecipesSource(RecipeSource):
    """The public catalog."""

    def __init__(self, repository: PlanRepository):
        self.repository = repository
        self.label = "all"

    async def fetch(self) -> List[Recipe]:
        return await self.repository.search_recipes(published=True)


class StaticRecipeSource(RecipeSource):
    """Fixed in-memory list, used for cuisine-filtered pools and tests."""

    def __init__(self, recipes: List[Recipe], label: str = "static"):
        self.recipes = list(recipes)
        self.label = label

    async def fetch(self) -> List[Recipe]:
        return list(self.recipes)


def build_source(repository: PlanRepository, user_id: str, source: str) -> RecipeSource:
    """Map a source name from the API to a RecipeSource.

    ``all``, ``saved`` and ``my-recipes`` are the named pools; anything else
    is treated as a category id.
    """
    if source == "all":
        return PublishedRecipesSource(repository)
    if source == "saved":
        return SavedRecipesSource(repository, user_id)
    if source == "my-recipes":
        return OwnRecipesSource(repository, user_id)
    return CategorySource(repository, user_id, source)
