"""
Per-user planner service.

A PlannerSession owns the MealSlotStore for the week being edited and the
collaborators it needs (repository, grocery fallback, language). Async
operations return a Result instead of raising.

Two mechanisms keep concurrent requests for the same user consistent:

- Every mutating operation holds the session lock for its whole run, so an
  edit cannot slip in between finalize's write and the store flipping to
  Finalized, and two saves never race each other to storage.
- Every operation that awaits checks the store token before applying its
  outcome: if the week was switched or the plan reset in the meantime, the
  late result is dropped and a StaleResultError comes back instead.
"""

import asyncio
import logging
import random
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from ..data.models import (
    LANG_EN,
    GroceryItem,
    GroceryList,
    Preferences,
    Recipe,
    WeeklyPlan,
    week_start_for,
)
from ..data.repository import PlanRepository, RecipeSource
from ..errors import (
    EmptyPlanError,
    MealPlannerError,
    NoRecipesFoundError,
    PlanFinalizedError,
    Result,
    StaleResultError,
)
from ..plan_chat import PlanChat
from ..planning import cuisine_planner, plan_generator
from ..planning.cuisine_planner import CuisineAssignment
from ..planning.plan_generator import PlanGenerationResult
from ..planning.slot_store import MealSlotStore
from ..shopping import aggregator
from ..shopping.aggregator import SOURCE_AI_FALLBACK, GroceryFallback

logger = logging.getLogger(__name__)

T = TypeVar("T")

AI_LIST_NOTICE = "No ingredient data in these recipes, so the list was generated from recipe names."


class PlannerSession:
    """Editing session for one user's weekly plan."""

    def __init__(
        self,
        user_id: str,
        repository: PlanRepository,
        fallback: Optional[GroceryFallback] = None,
        language: str = LANG_EN,
        dishes_per_meal: int = 2,
        week_start: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ):
        self.user_id = user_id
        self.repository = repository
        self.fallback = fallback
        self.language = language
        self.dishes_per_meal = dishes_per_meal
        self.rng = rng or random.Random()
        self.store = MealSlotStore(week_start=week_start or week_start_for(date.today()))
        self.chat: Optional[PlanChat] = None
        self._lock = asyncio.Lock()

    @property
    def week_start(self) -> str:
        return self.store.week_start

    def _stale(self, token: str, operation: str) -> bool:
        if self.store.is_current(token):
            return False
        logger.info(f"[SESSION] Dropping late {operation} result for {self.user_id}")
        return True

    # =========================================================================
    # Plan lifecycle
    # =========================================================================

    async def load_week(self, week_start: str) -> Result[WeeklyPlan]:
        """
        Switch to ``week_start`` and load its saved plan, if any.

        Switching rotates the store token, so work still running for the
        previous week drops its result instead of waiting for the lock.
        """
        self.store.switch_week(week_start)
        token = self.store.token
        try:
            plan = await self.repository.get_meal_plan(self.user_id, week_start)
        except MealPlannerError as e:
            return Result.failure(e)

        if self._stale(token, "load"):
            return Result.failure(StaleResultError())
        if plan is not None:
            self.store.load(plan)
        return Result.success(self.store.plan)

    async def save(self) -> Result[str]:
        """Persist the current plan (last write wins)."""
        async with self._lock:
            return await self._save()

    async def _save(self) -> Result[str]:
        token = self.store.token
        plan = self.store.plan
        try:
            plan_id = await self.repository.save_meal_plan(plan, self.user_id)
        except MealPlannerError as e:
            return Result.failure(e)
        if self._stale(token, "save"):
            return Result.failure(StaleResultError())
        return Result.success(plan_id)

    async def finalize(self) -> Result[WeeklyPlan]:
        """
        Persist a finalized copy, then mark the store finalized.

        The store is only flipped once the write succeeded, so a storage
        failure leaves the plan as an editable draft.
        """
        async with self._lock:
            plan = self.store.plan
            if not plan.slots:
                return Result.failure(EmptyPlanError())
            if plan.is_finalized:
                return Result.success(plan)

            token = self.store.token
            snapshot = WeeklyPlan(
                week_start=plan.week_start,
                slots=list(plan.slots),
                is_finalized=True,
                id=plan.id,
            )
            try:
                await self.repository.save_meal_plan(snapshot, self.user_id)
            except MealPlannerError as e:
                return Result.failure(e)

            if self._stale(token, "finalize"):
                return Result.failure(StaleResultError())
            self.store.finalize()
            plan.id = snapshot.id
            plan.updated_at = snapshot.updated_at
            return Result.success(plan)

    async def reset(self) -> Result[WeeklyPlan]:
        """Clear every slot, return to draft and persist the empty plan."""
        async with self._lock:
            self.store.reset()
            result = await self._save()
            if not result.ok:
                return Result.failure(result.error)
            return Result.success(self.store.plan)

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate_plan(
        self,
        sources: Sequence[RecipeSource],
        preferences: Optional[Preferences] = None,
        dishes_per_meal: Optional[int] = None,
    ) -> Result[PlanGenerationResult]:
        """Fill the whole week from prioritized sources and save it."""
        async with self._lock:
            if self.store.is_finalized:
                return Result.failure(PlanFinalizedError())

            token = self.store.token
            try:
                generated = await plan_generator.generate_plan(
                    sources,
                    preferences=preferences,
                    dishes_per_meal=dishes_per_meal or self.dishes_per_meal,
                    rng=self.rng,
                )
            except MealPlannerError as e:
                return Result.failure(e)

            if self._stale(token, "generate_plan"):
                return Result.failure(StaleResultError())
            self.store.replace_slots(generated.slots)

            saved = await self._save()
            if not saved.ok:
                return Result.failure(saved.error)
            notices = [generated.notice] if generated.notice else []
            return Result.success(generated, notices=notices)

    async def apply_cuisine_plan(
        self,
        assignments: Sequence[CuisineAssignment],
        recipes: Optional[List[Recipe]] = None,
        dishes_per_meal: Optional[int] = None,
    ) -> Result[WeeklyPlan]:
        """
        Refill the assigned days from cuisine requests and save the plan.

        Days without an assignment keep their current dishes. When
        ``recipes`` is not given, the published catalog is used.
        """
        async with self._lock:
            if self.store.is_finalized:
                return Result.failure(PlanFinalizedError())
            if not assignments:
                return Result.success(self.store.plan)

            token = self.store.token
            try:
                if recipes is None:
                    recipes = await self.repository.search_recipes(published=True)
                filled = cuisine_planner.fill_by_cuisine(
                    assignments,
                    recipes,
                    dishes_per_meal=dishes_per_meal or self.dishes_per_meal,
                    rng=self.rng,
                )
            except MealPlannerError as e:
                return Result.failure(e)

            if self._stale(token, "apply_cuisine_plan"):
                return Result.failure(StaleResultError())

            assigned_days = {a.day_of_week for a in assignments}
            kept = [s for s in self.store.slots if s.day_of_week not in assigned_days]
            self.store.replace_slots(kept + filled.slots)

            saved = await self._save()
            if not saved.ok:
                return Result.failure(saved.error)
            return Result.success(self.store.plan, notices=filled.notices)

    # =========================================================================
    # Slot edits
    # =========================================================================

    async def add_dish(self, day_of_week: int, meal_type: str, recipe_id: int) -> Result[WeeklyPlan]:
        async with self._lock:
            token = self.store.token
            try:
                recipe = await self.repository.get_recipe(recipe_id)
            except MealPlannerError as e:
                return Result.failure(e)
            if recipe is None:
                return Result.failure(NoRecipesFoundError(f"Recipe {recipe_id} not found"))
            if self._stale(token, "add_dish"):
                return Result.failure(StaleResultError())

            try:
                self.store.add_dish(day_of_week, meal_type, recipe)
            except PlanFinalizedError as e:
                return Result.failure(e)
            saved = await self._save()
            if not saved.ok:
                return Result.failure(saved.error)
            return Result.success(self.store.plan)

    async def remove_dish(self, day_of_week: int, meal_type: str, recipe_id: int) -> Result[bool]:
        async with self._lock:
            try:
                removed = self.store.remove_dish(day_of_week, meal_type, recipe_id)
            except PlanFinalizedError as e:
                return Result.failure(e)
            return await self._save_if(removed)

    async def swap(
        self,
        from_day: int,
        from_meal_type: str,
        recipe_id: int,
        to_day: int,
        to_meal_type: str,
    ) -> Result[bool]:
        async with self._lock:
            try:
                moved = self.store.swap(from_day, from_meal_type, recipe_id, to_day, to_meal_type)
            except PlanFinalizedError as e:
                return Result.failure(e)
            return await self._save_if(moved)

    async def _save_if(self, changed: bool) -> Result[bool]:
        if changed:
            saved = await self._save()
            if not saved.ok:
                return Result.failure(saved.error)
        return Result.success(changed)

    # =========================================================================
    # Grocery list
    # =========================================================================

    async def generate_grocery_list(self) -> Result[GroceryList]:
        """
        Build items for the finalized plan and merge them into the week's list.

        Items already on the list (same name, any case) are kept as they are,
        so checked-off and manual items survive regeneration.
        """
        async with self._lock:
            plan = self.store.plan
            try:
                aggregator.check_can_generate(plan)
            except MealPlannerError as e:
                return Result.failure(e)

            token = self.store.token
            generated = await aggregator.generate_grocery_list(plan, self.language, self.fallback)
            if self._stale(token, "generate_grocery_list"):
                return Result.failure(StaleResultError())
            if not generated.ok:
                return Result.failure(generated.error)

            try:
                grocery_list = await self._load_grocery_list()
                added = grocery_list.merge_generated(generated.items)
                grocery_list.meal_plan_id = plan.id
                await self.repository.save_grocery_list(grocery_list, self.user_id)
            except MealPlannerError as e:
                return Result.failure(e)
            if self._stale(token, "generate_grocery_list"):
                return Result.failure(StaleResultError())

            logger.info(f"[SESSION] Grocery list {self.week_start}: {len(added)} new items")
            notices = [AI_LIST_NOTICE] if generated.source == SOURCE_AI_FALLBACK else []
            return Result.success(grocery_list, notices=notices)

    async def get_grocery_list(self) -> Result[GroceryList]:
        try:
            return Result.success(await self._load_grocery_list())
        except MealPlannerError as e:
            return Result.failure(e)

    async def add_grocery_item(self, name: str, category: str = "Other") -> Result[Optional[GroceryItem]]:
        return await self._edit_grocery_list(lambda gl: gl.add_item(name, category))

    async def toggle_grocery_item(self, item_id: str) -> Result[bool]:
        return await self._edit_grocery_list(lambda gl: gl.toggle(item_id))

    async def remove_grocery_item(self, item_id: str) -> Result[bool]:
        return await self._edit_grocery_list(lambda gl: gl.remove(item_id))

    async def clear_checked_items(self) -> Result[int]:
        return await self._edit_grocery_list(lambda gl: gl.clear_checked())

    async def clear_grocery_list(self) -> Result[None]:
        return await self._edit_grocery_list(lambda gl: gl.clear())

    async def _load_grocery_list(self) -> GroceryList:
        existing = await self.repository.get_grocery_list(self.user_id, self.week_start)
        if existing is not None:
            return existing
        return GroceryList(week_start=self.week_start, meal_plan_id=self.store.plan.id)

    async def _edit_grocery_list(self, edit: Callable[[GroceryList], T]) -> Result[T]:
        async with self._lock:
            token = self.store.token
            try:
                grocery_list = await self._load_grocery_list()
                if self._stale(token, "grocery edit"):
                    return Result.failure(StaleResultError())
                value = edit(grocery_list)
                await self.repository.save_grocery_list(grocery_list, self.user_id)
            except MealPlannerError as e:
                return Result.failure(e)
            return Result.success(value)


class SessionRegistry:
    """Builds and keeps one PlannerSession per user."""

    def __init__(self, factory: Callable[[str], PlannerSession]):
        self._factory = factory
        self._sessions: Dict[str, PlannerSession] = {}

    def get(self, user_id: str) -> PlannerSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._factory(user_id)
            self._sessions[user_id] = session
            logger.debug(f"[SESSION] Created session for {user_id}")
        return session

    def drop(self, user_id: str) -> bool:
        """Forget a user's session along with its chat history."""
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.chat = None
        logger.info(f"[SESSION] Dropped session for {user_id}")
        return True

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
