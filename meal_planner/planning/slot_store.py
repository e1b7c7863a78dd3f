"""
In-memory meal slot store for the week being edited.

The store is the source of truth during an editing session. It enforces
the plan lifecycle:

    Draft --finalize()--> Finalized --reset()--> Draft (slots cleared)

Slot mutations are refused while finalized, so slots never change after
finalize except through reset. Every rejected call leaves the plan as it
was.

Each plan identity (week + load/reset generation) gets a session token.
Async work captures ``store.token`` before awaiting and checks
``store.is_current(token)`` before applying its result.
"""

import logging
import uuid
from typing import Iterable, List, Optional

from ..data.models import (
    DAYS_OF_WEEK,
    LANG_EN,
    MEAL_TYPES,
    MealSlot,
    Recipe,
    WeeklyPlan,
)
from ..errors import EmptyPlanError, PlanFinalizedError

logger = logging.getLogger(__name__)


def _validate_position(day_of_week: int, meal_type: str):
    if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
        raise ValueError(f"day_of_week must be 0-6, got {day_of_week!r}")
    if meal_type not in MEAL_TYPES:
        raise ValueError(f"meal_type must be one of {MEAL_TYPES}, got {meal_type!r}")


class MealSlotStore:
    """Holds one WeeklyPlan and the operations allowed on it."""

    def __init__(self, plan: Optional[WeeklyPlan] = None, week_start: Optional[str] = None):
        if plan is None:
            if week_start is None:
                raise ValueError("Either plan or week_start is required")
            plan = WeeklyPlan(week_start=week_start)
        self._plan = plan
        self._prune()
        self._token = uuid.uuid4().hex

    # =========================================================================
    # Identity
    # =========================================================================

    @property
    def plan(self) -> WeeklyPlan:
        return self._plan

    @property
    def week_start(self) -> str:
        return self._plan.week_start

    @property
    def is_finalized(self) -> bool:
        return self._plan.is_finalized

    @property
    def slots(self) -> List[MealSlot]:
        return list(self._plan.slots)

    @property
    def token(self) -> str:
        """Identity of the plan currently held; changes on load/switch/reset."""
        return self._token

    def is_current(self, token: str) -> bool:
        return token == self._token

    def _rotate_token(self):
        self._token = uuid.uuid4().hex

    def load(self, plan: WeeklyPlan):
        """Replace the held plan (e.g. after fetching from storage)."""
        self._plan = plan
        self._prune()
        self._rotate_token()
        logger.debug(f"Loaded plan {plan.week_start} with {len(plan.slots)} slots")

    def switch_week(self, week_start: str):
        """Start editing an empty draft for another week."""
        self.load(WeeklyPlan(week_start=week_start))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def finalize(self):
        """Draft -> Finalized.

        Raises:
            EmptyPlanError: If there are no meals
        """
        if not self._plan.slots:
            raise EmptyPlanError()
        self._plan.is_finalized = True
        logger.info(f"Finalized plan {self.week_start} ({len(self._plan.slots)} dishes)")

    def reset(self):
        """Any state -> Draft, discarding every slot."""
        self._plan.slots = []
        self._plan.is_finalized = False
        self._rotate_token()
        logger.info(f"Reset plan {self.week_start}")

    def _require_draft(self):
        if self._plan.is_finalized:
            raise PlanFinalizedError()

    def _prune(self):
        self._plan.slots = [s for s in self._plan.slots if s.recipe is not None]

    # =========================================================================
    # Mutations (Draft only)
    # =========================================================================

    def add_dish(self, day_of_week: int, meal_type: str, recipe: Recipe) -> MealSlot:
        """Append a dish to a meal; several dishes may share a meal."""
        _validate_position(day_of_week, meal_type)
        self._require_draft()
        if recipe is None:
            raise ValueError("recipe is required; use remove_meal to clear a meal")
        slot = MealSlot(day_of_week=day_of_week, meal_type=meal_type, recipe=recipe)
        self._plan.slots.append(slot)
        return slot

    def remove_dish(self, day_of_week: int, meal_type: str, recipe_id: int) -> bool:
        """Remove the first dish matching (day, meal, recipe id).

        Only one instance is removed per call, so a recipe planned twice for
        the same meal keeps its other copy.

        Returns:
            True if a dish was removed
        """
        self._require_draft()
        index = self._find(day_of_week, meal_type, recipe_id)
        if index is None:
            return False
        del self._plan.slots[index]
        return True

    def swap(
        self,
        from_day: int,
        from_meal_type: str,
        recipe_id: int,
        to_day: int,
        to_meal_type: str,
    ) -> bool:
        """Move one dish to another day/meal.

        Returns:
            True if a dish moved; False for a same-place move or no match
        """
        _validate_position(to_day, to_meal_type)
        self._require_draft()
        if from_day == to_day and from_meal_type == to_meal_type:
            return False

        index = self._find(from_day, from_meal_type, recipe_id)
        if index is None:
            return False

        slot = self._plan.slots[index]
        self._plan.slots[index] = MealSlot(day_of_week=to_day, meal_type=to_meal_type, recipe=slot.recipe)
        return True

    def set_meal(self, day_of_week: int, meal_type: str, recipe: Optional[Recipe]):
        """Replace every dish of a meal with ``recipe`` (None clears it)."""
        _validate_position(day_of_week, meal_type)
        self._require_draft()
        self._plan.slots = [
            s for s in self._plan.slots
            if not (s.day_of_week == day_of_week and s.meal_type == meal_type)
        ]
        if recipe is not None:
            self._plan.slots.append(MealSlot(day_of_week=day_of_week, meal_type=meal_type, recipe=recipe))

    def remove_meal(self, day_of_week: int, meal_type: str):
        self.set_meal(day_of_week, meal_type, None)

    def replace_slots(self, slots: Iterable[MealSlot]):
        """Swap in a whole generated week. Empty slots are dropped."""
        self._require_draft()
        new_slots = list(slots)
        for slot in new_slots:
            _validate_position(slot.day_of_week, slot.meal_type)
        self._plan.slots = [s for s in new_slots if s.recipe is not None]

    def _find(self, day_of_week: int, meal_type: str, recipe_id: int) -> Optional[int]:
        for index, slot in enumerate(self._plan.slots):
            if (
                slot.day_of_week == day_of_week
                and slot.meal_type == meal_type
                and slot.recipe is not None
                and slot.recipe.id == recipe_id
            ):
                return index
        return None

    # =========================================================================
    # Aggregates (pure)
    # =========================================================================

    def _recipes(self) -> List[Recipe]:
        return [s.recipe for s in self._plan.slots if s.recipe is not None]

    @property
    def meal_count(self) -> int:
        return len(self._recipes())

    @property
    def total_calories(self) -> float:
        return sum(r.calories or 0 for r in self._recipes())

    @property
    def average_calories_per_meal(self) -> float:
        count = self.meal_count
        return self.total_calories / count if count else 0

    @property
    def total_prep_plus_cook_minutes(self) -> int:
        return sum(r.total_minutes for r in self._recipes())

    @property
    def average_prep_plus_cook_minutes(self) -> float:
        count = self.meal_count
        return self.total_prep_plus_cook_minutes / count if count else 0

    def ingredient_count(self, language: str = LANG_EN) -> int:
        return sum(len(r.localized_ingredients(language)) for r in self._recipes())

    def summary(self, language: str = LANG_EN) -> dict:
        return {
            "meal_count": self.meal_count,
            "total_calories": self.total_calories,
            "average_calories_per_meal": round(self.average_calories_per_meal, 1),
            "total_prep_plus_cook_minutes": self.total_prep_plus_cook_minutes,
            "average_prep_plus_cook_minutes": round(self.average_prep_plus_cook_minutes, 1),
            "ingredient_count": self.ingredient_count(language),
        }

    def describe(self, language: str = LANG_EN) -> List[str]:
        """One line per meal, used as LLM context.

        e.g. "- Monday Lunch: Kung Pao Chicken (520 cal, 35 min)"
        """
        lines = []
        for day in range(7):
            for meal_type in MEAL_TYPES:
                label = f"{DAYS_OF_WEEK[day]} {meal_type.capitalize()}"
                slots = self._plan.slots_for(day, meal_type)
                if not slots:
                    lines.append(f"- {label}: (empty)")
                    continue
                for slot in slots:
                    recipe = slot.recipe
                    details = []
                    if recipe.calories:
                        details.append(f"{recipe.calories:g} cal")
                    if recipe.total_minutes:
                        details.append(f"{recipe.total_minutes} min")
                    suffix = f" ({', '.join(details)})" if details else ""
                    lines.append(f"- {label}: {recipe.localized_name(language)}{suffix}")
        return lines
