"""
Fill a week from per-day cuisine assignments.

Assignments come from the requirements parser or from the chat LLM
("GENERATE_BY_CUISINE"). Each lunch/dinner cuisine is resolved against the
recipe catalog with the tolerant cuisine matcher; when nothing matches,
the meal is filled from the whole catalog and the miss is reported.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..cuisine_canon import ANY_CUISINE, filter_by_cuisine
from ..data.models import DAYS_OF_WEEK, DINNER, LUNCH, MealSlot, Recipe
from ..errors import NoRecipesFoundError

logger = logging.getLogger(__name__)


@dataclass
class CuisineAssignment:
    """Requested cuisine for one day's lunch and dinner."""
    day_of_week: int
    lunch: str = ANY_CUISINE
    dinner: str = ANY_CUISINE

    def cuisine_for(self, meal_type: str) -> str:
        return self.lunch if meal_type == LUNCH else self.dinner

    def to_dict(self) -> Dict:
        return {"day_of_week": self.day_of_week, "lunch": self.lunch, "dinner": self.dinner}

    @classmethod
    def from_dict(cls, data: Dict) -> Optional["CuisineAssignment"]:
        """Build from either snake_case or the chat's camelCase keys.

        Returns None for entries without a valid day.
        """
        day = data.get("day_of_week", data.get("dayOfWeek"))
        try:
            day = int(day)
        except (TypeError, ValueError):
            return None
        if not 0 <= day <= 6:
            return None
        return cls(
            day_of_week=day,
            lunch=str(data.get("lunch") or ANY_CUISINE),
            dinner=str(data.get("dinner") or ANY_CUISINE),
        )


@dataclass
class UnmatchedCuisine:
    day_of_week: int
    meal_type: str
    cuisine: str

    def __str__(self) -> str:
        return f"{DAYS_OF_WEEK[self.day_of_week]} {self.meal_type}: no '{self.cuisine}' recipes"


@dataclass
class CuisineFillResult:
    slots: List[MealSlot] = field(default_factory=list)
    unmatched: List[UnmatchedCuisine] = field(default_factory=list)

    @property
    def notices(self) -> List[str]:
        if not self.unmatched:
            return []
        cuisines = sorted({u.cuisine for u in self.unmatched})
        return [f"No recipes found for {', '.join(cuisines)}; used other recipes instead."]


class _CyclingPicker:
    """Hands out recipes from a pool, preferring ones not used yet this week."""

    def __init__(self, rng: random.Random):
        self.rng = rng
        self.used_ids: set = set()

    def pick(self, candidates: List[Recipe]) -> Recipe:
        fresh = [r for r in candidates if r.id not in self.used_ids]
        choice = self.rng.choice(fresh or candidates)
        self.used_ids.add(choice.id)
        return choice


def fill_by_cuisine(
    assignments: Sequence[CuisineAssignment],
    recipes: Sequence[Recipe],
    dishes_per_meal: int = 1,
    rng: Optional[random.Random] = None,
) -> CuisineFillResult:
    """
    Pick recipes for each assigned day and meal.

    Args:
        assignments: One entry per day to fill (days not listed stay empty)
        recipes: Candidate catalog
        dishes_per_meal: Dishes per lunch/dinner
        rng: Random source, injectable for reproducible plans

    Returns:
        CuisineFillResult with slots in day, lunch, dinner order

    Raises:
        NoRecipesFoundError: If the catalog is empty
    """
    if not recipes:
        raise NoRecipesFoundError()

    picker = _CyclingPicker(rng or random.Random())
    result = CuisineFillResult()
    catalog = list(recipes)

    for assignment in sorted(assignments, key=lambda a: a.day_of_week):
        for meal_type in (LUNCH, DINNER):
            cuisine = assignment.cuisine_for(meal_type)
            candidates = filter_by_cuisine(catalog, cuisine)
            if not candidates:
                logger.info(f"[CUISINE] No match for '{cuisine}' on day {assignment.day_of_week} {meal_type}")
                result.unmatched.append(UnmatchedCuisine(assignment.day_of_week, meal_type, cuisine))
                candidates = catalog

            for _ in range(dishes_per_meal):
                result.slots.append(MealSlot(
                    day_of_week=assignment.day_of_week,
                    meal_type=meal_type,
                    recipe=picker.pick(candidates),
                ))

    return result
