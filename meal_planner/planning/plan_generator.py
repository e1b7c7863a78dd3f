"""
Weekly plan generation from prioritized recipe sources.

The first source is primary: slots are filled from it first. Later sources
only supplement when the primary does not have enough unique recipes for
7 days x 2 meals x dishes_per_meal.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..data.models import DINNER, LUNCH, MealSlot, Preferences, Recipe
from ..data.repository import RecipeSource
from ..errors import NoRecipesFoundError

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7
MEALS_PER_DAY = 2


@dataclass
class PlanGenerationResult:
    """Generated slots plus whether recipes had to repeat."""
    slots: List[MealSlot] = field(default_factory=list)
    total_slots: int = 0
    available_count: int = 0  # Unique recipes after filtering
    repeats: bool = False
    sources_used: List[str] = field(default_factory=list)

    @property
    def notice(self) -> Optional[str]:
        if not self.repeats:
            return None
        return (
            f"Only {self.available_count} unique recipes available "
            f"for {self.total_slots} dishes, so some meals will repeat."
        )


def required_slots(dishes_per_meal: int) -> int:
    return DAYS_PER_WEEK * MEALS_PER_DAY * dishes_per_meal


def filter_allergies(recipes: List[Recipe], allergies: Sequence[str]) -> List[Recipe]:
    """
    Drop recipes tagged with, or named after, an allergy keyword.

    Falls back to the unfiltered list if nothing survives.
    """
    keywords = [a.lower().strip() for a in allergies if a and a.strip()]
    if not keywords:
        return recipes

    def is_safe(recipe: Recipe) -> bool:
        tags = [t.lower() for t in recipe.tags]
        name = recipe.name.lower()
        english_name = (recipe.english_name or "").lower()
        return not any(
            keyword in tags or keyword in name or keyword in english_name
            for keyword in keywords
        )

    filtered = [r for r in recipes if is_safe(r)]
    return filtered if filtered else recipes


def filter_diet(recipes: List[Recipe], diet_preferences: Sequence[str]) -> List[Recipe]:
    """Keep recipes tagged with any diet preference; fall back if none are."""
    wanted = [d for d in diet_preferences if d and d.strip()]
    if not wanted:
        return recipes
    filtered = [r for r in recipes if any(r.has_tag(d) for d in wanted)]
    return filtered if filtered else recipes


def apply_preferences(recipes: List[Recipe], preferences: Optional[Preferences]) -> List[Recipe]:
    if preferences is None:
        return recipes
    recipes = filter_allergies(recipes, preferences.allergies)
    return filter_diet(recipes, preferences.diet_preferences)


def _shuffled(recipes: List[Recipe], rng: random.Random) -> List[Recipe]:
    shuffled = list(recipes)
    rng.shuffle(shuffled)
    return shuffled


def build_pool(
    primary: List[Recipe],
    supplementary: List[Recipe],
    total_slots: int,
    rng: random.Random,
) -> List[Recipe]:
    """Concatenate shuffled primary then supplementary rounds until full."""
    pool: List[Recipe] = []
    if not primary and not supplementary:
        return pool

    while len(pool) < total_slots:
        pool.extend(_shuffled(primary, rng))
        if len(pool) < total_slots and supplementary:
            pool.extend(_shuffled(supplementary, rng))
    return pool


def assign_slots(pool: List[Recipe], dishes_per_meal: int) -> List[MealSlot]:
    """Fill day 0..6, lunch dishes then dinner dishes, cycling the pool."""
    slots: List[MealSlot] = []
    index = 0
    for day in range(DAYS_PER_WEEK):
        for meal_type in (LUNCH, DINNER):
            for _ in range(dishes_per_meal):
                slots.append(MealSlot(day_of_week=day, meal_type=meal_type, recipe=pool[index % len(pool)]))
                index += 1
    return slots


async def generate_plan(
    sources: Sequence[RecipeSource],
    preferences: Optional[Preferences] = None,
    dishes_per_meal: int = 2,
    rng: Optional[random.Random] = None,
) -> PlanGenerationResult:
    """
    Generate a full week of slots.

    Args:
        sources: Prioritized recipe sources; sources[0] is primary
        preferences: Allergy and diet filters
        dishes_per_meal: Dishes per lunch/dinner (usually one per person)
        rng: Random source, injectable for reproducible plans

    Returns:
        PlanGenerationResult with slots and a repeat signal

    Raises:
        NoRecipesFoundError: If no source is given or every source is empty
        ValueError: If dishes_per_meal < 1
    """
    if dishes_per_meal < 1:
        raise ValueError("dishes_per_meal must be at least 1")
    if not sources:
        raise NoRecipesFoundError("Select at least one recipe source.")

    rng = rng or random.Random()
    total_slots = required_slots(dishes_per_meal)

    primary_source = sources[0]
    primary_raw = await primary_source.fetch()
    primary = apply_preferences(primary_raw, preferences)
    sources_used = [primary_source.label]
    logger.info(f"[PLAN-GEN] primary {primary_source.label}: {len(primary_raw)} recipes, {len(primary)} after filters")

    seen_ids = {r.id for r in primary_raw}
    supplementary: List[Recipe] = []
    for source in sources[1:]:
        if len(primary) + len(supplementary) >= total_slots:
            break
        extras = [r for r in await source.fetch() if r.id not in seen_ids]
        seen_ids.update(r.id for r in extras)
        filtered = apply_preferences(extras, preferences)
        supplementary.extend(filtered)
        sources_used.append(source.label)
        logger.info(f"[PLAN-GEN] supplement {source.label}: {len(extras)} new recipes, {len(filtered)} after filters")

    if not primary and not supplementary:
        raise NoRecipesFoundError(
            "No recipes found in the selected sources. Add recipes to your categories first."
        )

    pool = build_pool(primary, supplementary, total_slots, rng)
    available = len(primary) + len(supplementary)
    result = PlanGenerationResult(
        slots=assign_slots(pool, dishes_per_meal),
        total_slots=total_slots,
        available_count=available,
        repeats=available < total_slots,
        sources_used=sources_used,
    )
    logger.info(
        f"[PLAN-GEN] {total_slots} slots from {available} unique recipes "
        f"({len(sources_used)} sources, repeats={result.repeats})"
    )
    return result
