"""
Grocery list aggregation for a finalized weekly plan.

Collapses every ingredient of every planned recipe into one deduplicated,
categorized list. When no planned recipe carries ingredient data the work
is handed to a fallback generator (normally the LLM) with the recipe names.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..data.models import GROCERY_CATEGORIES, LANG_EN, GroceryItem, WeeklyPlan
from ..errors import (
    AiFallbackError,
    AiFallbackParseError,
    EmptyPlanError,
    MealPlannerError,
    NoIngredientDataError,
    NotFinalizedError,
)
from ..llm_json import parse_json_response
from ..llm_provider import DEFAULT_MODEL, LLMProvider
from .categorizer import categorize
from .normalizer import display_name, generic_unit, normalize_amount

logger = logging.getLogger(__name__)

SOURCE_INGREDIENTS = "ingredients"
SOURCE_AI_FALLBACK = "ai_fallback"


@dataclass
class _Accumulated:
    quantity: float
    unit: str
    category: str


@dataclass
class GroceryListResult:
    """Generated items plus where they came from.

    ``error`` is set (and ``items`` empty) when the fallback failed.
    """
    items: List[GroceryItem] = field(default_factory=list)
    source: str = SOURCE_INGREDIENTS
    error: Optional[MealPlannerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def check_can_generate(plan: WeeklyPlan):
    """Raise if ``plan`` cannot produce a grocery list yet."""
    if not plan.is_finalized:
        raise NotFinalizedError()
    if not plan.slots:
        raise EmptyPlanError()


def aggregate_ingredients(plan: WeeklyPlan, language: str = LANG_EN) -> List[GroceryItem]:
    """
    Merge all ingredients of the plan's recipes into grocery items.

    Items are keyed by lower-cased, trimmed display name. Matching units are
    summed; a unit mismatch adds a flat 1 instead of converting. The plan is
    not modified.

    Args:
        plan: Finalized plan
        language: Language of the names and generic units

    Returns:
        Items in first-seen order; empty when no recipe has ingredient data

    Raises:
        NotFinalizedError: If the plan is still a draft
        EmptyPlanError: If the plan has no slots
    """
    check_can_generate(plan)

    accumulator: Dict[str, _Accumulated] = {}

    for slot in plan.filled_slots():
        for ingredient in slot.recipe.localized_ingredients(language):
            if not ingredient.name:
                continue

            amount = normalize_amount(ingredient, language)
            name = display_name(ingredient.name, language)
            key = name.lower().strip()
            if not key:
                continue

            existing = accumulator.get(key)
            if existing is None:
                accumulator[key] = _Accumulated(amount.quantity, amount.unit, categorize(name))
            elif existing.unit == amount.unit:
                existing.quantity += amount.quantity
            else:
                existing.quantity += 1

    return [
        GroceryItem(
            name=key[:1].upper() + key[1:],
            quantity=int(math.ceil(data.quantity)),
            unit=data.unit,
            category=data.category,
            checked=False,
        )
        for key, data in accumulator.items()
    ]


async def generate_grocery_list(
    plan: WeeklyPlan,
    language: str = LANG_EN,
    fallback: Optional["GroceryFallback"] = None,
) -> GroceryListResult:
    """
    Build the grocery list for a finalized plan.

    Uses recipe ingredients when any exist; otherwise calls ``fallback``
    exactly once with the distinct localized recipe names and returns its
    items unchanged. Fallback failures come back as ``result.error``.

    Raises:
        NotFinalizedError: If the plan is still a draft
        EmptyPlanError: If the plan has no slots
    """
    items = aggregate_ingredients(plan, language)
    if items:
        logger.info(f"[GROCERY] {len(items)} items from recipe ingredients ({plan.week_start})")
        return GroceryListResult(items=items, source=SOURCE_INGREDIENTS)

    recipe_names = plan.recipe_names(language)
    if fallback is None:
        logger.warning(f"[GROCERY] No ingredient data and no fallback for {plan.week_start}")
        return GroceryListResult(source=SOURCE_AI_FALLBACK, error=NoIngredientDataError())

    logger.info(f"[GROCERY] No ingredient data, asking fallback for {len(recipe_names)} recipes")
    try:
        fallback_items = await fallback.generate(recipe_names, language)
    except MealPlannerError as e:
        logger.warning(f"[GROCERY] Fallback failed: {e}")
        return GroceryListResult(source=SOURCE_AI_FALLBACK, error=e)
    except Exception as e:
        logger.warning(f"[GROCERY] Fallback failed: {e}")
        return GroceryListResult(source=SOURCE_AI_FALLBACK, error=AiFallbackError(str(e)))

    return GroceryListResult(items=fallback_items, source=SOURCE_AI_FALLBACK)


# =============================================================================
# FALLBACK GENERATORS
# =============================================================================

class GroceryFallback(ABC):
    """Produces an already-categorized grocery list from recipe names."""

    @abstractmethod
    async def generate(self, recipe_names: List[str], language: str) -> List[GroceryItem]:
        pass


PROMPTS = {
    "en": """You are a helpful grocery shopping assistant. Based on these recipe names, generate a comprehensive grocery shopping list in English.

Recipes to prepare:
{recipes}

Combine similar ingredients and estimate reasonable quantities for a week of meals.
Put each item in exactly one of these categories: {categories}.

Return ONLY a JSON object in this format:
{{"items": [{{"name": "Tomato", "quantity": 4, "unit": "item", "category": "Produce"}}]}}""",
    "zh": """你是一个购物助手。根据以下菜谱名称，生成一份完整的购物清单。

需要准备的菜谱：
{recipes}

合并相似的食材，估算一周所需的合理数量。
每个食材必须归入以下类别之一：{categories}。

只返回如下格式的 JSON 对象：
{{"items": [{{"name": "番茄", "quantity": 4, "unit": "个", "category": "Produce"}}]}}""",
}

SYSTEM_PROMPTS = {
    "en": "You are a helpful grocery shopping assistant. Always respond in English.",
    "zh": "你是一个购物助手。请用中文回复。",
}


class LLMGroceryFallback(GroceryFallback):
    """Ask the LLM for a categorized list and parse it defensively."""

    def __init__(self, provider: LLMProvider, model: str = DEFAULT_MODEL):
        self.provider = provider
        self.model = model

    def build_prompt(self, recipe_names: List[str], language: str) -> str:
        template = PROMPTS.get(language, PROMPTS[LANG_EN])
        return template.format(
            recipes="\n".join(recipe_names),
            categories=", ".join(GROCERY_CATEGORIES),
        )

    async def generate(self, recipe_names: List[str], language: str) -> List[GroceryItem]:
        prompt = self.build_prompt(recipe_names, language)
        system = SYSTEM_PROMPTS.get(language, SYSTEM_PROMPTS[LANG_EN])

        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(
            None,
            lambda: self.provider.complete(prompt, system=system, response_format="json", model=self.model),
        )
        return parse_grocery_items(content, language)


def parse_grocery_items(content: str, language: str = LANG_EN) -> List[GroceryItem]:
    """
    Turn an LLM grocery answer into GroceryItems.

    Accepts ``{"items": [...]}`` or a bare list. Entries without a name are
    skipped; quantities are rounded up with 1 as the default; unknown
    categories become Other.

    Raises:
        AiFallbackParseError: If the answer is not JSON or has no item list
    """
    data = parse_json_response(content)
    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        raise AiFallbackParseError("AI response has no item list")

    items = []
    for entry in data:
        if not isinstance(entry, dict) or not str(entry.get("name") or "").strip():
            continue
        try:
            quantity = int(math.ceil(float(entry.get("quantity") or 1)))
        except (TypeError, ValueError):
            quantity = 1
        category = entry.get("category")
        items.append(GroceryItem(
            name=str(entry["name"]).strip(),
            quantity=max(quantity, 1),
            unit=str(entry.get("unit") or generic_unit(language)),
            category=category if category in GROCERY_CATEGORIES else "Other",
        ))
    return items
