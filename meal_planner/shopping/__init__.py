"""
Shopping modules - ingredient normalization, categorization and grocery aggregation.
"""

from .aggregator import (
    GroceryFallback,
    GroceryListResult,
    LLMGroceryFallback,
    aggregate_ingredients,
    generate_grocery_list,
)
from .categorizer import CATEGORIES, categorize
from .normalizer import NormalizedAmount, normalize_amount, translate_ingredient

__all__ = [
    "GroceryFallback",
    "GroceryListResult",
    "LLMGroceryFallback",
    "aggregate_ingredients",
    "generate_grocery_list",
    "CATEGORIES",
    "categorize",
    "NormalizedAmount",
    "normalize_amount",
    "translate_ingredient",
]
