"""
Planning modules - slot store, plan generation and cuisine-based filling.
"""

from .cuisine_planner import CuisineAssignment, CuisineFillResult, fill_by_cuisine
from .plan_generator import PlanGenerationResult, generate_plan
from .slot_store import MealSlotStore

__all__ = [
    "CuisineAssignment",
    "CuisineFillResult",
    "fill_by_cuisine",
    "PlanGenerationResult",
    "generate_plan",
    "MealSlotStore",
]
