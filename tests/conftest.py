"""
Pytest configuration and shared fixtures.

Fixtures are reusable test setup that can be injected into tests.
"""

import random
import shutil
import tempfile

import pytest

from meal_planner.data.database import DatabaseInterface
from meal_planner.data.models import (
    AmountFreeText,
    AmountStructured,
    MealSlot,
    Recipe,
    RecipeIngredient,
    WeeklyPlan,
)
from meal_planner.data.repository import PlanRepository
from meal_planner.llm_provider import NullLLMProvider

WEEK = "2025-01-06"  # A Monday


@pytest.fixture
def temp_db_dir():
    """
    Create a temporary database directory for testing.

    This fixture is automatically cleaned up after each test.
    """
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def db(temp_db_dir):
    """
    Create a fresh DatabaseInterface for each test.

    Usage in tests:
        def test_something(db):
            db.save_recipe(...)
    """
    return DatabaseInterface(db_dir=temp_db_dir)


@pytest.fixture
def repository(db):
    return PlanRepository(db)


@pytest.fixture
def rng():
    """Seeded random source so generated plans are reproducible."""
    return random.Random(42)


@pytest.fixture
def null_llm():
    return NullLLMProvider()


def make_recipe(recipe_id, name, cuisine=None, ingredients=None, **kwargs):
    """Build a Recipe with English ingredients given as (name, amount) pairs."""
    return Recipe(
        id=recipe_id,
        name=name,
        cuisine=cuisine,
        english_ingredients=[RecipeIngredient(n, a) for n, a in ingredients] if ingredients else None,
        **kwargs,
    )


@pytest.fixture
def sample_recipes():
    """Small mixed-cuisine catalog with ingredients."""
    return [
        make_recipe(
            1, "宫保鸡丁", cuisine="川菜", english_name="Kung Pao Chicken",
            calories=520, prep_time=15, cook_time=20, tags=["spicy", "peanut"],
            ingredients=[("chicken breast", AmountFreeText("1 lb")), ("garlic", AmountFreeText("3 cloves"))],
            is_published=True,
        ),
        make_recipe(
            2, "番茄炒蛋", cuisine="家常菜", english_name="Tomato and Egg Stir-fry",
            calories=300, prep_time=5, cook_time=10, tags=["vegetarian", "quick"],
            ingredients=[("Tomato", AmountFreeText("2 cups")), ("egg", AmountStructured(3, "item"))],
            is_published=True,
        ),
        make_recipe(
            3, "意大利面", cuisine="意式", english_name="Spaghetti Pomodoro",
            calories=610, prep_time=10, cook_time=15, tags=["vegetarian"],
            ingredients=[("tomato", AmountStructured(1, "cups")), ("Garlic ", AmountFreeText("2 cloves"))],
            is_published=True,
        ),
        make_recipe(
            4, "冬阴功", cuisine="泰式", english_name="Tom Yum Soup",
            calories=250, prep_time=10, cook_time=20, tags=["spicy", "shrimp"],
            ingredients=[("shrimp", AmountFreeText("200 g"))],
            is_published=True,
        ),
    ]


@pytest.fixture
def draft_plan(sample_recipes):
    """Draft plan with three dishes across two days."""
    return WeeklyPlan(
        week_start=WEEK,
        slots=[
            MealSlot(0, "lunch", sample_recipes[0]),
            MealSlot(0, "dinner", sample_recipes[1]),
            MealSlot(1, "dinner", sample_recipes[2]),
        ],
    )


@pytest.fixture
def finalized_plan(draft_plan):
    draft_plan.is_finalized = True
    return draft_plan


@pytest.fixture
def recipe_factory():
    return make_recipe
