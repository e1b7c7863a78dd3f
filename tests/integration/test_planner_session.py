"""
Integration tests for PlannerSession against a real sqlite database.
"""

import asyncio

import pytest

from meal_planner.data.models import GroceryItem
from meal_planner.data.repository import PlanRepository, RecipeSource, StaticRecipeSource
from meal_planner.errors import (
    EmptyPlanError,
    NotFinalizedError,
    PersistenceError,
    PlanFinalizedError,
    StaleResultError,
)
from meal_planner.plan_chat import PlanChat
from meal_planner.planning.cuisine_planner import CuisineAssignment
from meal_planner.services.planner_session import AI_LIST_NOTICE, PlannerSession, SessionRegistry
from meal_planner.shopping.aggregator import GroceryFallback

USER = "user-1"
WEEK = "2025-01-06"
NEXT_WEEK = "2025-01-13"


class FixedFallback(GroceryFallback):
    """Returns fixed items; optionally runs a hook first."""

    def __init__(self, items, before=None):
        self.items = items
        self.before = before

    async def generate(self, recipe_names, language):
        if self.before:
            self.before()
        return list(self.items)


class WeekSwitchingSource(RecipeSource):
    """Source that switches the session's week while it is being fetched."""

    label = "switching"

    def __init__(self, session, recipes):
        self.session = session
        self.recipes = recipes

    async def fetch(self):
        self.session.store.switch_week(NEXT_WEEK)
        return list(self.recipes)


class FailingSaveRepository(PlanRepository):
    async def save_meal_plan(self, plan, user_id):
        raise PersistenceError("disk full")


class SlowFinalizeRepository(PlanRepository):
    """Finalized saves take a while, leaving room for other requests."""

    async def save_meal_plan(self, plan, user_id):
        if plan.is_finalized:
            await asyncio.sleep(0.05)
        return await super().save_meal_plan(plan, user_id)


@pytest.fixture
def session(repository, rng):
    return PlannerSession(USER, repository, dishes_per_meal=1, week_start=WEEK, rng=rng)


async def fill_week(session, recipes):
    result = await session.generate_plan([StaticRecipeSource(recipes)])
    assert result.ok
    return result


class TestPlanLifecycle:
    """Test load, generate, finalize and reset."""

    @pytest.mark.asyncio
    async def test_load_unsaved_week_is_empty_draft(self, session):
        """A week never saved loads as an empty draft."""
        result = await session.load_week(NEXT_WEEK)

        assert result.ok
        assert result.value.week_start == NEXT_WEEK
        assert result.value.slots == []
        assert result.value.is_finalized is False

    @pytest.mark.asyncio
    async def test_generated_plan_is_persisted(self, session, repository, sample_recipes, rng):
        """Another session for the same user sees the generated week."""
        await fill_week(session, sample_recipes)

        other = PlannerSession(USER, repository, week_start=NEXT_WEEK, rng=rng)
        loaded = await other.load_week(WEEK)

        assert len(loaded.value.slots) == 14
        assert [s.key for s in loaded.value.slots] == [s.key for s in session.store.slots]

    @pytest.mark.asyncio
    async def test_repeat_notice(self, session, sample_recipes):
        """Four recipes for fourteen meals comes with a notice."""
        result = await fill_week(session, sample_recipes)

        assert result.value.repeats is True
        assert len(result.notices) == 1

    @pytest.mark.asyncio
    async def test_finalize_empty_plan_fails(self, session):
        """An empty plan cannot be finalized."""
        result = await session.finalize()

        assert isinstance(result.error, EmptyPlanError)
        assert session.store.is_finalized is False

    @pytest.mark.asyncio
    async def test_finalize_persists_and_locks(self, session, repository, sample_recipes):
        """Finalized plans are saved as finalized and reject generation."""
        await fill_week(session, sample_recipes)

        result = await session.finalize()
        saved = await repository.get_meal_plan(USER, WEEK)
        again = await session.generate_plan([StaticRecipeSource(sample_recipes)])

        assert result.ok
        assert saved.is_finalized is True
        assert isinstance(again.error, PlanFinalizedError)

    @pytest.mark.asyncio
    async def test_finalize_storage_failure_keeps_draft(self, db, sample_recipes, rng):
        """If the finalized plan cannot be saved, the plan stays editable."""
        session = PlannerSession(USER, FailingSaveRepository(db), week_start=WEEK, rng=rng)
        session.store.add_dish(0, "lunch", sample_recipes[0])

        result = await session.finalize()

        assert isinstance(result.error, PersistenceError)
        assert session.store.is_finalized is False

    @pytest.mark.asyncio
    async def test_reset_clears_and_persists(self, session, repository, sample_recipes):
        """Reset returns to an empty draft in storage too."""
        await fill_week(session, sample_recipes)
        await session.finalize()

        result = await session.reset()
        saved = await repository.get_meal_plan(USER, WEEK)

        assert result.ok
        assert session.store.slots == []
        assert saved.slots == []
        assert saved.is_finalized is False


class TestStaleResults:
    """Test that late results are dropped after the plan changes."""

    @pytest.mark.asyncio
    async def test_generation_dropped_after_week_switch(self, session, sample_recipes):
        """Slots generated for the old week never land in the new one."""
        result = await session.generate_plan([WeekSwitchingSource(session, sample_recipes)])

        assert isinstance(result.error, StaleResultError)
        assert session.week_start == NEXT_WEEK
        assert session.store.slots == []

    @pytest.mark.asyncio
    async def test_grocery_list_dropped_after_reset(self, repository, recipe_factory, rng):
        """A grocery list finished after a reset is discarded."""
        session = PlannerSession(USER, repository, week_start=WEEK, rng=rng)
        session.fallback = FixedFallback([GroceryItem("Rice", 1, "bag", "Pantry")], before=session.store.reset)
        session.store.add_dish(0, "lunch", recipe_factory(1, "No ingredients"))
        await session.finalize()

        result = await session.generate_grocery_list()

        assert isinstance(result.error, StaleResultError)
        assert await repository.get_grocery_list(USER, WEEK) is None


class TestConcurrentRequests:
    """Test that overlapping operations on one session are serialized."""

    @pytest.mark.asyncio
    async def test_edit_during_finalize_is_refused(self, db, sample_recipes, rng):
        """A dish added while finalize is saving waits, then sees a finalized plan."""
        db.save_recipe(sample_recipes[1])
        repository = SlowFinalizeRepository(db)
        session = PlannerSession(USER, repository, week_start=WEEK, rng=rng)
        session.store.add_dish(0, "lunch", sample_recipes[0])

        finalizing = asyncio.create_task(session.finalize())
        await asyncio.sleep(0)
        added = await session.add_dish(1, "dinner", 2)
        finalized = await finalizing
        saved = await repository.get_meal_plan(USER, WEEK)

        assert finalized.ok
        assert isinstance(added.error, PlanFinalizedError)
        assert (saved.is_finalized, len(saved.slots)) == (True, 1)
        assert (session.store.is_finalized, len(session.store.slots)) == (True, 1)

    @pytest.mark.asyncio
    async def test_finalize_waits_for_running_edit(self, db, sample_recipes, rng):
        """Finalize started after an edit includes that edit in the saved copy."""
        db.save_recipe(sample_recipes[1])
        repository = SlowFinalizeRepository(db)
        session = PlannerSession(USER, repository, week_start=WEEK, rng=rng)
        session.store.add_dish(0, "lunch", sample_recipes[0])

        adding = asyncio.create_task(session.add_dish(1, "dinner", 2))
        await asyncio.sleep(0)
        finalized = await session.finalize()
        added = await adding
        saved = await repository.get_meal_plan(USER, WEEK)

        assert added.ok
        assert finalized.ok
        assert (saved.is_finalized, len(saved.slots)) == (True, 2)
        assert len(session.store.slots) == 2


class TestSlotEdits:
    """Test dish edits through the session."""

    @pytest.mark.asyncio
    async def test_add_dish_from_catalog(self, session, db, repository, sample_recipes):
        """Dishes are looked up by id and saved."""
        db.save_recipe(sample_recipes[2])

        result = await session.add_dish(3, "dinner", 3)
        saved = await repository.get_meal_plan(USER, WEEK)

        assert result.ok
        assert [s.key for s in saved.slots] == [(3, "dinner", 3)]

    @pytest.mark.asyncio
    async def test_add_unknown_recipe(self, session):
        """Unknown recipe ids fail without changing the plan."""
        result = await session.add_dish(0, "lunch", 999)

        assert not result.ok
        assert session.store.slots == []

    @pytest.mark.asyncio
    async def test_swap_and_remove(self, session, sample_recipes):
        """Swaps and removals report whether anything changed."""
        session.store.add_dish(0, "lunch", sample_recipes[0])

        moved = await session.swap(0, "lunch", 1, 2, "dinner")
        removed = await session.remove_dish(2, "dinner", 1)
        missing = await session.remove_dish(2, "dinner", 1)

        assert moved.value is True
        assert removed.value is True
        assert missing.value is False

    @pytest.mark.asyncio
    async def test_cuisine_plan_keeps_unassigned_days(self, session, sample_recipes):
        """Only the assigned days are refilled."""
        session.store.add_dish(6, "dinner", sample_recipes[3])

        result = await session.apply_cuisine_plan(
            [CuisineAssignment(0, lunch="chinese", dinner="italian")], recipes=sample_recipes
        )

        keys = {(s.day_of_week, s.meal_type) for s in session.store.slots}
        assert result.ok
        assert keys == {(0, "lunch"), (0, "dinner"), (6, "dinner")}
        assert session.store.plan.slots_for(0, "dinner")[0].recipe.id == 3

    @pytest.mark.asyncio
    async def test_cuisine_plan_uses_published_catalog(self, session, db, sample_recipes):
        """Without explicit recipes the published catalog is used."""
        for recipe in sample_recipes:
            db.save_recipe(recipe)

        result = await session.apply_cuisine_plan([CuisineAssignment(1, lunch="thai", dinner="thai")])

        assert result.ok
        assert {s.recipe.id for s in session.store.slots} == {4}


class TestGroceryList:
    """Test grocery list generation and editing through the session."""

    @pytest.mark.asyncio
    async def test_requires_finalized_plan(self, session, sample_recipes):
        """Draft plans cannot produce a list."""
        session.store.add_dish(0, "lunch", sample_recipes[0])

        result = await session.generate_grocery_list()

        assert isinstance(result.error, NotFinalizedError)

    @pytest.mark.asyncio
    async def test_generate_and_regenerate_keeps_edits(self, session, draft_plan):
        """Regenerating keeps checked items and manual additions."""
        session.store.load(draft_plan)
        await session.finalize()

        first = await session.generate_grocery_list()
        tomato = next(i for i in first.value.items if i.name == "Tomato")
        await session.toggle_grocery_item(tomato.id)
        await session.add_grocery_item("Paper towels")

        second = await session.generate_grocery_list()
        names = [i.name for i in second.value.items]

        assert names.count("Tomato") == 1
        assert "Paper towels" in names
        assert next(i for i in second.value.items if i.name == "Tomato").checked is True
        assert second.notices == []

    @pytest.mark.asyncio
    async def test_fallback_list_has_notice(self, repository, recipe_factory, rng):
        """Lists built from recipe names say so."""
        session = PlannerSession(
            USER, repository, fallback=FixedFallback([GroceryItem("Rice", 1, "bag", "Pantry")]),
            week_start=WEEK, rng=rng,
        )
        session.store.add_dish(0, "lunch", recipe_factory(1, "Mystery Stew"))
        await session.finalize()

        result = await session.generate_grocery_list()

        assert [i.name for i in result.value.items] == ["Rice"]
        assert result.notices == [AI_LIST_NOTICE]

    @pytest.mark.asyncio
    async def test_clear_checked(self, session):
        """Checked items are removed and counted."""
        added = await session.add_grocery_item("Milk", "Dairy")
        await session.toggle_grocery_item(added.value.id)
        await session.add_grocery_item("Bread", "Pantry")

        cleared = await session.clear_checked_items()
        current = await session.get_grocery_list()

        assert cleared.value == 1
        assert [i.name for i in current.value.items] == ["Bread"]


class TestSessionRegistry:
    """Test per-user session lookup."""

    def test_one_session_per_user(self, repository):
        """The same user gets the same session back."""
        registry = SessionRegistry(lambda user_id: PlannerSession(user_id, repository))

        assert registry.get("a") is registry.get("a")
        assert registry.get("a") is not registry.get("b")
        assert len(registry) == 2
        assert registry.drop("a") is True
        assert registry.drop("a") is False

    def test_drop_forgets_chat(self, repository, null_llm):
        """A dropped user starts over with a fresh session and no chat."""
        registry = SessionRegistry(lambda user_id: PlannerSession(user_id, repository))
        session = registry.get("a")
        session.chat = PlanChat(null_llm)

        registry.drop("a")

        assert session.chat is None
        assert "a" not in registry
        assert registry.get("a").chat is None
