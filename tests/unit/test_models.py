"""
Unit tests for domain models: recipes, plans and grocery lists.
"""

from datetime import date

from meal_planner.data.models import (
    AmountFreeText,
    AmountStructured,
    GroceryItem,
    GroceryList,
    Recipe,
    RecipeIngredient,
    WeeklyPlan,
    week_start_for,
)


class TestRecipeIngredient:
    """Test reading both stored amount shapes."""

    def test_free_text_amount(self):
        """A string amount is free text."""
        ingredient = RecipeIngredient.from_dict({"name": "garlic", "amount": "3 cloves"})

        assert ingredient.amount == AmountFreeText("3 cloves")

    def test_structured_amount(self):
        """quantity/unit keys, flat or nested, are structured."""
        flat = RecipeIngredient.from_dict({"name": "rice", "quantity": 2, "unit": "cups"})
        nested = RecipeIngredient.from_dict({"name": "rice", "amount": {"quantity": 2, "unit": "cups"}})

        assert flat.amount == nested.amount == AmountStructured(2, "cups")

    def test_no_amount(self):
        """Missing amounts stay None."""
        assert RecipeIngredient.from_dict({"name": "salt"}).amount is None


class TestRecipeLocalization:
    """Test language fallbacks."""

    def test_name_fallback(self):
        """English name falls back to the Chinese one."""
        recipe = Recipe(id=1, name="麻婆豆腐")

        assert recipe.localized_name("en") == "麻婆豆腐"
        recipe.english_name = "Mapo Tofu"
        assert recipe.localized_name("en") == "Mapo Tofu"
        assert recipe.localized_name("zh") == "麻婆豆腐"

    def test_ingredient_fallback(self):
        """An empty English list falls back to the Chinese list."""
        chinese = [RecipeIngredient("豆腐", AmountFreeText("1块"))]
        recipe = Recipe(id=1, name="麻婆豆腐", ingredients=chinese, english_ingredients=[])

        assert recipe.localized_ingredients("en") == chinese
        assert Recipe(id=2, name="x").localized_ingredients("zh") == []


class TestWeeklyPlan:
    """Test plan helpers."""

    def test_week_start_is_monday(self):
        """Any day maps to its week's Monday."""
        assert week_start_for(date(2025, 1, 9)) == "2025-01-06"
        assert week_start_for(date(2025, 1, 6)) == "2025-01-06"

    def test_recipe_names_distinct_in_order(self, draft_plan):
        """Names are localized and deduplicated."""
        draft_plan.slots.append(draft_plan.slots[0])

        assert draft_plan.recipe_names("en") == [
            "Kung Pao Chicken", "Tomato and Egg Stir-fry", "Spaghetti Pomodoro",
        ]

    def test_dict_round_trip_keeps_slots(self, draft_plan):
        """Serialized plans come back with the same slots."""
        restored = WeeklyPlan.from_dict(draft_plan.to_dict())

        assert [s.key for s in restored.slots] == [s.key for s in draft_plan.slots]


class TestGroceryList:
    """Test grocery list editing."""

    def make_list(self):
        return GroceryList(
            week_start="2025-01-06",
            items=[
                GroceryItem("Tomato", 3, "cups", "Produce"),
                GroceryItem("Milk", 1, "gallon", "Dairy", checked=True),
            ],
        )

    def test_merge_skips_existing_names(self):
        """Generated items already on the list are not duplicated."""
        grocery_list = self.make_list()

        added = grocery_list.merge_generated([
            GroceryItem("tomato", 5, "cups", "Produce"),
            GroceryItem("Rice", 1, "bag", "Pantry"),
        ])

        assert [i.name for i in added] == ["Rice"]
        assert [i.name for i in grocery_list.items] == ["Tomato", "Milk", "Rice"]
        assert grocery_list.items[0].quantity == 3

    def test_add_item(self):
        """Manual items get quantity 1; blank names are ignored."""
        grocery_list = self.make_list()

        item = grocery_list.add_item("  Paper towels ")

        assert item.name == "Paper towels"
        assert (item.quantity, item.unit, item.category) == (1, "item", "Other")
        assert grocery_list.add_item("   ") is None

    def test_toggle_and_remove(self):
        """Toggle flips checked; unknown ids return False."""
        grocery_list = self.make_list()
        tomato = grocery_list.items[0]

        assert grocery_list.toggle(tomato.id) is True
        assert tomato.checked is True
        assert grocery_list.toggle("missing") is False
        assert grocery_list.remove(tomato.id) is True
        assert grocery_list.remove(tomato.id) is False

    def test_clear_checked_and_progress(self):
        """Progress counts checked items; clearing removes them."""
        grocery_list = self.make_list()

        assert grocery_list.progress == 50.0
        assert grocery_list.clear_checked() == 1
        assert [i.name for i in grocery_list.items] == ["Tomato"]
        assert grocery_list.progress == 0.0

    def test_grouped_in_category_order(self):
        """Groups follow the display category order."""
        groups = self.make_list().grouped()

        assert list(groups)[:3] == ["Produce", "Meat & Seafood", "Dairy"]
        assert [i.name for i in groups["Dairy"]] == ["Milk"]

    def test_to_dict_only_lists_used_categories(self):
        """items_by_category omits empty categories."""
        grocery_list = self.make_list()
        data = grocery_list.to_dict()

        assert set(data["items_by_category"]) == {"Produce", "Dairy"}
        restored = GroceryList.from_dict(data)
        assert [(i.id, i.checked) for i in restored.items] == [(i.id, i.checked) for i in grocery_list.items]
