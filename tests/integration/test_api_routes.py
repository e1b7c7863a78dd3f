"""
Integration tests for the FastAPI routes.

The app runs its real lifespan against a temporary sqlite database, with
NullLLMProvider standing in for Anthropic.
"""

import json

import pytest
from fastapi.testclient import TestClient

from meal_planner.api.main import create_app
from meal_planner.config import Settings
from meal_planner.llm_provider import NullLLMProvider

CHAT_ANSWER = json.dumps({"reply": "Monday has Kung Pao Chicken for lunch.", "action": None})
WEEK = "2025-01-06"


@pytest.fixture
def provider():
    return NullLLMProvider(text=CHAT_ANSWER)


@pytest.fixture
def client(temp_db_dir, sample_recipes, provider):
    app = create_app(Settings(db_dir=temp_db_dir, dishes_per_meal=1, use_null_llm=True), provider=provider)
    with TestClient(app) as client:
        for recipe in sample_recipes:
            client.app.state.db.save_recipe(recipe)
        yield client


def finalize_generated_week(client, headers=None):
    assert client.post("/api/plan/generate", json={"sources": ["all"]}, headers=headers).status_code == 200
    assert client.post("/api/plan/finalize", headers=headers).status_code == 200


class TestHealthAndCatalog:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "llm": "null"}

    def test_cuisines(self, client):
        response = client.get("/api/plan/cuisines")

        assert sorted(response.json()["cuisines"]) == sorted(["川菜", "家常菜", "意式", "泰式"])


class TestPlanRoutes:
    """Test plan editing over HTTP."""

    def test_get_plan_for_week(self, client):
        """An unsaved week comes back as an empty draft."""
        response = client.get("/api/plan", params={"week_start": WEEK})

        data = response.json()
        assert response.status_code == 200
        assert data["plan"]["week_start"] == WEEK
        assert data["plan"]["slots"] == []
        assert data["summary"]["meal_count"] == 0

    def test_generate_fills_week(self, client):
        """Four published recipes fill 14 meals with repeats."""
        response = client.post("/api/plan/generate", json={"sources": ["all"]})

        data = response.json()
        assert response.status_code == 200
        assert len(data["plan"]["slots"]) == 14
        assert data["repeats"] is True
        assert data["sources_used"] == ["all"]
        assert len(data["notices"]) == 1

    def test_generate_without_recipes_is_404(self, client):
        """A user with no own recipes gets NoRecipesFound."""
        response = client.post("/api/plan/generate", json={"sources": ["my-recipes"]})

        assert response.status_code == 404
        assert response.json()["detail"]["error_type"] == "NoRecipesFoundError"

    def test_finalize_empty_plan_is_409(self, client):
        response = client.post("/api/plan/finalize")

        assert response.status_code == 409
        assert response.json()["detail"]["error_type"] == "EmptyPlanError"

    def test_finalized_plan_rejects_edits_until_reset(self, client):
        """Edits after finalize are refused; reset unlocks the plan."""
        finalize_generated_week(client)

        refused = client.post("/api/plan/dishes", json={"day_of_week": 0, "meal_type": "lunch", "recipe_id": 1})
        reset = client.post("/api/plan/reset")
        added = client.post("/api/plan/dishes", json={"day_of_week": 0, "meal_type": "lunch", "recipe_id": 1})

        assert refused.status_code == 409
        assert reset.json()["plan"]["slots"] == []
        assert reset.json()["plan"]["is_finalized"] is False
        assert added.status_code == 200
        assert len(added.json()["plan"]["slots"]) == 1

    def test_swap_and_remove(self, client):
        client.post("/api/plan/dishes", json={"day_of_week": 2, "meal_type": "dinner", "recipe_id": 3})

        moved = client.post("/api/plan/swap", json={
            "from_day": 2, "from_meal_type": "dinner", "recipe_id": 3, "to_day": 4, "to_meal_type": "lunch",
        })
        removed = client.post("/api/plan/dishes/remove", json={"day_of_week": 4, "meal_type": "lunch", "recipe_id": 3})

        assert moved.json()["changed"] is True
        assert moved.json()["plan"]["slots"][0]["day_of_week"] == 4
        assert removed.json()["changed"] is True
        assert removed.json()["plan"]["slots"] == []

    def test_invalid_meal_type_rejected(self, client):
        response = client.post("/api/plan/dishes", json={"day_of_week": 0, "meal_type": "breakfast", "recipe_id": 1})

        assert response.status_code == 422

    def test_cuisine_plan(self, client):
        """Requested cuisines fill only the given days."""
        response = client.post("/api/plan/cuisine", json={
            "assignments": [{"day_of_week": 5, "lunch": "thai", "dinner": "italian"}],
        })

        slots = response.json()["plan"]["slots"]
        assert response.status_code == 200
        assert [(s["day_of_week"], s["meal_type"], s["recipe"]["id"]) for s in slots] == [
            (5, "lunch", 4), (5, "dinner", 3),
        ]


class TestShopRoutes:
    """Test grocery list generation and edits over HTTP."""

    def test_generate_requires_finalized_plan(self, client):
        client.post("/api/plan/generate", json={"sources": ["all"]})

        response = client.post("/api/shop/generate")

        assert response.status_code == 409
        assert response.json()["detail"]["error_type"] == "NotFinalizedError"

    def test_generate_from_ingredients(self, client, provider):
        """Recipes with ingredients never call the LLM."""
        finalize_generated_week(client)

        response = client.post("/api/shop/generate")

        data = response.json()
        assert response.status_code == 200
        assert data["notices"] == []
        assert data["grocery_list"]["items"]
        assert provider.call_count == 0

    def test_item_edits(self, client):
        """Add, check off, clear checked and delete."""
        added = client.post("/api/shop/items", json={"name": "Milk", "category": "Dairy"})
        client.post("/api/shop/items", json={"name": "Bread", "category": "Pantry"})
        milk_id = added.json()["grocery_list"]["items"][0]["id"]

        toggled = client.post(f"/api/shop/items/{milk_id}/toggle")
        cleared = client.post("/api/shop/clear-checked")
        bread_id = cleared.json()["grocery_list"]["items"][0]["id"]
        deleted = client.delete(f"/api/shop/items/{bread_id}")

        assert toggled.json()["progress"] == 50.0
        assert cleared.json()["removed"] == 1
        assert deleted.json()["grocery_list"]["items"] == []

    def test_unknown_item_is_404(self, client):
        assert client.post("/api/shop/items/nope/toggle").status_code == 404
        assert client.delete("/api/shop/items/nope").status_code == 404

    def test_unknown_category_rejected(self, client):
        response = client.post("/api/shop/items", json={"name": "Milk", "category": "Beverages?"})

        assert response.status_code == 422


class TestChatRoutes:
    """Test the conversational planner over HTTP."""

    def test_cuisine_request_changes_plan(self, client, provider):
        """Day-count requests are applied without asking the LLM."""
        response = client.post("/api/chat", json={"message": "4 days chinese, 3 days italian"})

        data = response.json()
        by_day = {(s["day_of_week"], s["meal_type"]): s["recipe"]["id"] for s in data["plan"]["slots"]}
        assert response.status_code == 200
        assert data["plan_changed"] is True
        assert len(by_day) == 14
        assert all(by_day[(d, "dinner")] in (1, 2) for d in range(4))
        assert all(by_day[(d, "lunch")] == 3 for d in range(4, 7))
        assert provider.call_count == 0

    def test_question_answered_by_llm(self, client, provider):
        """Questions go to the LLM and leave the plan alone."""
        response = client.post("/api/chat", json={"message": "What's for lunch on Monday?"})

        data = response.json()
        assert data["reply"] == "Monday has Kung Pao Chicken for lunch."
        assert data["plan_changed"] is False
        assert data["plan"] is None
        assert provider.call_count == 1

    def test_history(self, client):
        client.post("/api/chat", json={"message": "What's for lunch on Monday?"})

        messages = client.get("/api/chat/history").json()["messages"]

        assert [m["role"] for m in messages] == ["assistant", "user", "assistant"]
        assert messages[1]["content"] == "What's for lunch on Monday?"

    def test_empty_message_rejected(self, client):
        assert client.post("/api/chat", json={"message": ""}).status_code == 422


class TestUsers:
    def test_users_have_separate_plans(self, client):
        """The X-User-Id header selects the plan being edited."""
        finalize_generated_week(client, headers={"X-User-Id": "alice"})

        alice = client.get("/api/plan", headers={"X-User-Id": "alice"}).json()
        bob = client.get("/api/plan", headers={"X-User-Id": "bob"}).json()

        assert alice["plan"]["is_finalized"] is True
        assert len(alice["plan"]["slots"]) == 14
        assert bob["plan"]["slots"] == []


class UnreachableProvider(NullLLMProvider):
    """Provider whose API call always fails."""

    def create_message(self, model, max_tokens, messages, system=None, **kwargs):
        self.call_count += 1
        raise RuntimeError("connection reset by peer")


class TestChatFailures:
    """Test chat behavior when the LLM cannot be reached."""

    @pytest.fixture
    def offline_client(self, temp_db_dir, sample_recipes):
        app = create_app(Settings(db_dir=temp_db_dir, dishes_per_meal=1), provider=UnreachableProvider())
        with TestClient(app) as client:
            for recipe in sample_recipes:
                client.app.state.db.save_recipe(recipe)
            yield client

    def test_provider_error_is_502(self, offline_client):
        """A failing provider gives a handled 502 and leaves history alone."""
        response = offline_client.post("/api/chat", json={"message": "what is planned for monday?"})
        messages = offline_client.get("/api/chat/history").json()["messages"]

        assert response.status_code == 502
        assert response.json()["detail"]["error_type"] == "ChatUnavailableError"
        assert [m["role"] for m in messages] == ["assistant"]

    def test_parsed_requests_still_work(self, offline_client):
        """Cuisine requests never need the LLM."""
        response = offline_client.post("/api/chat", json={"message": "all italian"})

        assert response.status_code == 200
        assert response.json()["plan_changed"] is True


class TestWeekSelection:
    """Test the week_start query parameter."""

    def test_any_day_selects_its_monday(self, client):
        """A Wednesday loads the week starting that Monday."""
        response = client.get("/api/plan", params={"week_start": "2025-01-08"})

        assert response.status_code == 200
        assert response.json()["plan"]["week_start"] == WEEK

    def test_invalid_week_start_rejected(self, client):
        """Non-dates are refused and the current week is kept."""
        before = client.get("/api/plan").json()["plan"]["week_start"]

        response = client.get("/api/plan", params={"week_start": "foo"})
        after = client.get("/api/plan").json()["plan"]["week_start"]

        assert response.status_code == 422
        assert after == before


class TestSessionCleanup:
    def test_delete_session_forgets_chat(self, client):
        """Deleting a session clears the chat; a second delete is 404."""
        client.post("/api/chat", json={"message": "What's for lunch on Monday?"})

        deleted = client.delete("/api/chat/session")
        again = client.delete("/api/chat/session")
        messages = client.get("/api/chat/history").json()["messages"]

        assert deleted.status_code == 200
        assert again.status_code == 404
        assert [m["role"] for m in messages] == ["assistant"]
