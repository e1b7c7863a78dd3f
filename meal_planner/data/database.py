"""
Database interface for the meal planner.

Single SQLite database holding:
- recipes / saved_recipes: the recipe catalog
- meal_plans / meal_plan_items: one plan per (user, week); items are
  replaced wholesale on every save
- grocery_lists: one list per (user, week)
"""

import sqlite3
import json
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from .models import GroceryList, MealSlot, Recipe, WeeklyPlan
from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class DatabaseInterface:
    """Interface for interacting with the SQLite database."""

    def __init__(self, db_dir: str = "data", db_name: str = "meal_planner.db"):
        """
        Initialize database interface.

        Args:
            db_dir: Directory containing the database file
            db_name: Database file name
        """
        self.db_dir = Path(db_dir)
        self.db_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_dir / db_name

        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, committing on success and mapping sqlite errors."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"[DB] {e}")
            raise PersistenceError(str(e)) from e
        finally:
            conn.close()

    def _init_database(self):
        """Initialize database schema."""
        with self._connect() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS recipes (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    english_name TEXT,
                    cuisine TEXT,
                    calories REAL,
                    prep_time INTEGER,
                    cook_time INTEGER,
                    tags_json TEXT NOT NULL DEFAULT '[]',
                    ingredients_json TEXT,
                    english_ingredients_json TEXT,
                    instructions_json TEXT,
                    english_instructions_json TEXT,
                    description TEXT,
                    english_description TEXT,
                    meal_types_json TEXT NOT NULL DEFAULT '[]',
                    category_id TEXT,
                    user_id TEXT,
                    is_published INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS saved_recipes (
                    user_id TEXT NOT NULL,
                    recipe_id INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, recipe_id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS meal_plans (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    week_start TEXT NOT NULL,
                    is_finalized INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (user_id, week_start)
                )
            """)

            # No uniqueness on (day, meal_type): several dishes may share a meal
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS meal_plan_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    meal_plan_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    recipe_id INTEGER NOT NULL,
                    day_of_week INTEGER NOT NULL CHECK (day_of_week >= 0 AND day_of_week <= 6),
                    meal_type TEXT NOT NULL CHECK (meal_type IN ('lunch', 'dinner')),
                    recipe_json TEXT NOT NULL,
                    FOREIGN KEY (meal_plan_id) REFERENCES meal_plans(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_meal_plan_items_plan
                ON meal_plan_items(meal_plan_id)
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS grocery_lists (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    week_start TEXT NOT NULL,
                    meal_plan_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    items_json TEXT NOT NULL,
                    UNIQUE (user_id, week_start)
                )
            """)

        logger.info(f"[DB] Database initialized at {self.db_path}")

    # =========================================================================
    # Recipes
    # =========================================================================

    def save_recipe(self, recipe: Recipe) -> int:
        """Insert or replace a recipe, returning its id."""
        data = recipe.to_dict()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO recipes (
                    id, name, english_name, cuisine, calories, prep_time, cook_time,
                    tags_json, ingredients_json, english_ingredients_json,
                    instructions_json, english_instructions_json,
                    description, english_description, meal_types_json,
                    category_id, user_id, is_published, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    recipe.id,
                    recipe.name,
                    recipe.english_name,
                    recipe.cuisine,
                    recipe.calories,
                    recipe.prep_time,
                    recipe.cook_time,
                    json.dumps(recipe.tags, ensure_ascii=False),
                    _dumps_optional(data["ingredients"]),
                    _dumps_optional(data["english_ingredients"]),
                    _dumps_optional(recipe.instructions),
                    _dumps_optional(recipe.english_instructions),
                    recipe.description,
                    recipe.english_description,
                    json.dumps(recipe.meal_types, ensure_ascii=False),
                    recipe.category_id,
                    recipe.user_id,
                    1 if recipe.is_published else 0,
                    datetime.now().isoformat(),
                ),
            )
        return recipe.id

    def get_recipe(self, recipe_id: int) -> Optional[Recipe]:
        """Get a recipe by ID."""
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM recipes WHERE id = ?", (recipe_id,)).fetchone()
        return self._row_to_recipe(row) if row else None

    def search_recipes(
        self,
        user_id: Optional[str] = None,
        published: Optional[bool] = None,
        category_id: Optional[str] = None,
        recipe_ids: Optional[List[int]] = None,
        limit: Optional[int] = None,
    ) -> List[Recipe]:
        """
        Fetch recipes matching every given filter.

        Args:
            user_id: Only recipes owned by this user
            published: Only published (True) or unpublished (False) recipes
            category_id: Only recipes in this category
            recipe_ids: Only recipes with these ids
            limit: Maximum number of results

        Returns:
            List of matching Recipe objects ordered by id
        """
        sql = "SELECT * FROM recipes WHERE 1=1"
        params: list = []

        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        if published is not None:
            sql += " AND is_published = ?"
            params.append(1 if published else 0)
        if category_id is not None:
            sql += " AND category_id = ?"
            params.append(category_id)
        if recipe_ids is not None:
            if not recipe_ids:
                return []
            placeholders = ",".join(["?" for _ in recipe_ids])
            sql += f" AND id IN ({placeholders})"
            params.extend(recipe_ids)

        sql += " ORDER BY id"
        if limit:
            sql += " LIMIT ?"
            params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()

        recipes = []
        for row in rows:
            try:
                recipes.append(self._row_to_recipe(row))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Error parsing recipe {row['id']}: {e}")
        return recipes

    def save_recipe_for_user(self, user_id: str, recipe_id: int):
        """Bookmark a recipe for a user."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO saved_recipes (user_id, recipe_id, created_at) VALUES (?, ?, ?)",
                (user_id, recipe_id, datetime.now().isoformat()),
            )

    def get_saved_recipes(self, user_id: str) -> List[Recipe]:
        """Get recipes a user has bookmarked, oldest bookmark first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT r.* FROM recipes r
                JOIN saved_recipes s ON s.recipe_id = r.id
                WHERE s.user_id = ?
                ORDER BY s.created_at, r.id
                """,
                (user_id,),
            ).fetchall()
        return [self._row_to_recipe(row) for row in rows]

    def list_cuisines(self) -> List[str]:
        """Distinct non-empty cuisine labels in the catalog."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT cuisine FROM recipes WHERE cuisine IS NOT NULL AND TRIM(cuisine) != '' ORDER BY cuisine"
            ).fetchall()
        return [row["cuisine"] for row in rows]

    def _row_to_recipe(self, row: sqlite3.Row) -> Recipe:
        """Convert a recipes row to a Recipe."""
        return Recipe.from_dict({
            "id": row["id"],
            "name": row["name"],
            "english_name": row["english_name"],
            "cuisine": row["cuisine"],
            "calories": row["calories"],
            "prep_time": row["prep_time"],
            "cook_time": row["cook_time"],
            "tags": json.loads(row["tags_json"] or "[]"),
            "ingredients": _loads_optional(row["ingredients_json"]),
            "english_ingredients": _loads_optional(row["english_ingredients_json"]),
            "instructions": _loads_optional(row["instructions_json"]),
            "english_instructions": _loads_optional(row["english_instructions_json"]),
            "description": row["description"],
            "english_description": row["english_description"],
            "meal_types": json.loads(row["meal_types_json"] or "[]"),
            "category_id": row["category_id"],
            "user_id": row["user_id"],
            "is_published": bool(row["is_published"]),
        })

    # =========================================================================
    # Meal plans
    # =========================================================================

    def save_meal_plan(self, plan: WeeklyPlan, user_id: str) -> str:
        """
        Upsert a plan by (user_id, week_start) and replace all of its items.

        Args:
            plan: WeeklyPlan to persist; empty slots are skipped
            user_id: Owning user

        Returns:
            ID of the saved meal plan (also set on ``plan.id``)
        """
        now = datetime.now()
        new_id = plan.id or f"mp_{uuid.uuid4().hex[:12]}"

        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO meal_plans (id, user_id, week_start, is_finalized, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, week_start) DO UPDATE SET
                    is_finalized = excluded.is_finalized,
                    updated_at = excluded.updated_at
                """,
                (new_id, user_id, plan.week_start, 1 if plan.is_finalized else 0,
                 now.isoformat(), now.isoformat()),
            )
            plan_id = cursor.execute(
                "SELECT id FROM meal_plans WHERE user_id = ? AND week_start = ?",
                (user_id, plan.week_start),
            ).fetchone()["id"]

            cursor.execute("DELETE FROM meal_plan_items WHERE meal_plan_id = ?", (plan_id,))
            items = [
                (
                    plan_id,
                    position,
                    slot.recipe.id,
                    slot.day_of_week,
                    slot.meal_type,
                    json.dumps(slot.recipe.to_dict(), ensure_ascii=False),
                )
                for position, slot in enumerate(plan.filled_slots())
            ]
            if items:
                cursor.executemany(
                    """
                    INSERT INTO meal_plan_items
                    (meal_plan_id, position, recipe_id, day_of_week, meal_type, recipe_json)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    items,
                )

        plan.id = plan_id
        plan.updated_at = now
        logger.info(f"[DB] Saved meal plan {plan_id} ({plan.week_start}) with {len(items)} items")
        return plan_id

    def get_meal_plan(self, user_id: str, week_start: str) -> Optional[WeeklyPlan]:
        """
        Get a user's plan for a week.

        Args:
            user_id: Owning user
            week_start: Monday of the week (YYYY-MM-DD)

        Returns:
            WeeklyPlan or None if the week was never saved
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM meal_plans WHERE user_id = ? AND week_start = ?",
                (user_id, week_start),
            ).fetchone()
            if not row:
                return None
            item_rows = conn.execute(
                "SELECT * FROM meal_plan_items WHERE meal_plan_id = ? ORDER BY position",
                (row["id"],),
            ).fetchall()

        slots = [
            MealSlot(
                day_of_week=item["day_of_week"],
                meal_type=item["meal_type"],
                recipe=Recipe.from_dict(json.loads(item["recipe_json"])),
            )
            for item in item_rows
        ]
        return WeeklyPlan(
            id=row["id"],
            week_start=row["week_start"],
            slots=slots,
            is_finalized=bool(row["is_finalized"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # =========================================================================
    # Grocery lists
    # =========================================================================

    def save_grocery_list(self, grocery_list: GroceryList, user_id: str) -> str:
        """Upsert the grocery list for (user_id, week_start)."""
        new_id = grocery_list.id or f"gl_{uuid.uuid4().hex[:12]}"
        now = datetime.now().isoformat()

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO grocery_lists
                (id, user_id, week_start, meal_plan_id, created_at, updated_at, items_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, week_start) DO UPDATE SET
                    meal_plan_id = excluded.meal_plan_id,
                    updated_at = excluded.updated_at,
                    items_json = excluded.items_json
                """,
                (
                    new_id,
                    user_id,
                    grocery_list.week_start,
                    grocery_list.meal_plan_id,
                    grocery_list.created_at.isoformat(),
                    now,
                    json.dumps([item.to_dict() for item in grocery_list.items], ensure_ascii=False),
                ),
            )
            list_id = conn.execute(
                "SELECT id FROM grocery_lists WHERE user_id = ? AND week_start = ?",
                (user_id, grocery_list.week_start),
            ).fetchone()["id"]

        grocery_list.id = list_id
        logger.info(f"[DB] Saved grocery list {list_id} with {len(grocery_list.items)} items")
        return list_id

    def get_grocery_list(self, user_id: str, week_start: str) -> Optional[GroceryList]:
        """Get a user's grocery list for a week, or None."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM grocery_lists WHERE user_id = ? AND week_start = ?",
                (user_id, week_start),
            ).fetchone()

        if not row:
            return None
        return GroceryList.from_dict({
            "id": row["id"],
            "week_start": row["week_start"],
            "meal_plan_id": row["meal_plan_id"],
            "created_at": row["created_at"],
            "items": json.loads(row["items_json"]),
        })


def _dumps_optional(value) -> Optional[str]:
    return json.dumps(value, ensure_ascii=False) if value is not None else None


def _loads_optional(value: Optional[str]):
    return json.loads(value) if value else None
