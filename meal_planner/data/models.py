"""
Data models for the meal planner.

These models define the core entities used throughout the system:
- Recipe: stored recipe with bilingual names and ingredient lists
- MealSlot / WeeklyPlan: one week of lunch and dinner assignments
- GroceryItem / GroceryList: shopping list derived from a finalized plan
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union
import uuid

LANG_EN = "en"
LANG_ZH = "zh"
SUPPORTED_LANGUAGES = (LANG_EN, LANG_ZH)

LUNCH = "lunch"
DINNER = "dinner"
MEAL_TYPES = (LUNCH, DINNER)

DAYS_OF_WEEK = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]

GROCERY_CATEGORIES = [
    "Produce",
    "Meat & Seafood",
    "Dairy",
    "Pantry",
    "Spices & Seasonings",
    "Other",
]


def week_start_for(day: date) -> str:
    """Return the Monday of the week containing ``day`` as YYYY-MM-DD."""
    monday = day - timedelta(days=day.weekday())
    return monday.isoformat()


# =============================================================================
# INGREDIENT AMOUNTS
# =============================================================================

@dataclass(frozen=True)
class AmountFreeText:
    """Free-text amount as typed by a person, e.g. "2 cups" or "适量"."""
    text: str

    def to_dict(self) -> Dict:
        return {"amount": self.text}


@dataclass(frozen=True)
class AmountStructured:
    """Structured amount with a numeric quantity."""
    quantity: float
    unit: str = ""

    def to_dict(self) -> Dict:
        return {"quantity": self.quantity, "unit": self.unit}


Amount = Union[AmountFreeText, AmountStructured]


@dataclass
class RecipeIngredient:
    """One ingredient line of a recipe."""
    name: str
    amount: Optional[Amount] = None

    def to_dict(self) -> Dict:
        data: Dict[str, Any] = {"name": self.name}
        if self.amount is not None:
            data.update(self.amount.to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "RecipeIngredient":
        """Create from either stored shape.

        Accepts ``{"name", "amount": "2 cups"}``,
        ``{"name", "quantity": 2, "unit": "cups"}`` and
        ``{"name", "amount": {"quantity": 2, "unit": "cups"}}``.
        """
        amount: Optional[Amount] = None
        raw_amount = data.get("amount")
        if isinstance(data.get("quantity"), (int, float)) and not isinstance(data.get("quantity"), bool):
            amount = AmountStructured(quantity=data["quantity"], unit=data.get("unit") or "")
        elif isinstance(raw_amount, dict) and isinstance(raw_amount.get("quantity"), (int, float)):
            amount = AmountStructured(quantity=raw_amount["quantity"], unit=raw_amount.get("unit") or "")
        elif isinstance(raw_amount, str):
            amount = AmountFreeText(text=raw_amount)
        return cls(name=data.get("name") or "", amount=amount)


def _ingredients_from(data: Optional[List[Dict]]) -> Optional[List[RecipeIngredient]]:
    if data is None:
        return None
    return [RecipeIngredient.from_dict(item) for item in data]


# =============================================================================
# RECIPES
# =============================================================================

@dataclass
class Recipe:
    """Stored recipe with optional English localization.

    An empty or absent ingredient list means the ingredients are unknown,
    not that the dish has none.
    """

    id: int
    name: str
    english_name: Optional[str] = None
    cuisine: Optional[str] = None
    calories: Optional[float] = None  # Per serving
    prep_time: Optional[int] = None  # Minutes
    cook_time: Optional[int] = None  # Minutes
    tags: List[str] = field(default_factory=list)
    ingredients: Optional[List[RecipeIngredient]] = None
    english_ingredients: Optional[List[RecipeIngredient]] = None
    instructions: Optional[List[str]] = None
    english_instructions: Optional[List[str]] = None

    # Catalog metadata
    description: Optional[str] = None
    english_description: Optional[str] = None
    meal_types: List[str] = field(default_factory=list)
    category_id: Optional[str] = None
    user_id: Optional[str] = None
    is_published: bool = False

    def localized_name(self, language: str = LANG_EN) -> str:
        """Display name in ``language``, falling back to the other language."""
        if language == LANG_EN:
            return self.english_name or self.name
        return self.name or self.english_name or ""

    def localized_ingredients(self, language: str = LANG_EN) -> List[RecipeIngredient]:
        """Ingredient list in ``language``, falling back to the other list."""
        if language == LANG_EN:
            primary, other = self.english_ingredients, self.ingredients
        else:
            primary, other = self.ingredients, self.english_ingredients
        return primary or other or []

    def localized_instructions(self, language: str = LANG_EN) -> List[str]:
        if language == LANG_EN:
            return self.english_instructions or self.instructions or []
        return self.instructions or self.english_instructions or []

    @property
    def total_minutes(self) -> int:
        return (self.prep_time or 0) + (self.cook_time or 0)

    def has_tag(self, tag: str) -> bool:
        tag_lower = tag.lower().strip()
        return any(t.lower().strip() == tag_lower for t in self.tags)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "english_name": self.english_name,
            "cuisine": self.cuisine,
            "calories": self.calories,
            "prep_time": self.prep_time,
            "cook_time": self.cook_time,
            "tags": self.tags,
            "ingredients": [i.to_dict() for i in self.ingredients] if self.ingredients is not None else None,
            "english_ingredients": (
                [i.to_dict() for i in self.english_ingredients]
                if self.english_ingredients is not None else None
            ),
            "instructions": self.instructions,
            "english_instructions": self.english_instructions,
            "description": self.description,
            "english_description": self.english_description,
            "meal_types": self.meal_types,
            "category_id": self.category_id,
            "user_id": self.user_id,
            "is_published": self.is_published,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Recipe":
        """Create Recipe from dictionary."""
        return cls(
            id=int(data["id"]),
            name=data.get("name") or "",
            english_name=data.get("english_name"),
            cuisine=data.get("cuisine"),
            calories=data.get("calories"),
            prep_time=data.get("prep_time"),
            cook_time=data.get("cook_time"),
            tags=list(data.get("tags") or []),
            ingredients=_ingredients_from(data.get("ingredients")),
            english_ingredients=_ingredients_from(data.get("english_ingredients")),
            instructions=data.get("instructions"),
            english_instructions=data.get("english_instructions"),
            description=data.get("description"),
            english_description=data.get("english_description"),
            meal_types=list(data.get("meal_types") or []),
            category_id=data.get("category_id"),
            user_id=data.get("user_id"),
            is_published=bool(data.get("is_published", False)),
        )


@dataclass
class Preferences:
    """User preferences applied during plan generation."""
    allergies: List[str] = field(default_factory=list)
    diet_preferences: List[str] = field(default_factory=list)
    flavor_preferences: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "allergies": self.allergies,
            "diet_preferences": self.diet_preferences,
            "flavor_preferences": self.flavor_preferences,
        }


# =============================================================================
# MEAL PLANS
# =============================================================================

@dataclass
class MealSlot:
    """One dish assigned to a (day, meal type) pair.

    Several slots may share the same pair when a household needs more than
    one dish per meal.
    """
    day_of_week: int  # 0 = Monday, 6 = Sunday
    meal_type: str  # "lunch" or "dinner"
    recipe: Optional[Recipe] = None

    @property
    def key(self) -> tuple:
        return (self.day_of_week, self.meal_type, self.recipe.id if self.recipe else None)

    def to_dict(self) -> Dict:
        return {
            "day_of_week": self.day_of_week,
            "meal_type": self.meal_type,
            "recipe": self.recipe.to_dict() if self.recipe else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "MealSlot":
        recipe_data = data.get("recipe")
        return cls(
            day_of_week=int(data["day_of_week"]),
            meal_type=data["meal_type"],
            recipe=Recipe.from_dict(recipe_data) if recipe_data else None,
        )


@dataclass
class WeeklyPlan:
    """A week of meal slots starting on ``week_start`` (a Monday)."""

    week_start: str  # "YYYY-MM-DD"
    slots: List[MealSlot] = field(default_factory=list)
    is_finalized: bool = False
    id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def filled_slots(self) -> List[MealSlot]:
        return [s for s in self.slots if s.recipe is not None]

    def slots_for(self, day_of_week: int, meal_type: str) -> List[MealSlot]:
        return [
            s for s in self.slots
            if s.day_of_week == day_of_week and s.meal_type == meal_type and s.recipe
        ]

    def recipe_names(self, language: str = LANG_EN) -> List[str]:
        """Distinct localized recipe names in slot order."""
        names: List[str] = []
        for slot in self.filled_slots():
            name = slot.recipe.localized_name(language)
            if name and name not in names:
                names.append(name)
        return names

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "week_start": self.week_start,
            "is_finalized": self.is_finalized,
            "slots": [s.to_dict() for s in self.filled_slots()],
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "WeeklyPlan":
        updated_at = data.get("updated_at")
        return cls(
            week_start=data["week_start"],
            slots=[MealSlot.from_dict(s) for s in data.get("slots", [])],
            is_finalized=bool(data.get("is_finalized", False)),
            id=data.get("id"),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )


# =============================================================================
# GROCERY LISTS
# =============================================================================

def _new_item_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class GroceryItem:
    """Single line on a grocery list."""

    name: str
    quantity: int
    unit: str
    category: str = "Other"
    checked: bool = False
    id: str = field(default_factory=_new_item_id)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "category": self.category,
            "checked": self.checked,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GroceryItem":
        return cls(
            name=data["name"],
            quantity=data.get("quantity", 1),
            unit=data.get("unit") or "item",
            category=data.get("category") or "Other",
            checked=bool(data.get("checked", False)),
            id=data.get("id") or _new_item_id(),
        )

    def display(self) -> str:
        return f"{self.name} ({self.quantity} {self.unit})"


@dataclass
class GroceryList:
    """Editable shopping list for one week."""

    week_start: str
    items: List[GroceryItem] = field(default_factory=list)
    id: Optional[str] = None
    meal_plan_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def merge_generated(self, generated: List[GroceryItem]) -> List[GroceryItem]:
        """Append generated items whose names are not already on the list.

        Returns:
            The items that were actually added
        """
        existing = {item.name.lower() for item in self.items}
        added = [item for item in generated if item.name.lower() not in existing]
        self.items.extend(added)
        return added

    def add_item(self, name: str, category: str = "Other") -> Optional[GroceryItem]:
        """Add a manual item. Blank names are ignored."""
        name = name.strip()
        if not name:
            return None
        item = GroceryItem(name=name, quantity=1, unit="item", category=category)
        self.items.append(item)
        return item

    def get_item(self, item_id: str) -> Optional[GroceryItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def toggle(self, item_id: str) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        item.checked = not item.checked
        return True

    def remove(self, item_id: str) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if item.id != item_id]
        return len(self.items) != before

    def clear_checked(self) -> int:
        """Remove checked items, returning how many were removed."""
        checked = sum(1 for item in self.items if item.checked)
        self.items = [item for item in self.items if not item.checked]
        return checked

    def clear(self):
        self.items = []

    def grouped(self) -> Dict[str, List[GroceryItem]]:
        """Items grouped by category in display order."""
        groups = {category: [] for category in GROCERY_CATEGORIES}
        for item in self.items:
            groups.setdefault(item.category, []).append(item)
        return groups

    @property
    def progress(self) -> float:
        """Percentage of items checked off (0-100)."""
        if not self.items:
            return 0.0
        return sum(1 for item in self.items if item.checked) / len(self.items) * 100

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "week_start": self.week_start,
            "meal_plan_id": self.meal_plan_id,
            "created_at": self.created_at.isoformat(),
            "items": [item.to_dict() for item in self.items],
            "items_by_category": {
                category: [item.to_dict() for item in items]
                for category, items in self.grouped().items()
                if items
            },
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GroceryList":
        created_at = data.get("created_at")
        return cls(
            week_start=data["week_start"],
            items=[GroceryItem.from_dict(i) for i in data.get("items", [])],
            id=data.get("id"),
            meal_plan_id=data.get("meal_plan_id"),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(),
        )
