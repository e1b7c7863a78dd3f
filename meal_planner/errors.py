"""
Error taxonomy and result type for the meal planner.

Every error is user-correctable at the API boundary; none should surface
as an unhandled fault. Each carries a short ``user_message`` suitable for
showing to the person editing the plan.
"""

from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class MealPlannerError(Exception):
    """Base class for all meal planner errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class NotFinalizedError(MealPlannerError):
    """Grocery list requested for a plan that is still a draft."""

    user_message = "Finalize your meal plan first."


class EmptyPlanError(MealPlannerError):
    """Operation requires at least one planned meal."""

    user_message = "Your meal plan is empty. Add some meals first."


class PlanFinalizedError(MealPlannerError):
    """Slot mutation attempted on a finalized plan."""

    user_message = "This plan is finalized. Reset it to make changes."


class NoRecipesFoundError(MealPlannerError):
    """No candidate recipes for generation or cuisine resolution."""

    user_message = "No recipes found. Add recipes to your collection first."


class NoIngredientDataError(MealPlannerError):
    """No recipe carried ingredient data and no fallback was available."""

    user_message = "No ingredients found in the planned recipes."


class AiFallbackError(MealPlannerError):
    """The AI collaborator failed to produce a usable answer."""

    user_message = "Could not generate the list. Please try again."


class AiFallbackParseError(AiFallbackError):
    """The AI collaborator returned non-JSON or malformed JSON."""


class ChatUnavailableError(AiFallbackError):
    """The chat assistant could not be reached."""

    user_message = "The assistant is unavailable right now. Please try again."


class PersistenceError(MealPlannerError):
    """Storage I/O failure."""

    user_message = "Could not reach storage. Please try again."


class StaleResultError(MealPlannerError):
    """An async result arrived after the plan it was computed for changed."""

    user_message = "The plan changed while this was running. Please try again."


@dataclass
class Result(Generic[T]):
    """Outcome of an async service call: a value or a typed error.

    ``notices`` holds informational messages (e.g. "some meals will repeat")
    that are not failures.
    """
    value: Optional[T] = None
    error: Optional[MealPlannerError] = None
    notices: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None, notices: Optional[List[str]] = None) -> "Result[T]":
        return cls(value=value, notices=list(notices or []))

    @classmethod
    def failure(cls, error: MealPlannerError) -> "Result[T]":
        return cls(error=error)

    def to_dict(self) -> dict:
        return {
            "success": self.ok,
            "error": self.error.user_message if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "notices": self.notices,
        }
