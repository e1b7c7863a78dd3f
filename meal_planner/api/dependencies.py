"""
Request-scoped dependencies and error mapping for the API routes.
"""
from typing import Dict, Type

from fastapi import Header, HTTPException, Request

from ..data.repository import PlanRepository
from ..errors import (
    AiFallbackError,
    EmptyPlanError,
    MealPlannerError,
    NoIngredientDataError,
    NoRecipesFoundError,
    NotFinalizedError,
    PersistenceError,
    PlanFinalizedError,
    Result,
    StaleResultError,
)
from ..services.planner_session import PlannerSession

ERROR_STATUS: Dict[Type[MealPlannerError], int] = {
    NotFinalizedError: 409,
    EmptyPlanError: 409,
    PlanFinalizedError: 409,
    StaleResultError: 409,
    NoRecipesFoundError: 404,
    NoIngredientDataError: 422,
    AiFallbackError: 502,
    PersistenceError: 503,
}


def status_for(error: MealPlannerError) -> int:
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 400


def unwrap(result: Result):
    """Return the result's value or raise the matching HTTPException."""
    if result.ok:
        return result.value
    raise HTTPException(
        status_code=status_for(result.error),
        detail={"error": result.error.user_message, "error_type": type(result.error).__name__},
    )


def get_session(request: Request, x_user_id: str = Header("default")) -> PlannerSession:
    """Dependency to get the caller's planner session."""
    return request.app.state.registry.get(x_user_id)


def get_repository(request: Request) -> PlanRepository:
    return request.app.state.repository
