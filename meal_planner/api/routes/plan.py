"""
Plan routes for the FastAPI application.

Provides endpoints for:
- Loading a week's plan and its summary
- Generating a week from recipe sources or cuisine assignments
- Adding, removing and moving dishes
- Finalizing and resetting
"""
import logging
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...data.models import Preferences, week_start_for
from ...data.repository import PlanRepository, build_source
from ...planning.cuisine_planner import CuisineAssignment
from ...services.planner_session import PlannerSession
from ..dependencies import get_repository, get_session, unwrap

logger = logging.getLogger(__name__)

router = APIRouter()

MealType = Literal["lunch", "dinner"]


class GeneratePlanRequest(BaseModel):
    """Request body for generating a week from recipe sources."""
    sources: List[str] = Field(default_factory=lambda: ["all"])
    allergies: List[str] = Field(default_factory=list)
    diet_preferences: List[str] = Field(default_factory=list)
    dishes_per_meal: Optional[int] = Field(default=None, ge=1, le=6)


class CuisineAssignmentModel(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    lunch: str = "any"
    dinner: str = "any"


class CuisinePlanRequest(BaseModel):
    assignments: List[CuisineAssignmentModel]
    dishes_per_meal: Optional[int] = Field(default=None, ge=1, le=6)


class DishRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    meal_type: MealType
    recipe_id: int


class SwapRequest(BaseModel):
    from_day: int = Field(ge=0, le=6)
    from_meal_type: MealType
    recipe_id: int
    to_day: int = Field(ge=0, le=6)
    to_meal_type: MealType


def plan_payload(session: PlannerSession, notices: Optional[List[str]] = None) -> dict:
    return {
        "success": True,
        "plan": session.store.plan.to_dict(),
        "summary": session.store.summary(session.language),
        "notices": notices or [],
    }


@router.get("")
async def get_plan(week_start: Optional[str] = None, session: PlannerSession = Depends(get_session)):
    """
    Get the plan being edited, switching weeks when ``week_start`` differs.

    Args:
        week_start: Any ISO date; the plan for the week containing it is loaded
    """
    if week_start:
        try:
            monday = week_start_for(date.fromisoformat(week_start))
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Invalid week_start: {week_start}")
        if monday != session.week_start:
            unwrap(await session.load_week(monday))
    return plan_payload(session)


@router.get("/cuisines")
async def list_cuisines(repository: PlanRepository = Depends(get_repository)):
    return {"cuisines": await repository.list_cuisines()}


@router.post("/generate")
async def generate_plan(body: GeneratePlanRequest, session: PlannerSession = Depends(get_session)):
    """
    Fill the week from prioritized sources.

    ``sources[0]`` is primary; later sources only supplement it.
    """
    sources = [build_source(session.repository, session.user_id, s) for s in body.sources]
    preferences = Preferences(allergies=body.allergies, diet_preferences=body.diet_preferences)
    result = await session.generate_plan(sources, preferences, body.dishes_per_meal)
    generated = unwrap(result)
    logger.info(f"Generated {len(generated.slots)} dishes for {session.user_id} ({session.week_start})")
    payload = plan_payload(session, result.notices)
    payload["repeats"] = generated.repeats
    payload["sources_used"] = generated.sources_used
    return payload


@router.post("/cuisine")
async def apply_cuisine_plan(body: CuisinePlanRequest, session: PlannerSession = Depends(get_session)):
    assignments = [CuisineAssignment(a.day_of_week, a.lunch, a.dinner) for a in body.assignments]
    result = await session.apply_cuisine_plan(assignments, dishes_per_meal=body.dishes_per_meal)
    unwrap(result)
    return plan_payload(session, result.notices)


@router.post("/dishes")
async def add_dish(body: DishRequest, session: PlannerSession = Depends(get_session)):
    unwrap(await session.add_dish(body.day_of_week, body.meal_type, body.recipe_id))
    return plan_payload(session)


@router.post("/dishes/remove")
async def remove_dish(body: DishRequest, session: PlannerSession = Depends(get_session)):
    removed = unwrap(await session.remove_dish(body.day_of_week, body.meal_type, body.recipe_id))
    payload = plan_payload(session)
    payload["changed"] = removed
    return payload


@router.post("/swap")
async def swap_dish(body: SwapRequest, session: PlannerSession = Depends(get_session)):
    moved = unwrap(await session.swap(
        body.from_day, body.from_meal_type, body.recipe_id, body.to_day, body.to_meal_type
    ))
    payload = plan_payload(session)
    payload["changed"] = moved
    return payload


@router.post("/finalize")
async def finalize_plan(session: PlannerSession = Depends(get_session)):
    unwrap(await session.finalize())
    return plan_payload(session)


@router.post("/reset")
async def reset_plan(session: PlannerSession = Depends(get_session)):
    unwrap(await session.reset())
    return plan_payload(session)
