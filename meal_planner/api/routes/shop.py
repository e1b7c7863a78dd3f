"""
Shop routes for the FastAPI application.

Provides endpoints for:
- Generating the grocery list from the finalized plan
- Getting and editing the week's grocery list
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...data.models import GROCERY_CATEGORIES, GroceryList
from ...services.planner_session import PlannerSession
from ..dependencies import get_session, unwrap

logger = logging.getLogger(__name__)

router = APIRouter()


class AddItemRequest(BaseModel):
    """Request body for adding a manual item."""
    name: str = Field(min_length=1)
    category: str = "Other"


def list_payload(grocery_list: GroceryList, notices: Optional[List[str]] = None) -> dict:
    return {
        "success": True,
        "grocery_list": grocery_list.to_dict(),
        "progress": round(grocery_list.progress, 1),
        "notices": notices or [],
    }


async def _current_list(session: PlannerSession) -> GroceryList:
    return unwrap(await session.get_grocery_list())


@router.post("/generate")
async def generate_grocery_list(session: PlannerSession = Depends(get_session)):
    """
    Build the list for the finalized plan and merge it into the saved list.

    Returns:
        The merged list; 409 if the plan is not finalized or empty
    """
    result = await session.generate_grocery_list()
    grocery_list = unwrap(result)
    return list_payload(grocery_list, result.notices)


@router.get("")
async def get_grocery_list(session: PlannerSession = Depends(get_session)):
    return list_payload(await _current_list(session))


@router.post("/items")
async def add_item(body: AddItemRequest, session: PlannerSession = Depends(get_session)):
    if body.category not in GROCERY_CATEGORIES:
        raise HTTPException(status_code=422, detail=f"Unknown category: {body.category}")
    item = unwrap(await session.add_grocery_item(body.name, body.category))
    if item is None:
        raise HTTPException(status_code=422, detail="Item name is required")
    return list_payload(await _current_list(session))


@router.post("/items/{item_id}/toggle")
async def toggle_item(item_id: str, session: PlannerSession = Depends(get_session)):
    if not unwrap(await session.toggle_grocery_item(item_id)):
        raise HTTPException(status_code=404, detail=f"Item {item_id} not found")
    return list_payload(await _current_list(session))


@router.delete("/items/{item_id}")
async def remove_item(item_id: str, session: PlannerSession = Depends(get_session)):
    if not unwrap(await session.remove_grocery_item(item_id)):
        raise HTTPException(status_code=404, detail=f"Item {item_id} not found")
    return list_payload(await _current_list(session))


@router.post("/clear-checked")
async def clear_checked(session: PlannerSession = Depends(get_session)):
    removed = unwrap(await session.clear_checked_items())
    logger.info(f"Cleared {removed} checked items for {session.user_id}")
    payload = list_payload(await _current_list(session))
    payload["removed"] = removed
    return payload


@router.delete("")
async def clear_list(session: PlannerSession = Depends(get_session)):
    unwrap(await session.clear_grocery_list())
    return list_payload(await _current_list(session))
