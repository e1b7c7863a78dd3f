"""
Chat routes for the FastAPI application.

Questions are answered from the current plan; planning requests
("4 days chinese, 3 days italian") are applied to the plan right away.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from ...plan_chat import PlanChat
from ...services.planner_session import PlannerSession
from ..dependencies import get_session, unwrap

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatRequest(BaseModel):
    """Request body for chat endpoint."""
    message: str = Field(min_length=1)


class ChatResponse(BaseModel):
    """Response from chat endpoint."""
    success: bool
    reply: str
    plan_changed: bool = False
    plan: Optional[dict] = None
    notices: List[str] = Field(default_factory=list)


def get_chat(request: Request, session: PlannerSession = Depends(get_session)) -> PlanChat:
    """Dependency to get (or start) the caller's chat."""
    if session.chat is None:
        settings = request.app.state.settings
        session.chat = PlanChat(request.app.state.provider, model=settings.model, language=session.language)
    return session.chat


@router.post("", response_model=ChatResponse)
async def send_message(
    body: ChatRequest,
    request: Request,
    session: PlannerSession = Depends(get_session),
    chat: PlanChat = Depends(get_chat),
):
    """
    Send one message.

    Returns:
        ChatResponse; ``plan`` is set when the message changed the plan
    """
    cuisines = await request.app.state.repository.list_cuisines()
    reply = await chat.send(body.message, session.store, cuisines)

    if not reply.has_action:
        return ChatResponse(success=True, reply=reply.reply)

    logger.info(f"Chat applying {len(reply.assignments)} cuisine assignments for {session.user_id}")
    result = await session.apply_cuisine_plan(reply.assignments)
    unwrap(result)
    return ChatResponse(
        success=True,
        reply=reply.reply,
        plan_changed=True,
        plan=session.store.plan.to_dict(),
        notices=result.notices,
    )


@router.get("/history")
async def chat_history(chat: PlanChat = Depends(get_chat)):
    return {"messages": chat.history()}


@router.delete("/session")
async def delete_session(request: Request, x_user_id: str = Header("default")):
    """
    Forget the caller's session, chat history included.
    """
    if not request.app.state.registry.drop(x_user_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "deleted", "user_id": x_user_id}
