"""
Conversational meal planning assistant.

Answers questions about the current plan and turns requests like
"4 days chinese, 3 days italian" into cuisine assignments. Requests the
Python parser understands never reach the LLM; everything else is sent
with the current plan and the catalog's cuisines as context, and the JSON
answer is parsed defensively.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List

from .data.models import DAYS_OF_WEEK, LANG_EN
from .errors import AiFallbackParseError, ChatUnavailableError
from .llm_json import parse_json_response
from .llm_provider import DEFAULT_MODEL, LLMProvider
from .planning.cuisine_planner import CuisineAssignment
from .planning.slot_store import MealSlotStore
from .requirements_parser import parse_cuisine_request

logger = logging.getLogger(__name__)

ACTION_GENERATE_BY_CUISINE = "GENERATE_BY_CUISINE"

WELCOME_MESSAGE = (
    "Hi! Ask me anything about your meal plan, or tell me what to cook, "
    "e.g. \"4 days Chinese, 3 days Italian\"."
)

SYSTEM_PROMPT = """You are a smart meal planning assistant.
You can answer questions about the current meal plan AND generate new weekly meal plans.

ALWAYS respond with ONLY valid JSON, no markdown, no text outside the JSON.

FORMAT A - answering a question (no plan change):
{{"reply": "your answer here", "action": null}}

FORMAT B - generating or changing the meal plan:
{{"reply": "friendly summary of what you planned", "action": {{"type": "GENERATE_BY_CUISINE", "assignments": [
  {{"dayOfWeek": 0, "lunch": "<cuisine>", "dinner": "<cuisine>"}},
  ...
  {{"dayOfWeek": 6, "lunch": "<cuisine>", "dinner": "<cuisine>"}}
]}}}}

Rules for FORMAT B:
- dayOfWeek: 0=Monday 1=Tuesday 2=Wednesday 3=Thursday 4=Friday 5=Saturday 6=Sunday
- Include all 7 days (dayOfWeek 0 through 6) in the assignments array
- Use ONLY cuisine names from the Available Cuisines list below
- "X days [Cuisine A] and Y days [Cuisine B]" means Cuisine A for days 0..X-1, Cuisine B for days X..X+Y-1
- If a cuisine isn't in the list, pick the closest available alternative and mention it in the reply
- lunch and dinner can have different cuisines if the user asks

Current week: {week_range}

Current meal plan:
{current_plan}

Available Cuisines in the recipe database:
{cuisines}"""


@dataclass
class ChatMessage:
    role: str  # "user" or "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatReply:
    """Assistant answer, with assignments when the plan should change."""
    reply: str
    assignments: List[CuisineAssignment] = field(default_factory=list)
    used_llm: bool = False

    @property
    def has_action(self) -> bool:
        return bool(self.assignments)


def week_range_label(week_start: str) -> str:
    start = date.fromisoformat(week_start)
    end = start + timedelta(days=6)
    return f"{start.strftime('%B')} {start.day} - {end.strftime('%B')} {end.day}, {end.year}"


def build_system_prompt(store: MealSlotStore, available_cuisines: List[str], language: str = LANG_EN) -> str:
    """System prompt with the current plan and the catalog's cuisines."""
    plan_lines = store.describe(language) if store.meal_count else []
    return SYSTEM_PROMPT.format(
        week_range=week_range_label(store.week_start),
        current_plan="\n".join(plan_lines) or "(no meals planned yet)",
        cuisines=", ".join(available_cuisines) or "(none)",
    )


def parse_chat_response(raw: str) -> ChatReply:
    """
    Parse the assistant's JSON answer.

    Non-JSON output becomes a plain reply with no action; an action with a
    wrong type or no usable assignments is ignored.
    """
    try:
        data = parse_json_response(raw)
    except AiFallbackParseError:
        logger.warning("[CHAT] Assistant returned non-JSON, showing it as plain text")
        return ChatReply(reply=raw.strip(), used_llm=True)

    if not isinstance(data, dict):
        return ChatReply(reply=raw.strip(), used_llm=True)

    reply = str(data.get("reply") or "Done!")
    action = data.get("action")
    assignments: List[CuisineAssignment] = []
    if isinstance(action, dict) and action.get("type") == ACTION_GENERATE_BY_CUISINE:
        for entry in action.get("assignments") or []:
            if isinstance(entry, dict):
                assignment = CuisineAssignment.from_dict(entry)
                if assignment is not None:
                    assignments.append(assignment)

    return ChatReply(reply=reply, assignments=assignments, used_llm=True)


def _describe_assignments(assignments: List[CuisineAssignment]) -> str:
    parts = []
    for a in assignments:
        if a.lunch == a.dinner:
            parts.append(f"{DAYS_OF_WEEK[a.day_of_week]}: {a.lunch}")
        else:
            parts.append(f"{DAYS_OF_WEEK[a.day_of_week]}: {a.lunch} lunch, {a.dinner} dinner")
    return "; ".join(parts)


class PlanChat:
    """Chat session over one MealSlotStore."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str = DEFAULT_MODEL,
        language: str = LANG_EN,
        max_history: int = 20,
    ):
        self.provider = provider
        self.model = model
        self.language = language
        self.max_history = max_history
        self.messages: List[ChatMessage] = [ChatMessage("assistant", WELCOME_MESSAGE)]

    async def send(
        self,
        text: str,
        store: MealSlotStore,
        available_cuisines: List[str],
    ) -> ChatReply:
        """
        Handle one user message.

        The exchange is recorded only once it completes, so a failed LLM
        call leaves the history as it was.

        Args:
            text: What the user typed
            store: Plan the conversation is about
            available_cuisines: Cuisine labels in the catalog

        Returns:
            ChatReply; ``assignments`` is non-empty when the plan should change

        Raises:
            ChatUnavailableError: If the LLM provider call failed
        """
        assignments = parse_cuisine_request(text, available_cuisines)
        if assignments:
            logger.info(f"[CHAT] Parsed request without LLM: {len(assignments)} days")
            reply = ChatReply(reply=f"Planned {_describe_assignments(assignments)}.", assignments=assignments)
        else:
            reply = await self._ask_llm(text, store, available_cuisines)

        self.messages.append(ChatMessage("user", text))
        self.messages.append(ChatMessage("assistant", reply.reply))
        self._trim()
        return reply

    def _trim(self):
        # Keep the welcome message plus the most recent turns
        if len(self.messages) - 1 > self.max_history:
            self.messages = self.messages[:1] + self.messages[-self.max_history:]

    async def _ask_llm(self, text: str, store: MealSlotStore, available_cuisines: List[str]) -> ChatReply:
        system = build_system_prompt(store, available_cuisines, self.language)
        # Skip the welcome message
        history = [m.to_dict() for m in self.messages[1:]]

        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(
                None,
                lambda: self.provider.complete(
                    text,
                    system=system,
                    response_format="json",
                    model=self.model,
                    max_tokens=800,
                    history=history,
                ),
            )
        except Exception as e:
            logger.error(f"[CHAT] LLM call failed: {e}")
            raise ChatUnavailableError(str(e)) from e
        logger.info(f"[CHAT] LLM answered ({len(raw)} chars)")
        return parse_chat_response(raw)

    def history(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self.messages]
