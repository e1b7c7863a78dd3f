"""
LLM Provider Abstraction.

Provides a unified interface for LLM calls that can be swapped between:
- AnthropicProvider: Real Claude API calls
- NullLLMProvider: Test stub for CI/CD without API keys

The planner only needs plain text completion (``complete``); JSON answers
are parsed by ``meal_planner.llm_json``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List, Any, Dict
import os
import logging

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

JSON_INSTRUCTION = "Respond with valid JSON only. No markdown, no text outside the JSON."


@dataclass
class MockTextBlock:
    """Minimal text block for NullLLM responses."""
    text: str
    type: str = "text"


@dataclass
class MockResponse:
    """Minimal response structure matching Anthropic API."""
    content: List[Any]
    stop_reason: str = "end_turn"
    model: str = "null-llm"


def response_text(response: Any) -> str:
    """Concatenate the text blocks of a messages response."""
    parts = [block.text for block in getattr(response, "content", []) if hasattr(block, "text")]
    return "".join(parts)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def create_message(
        self,
        model: str,
        max_tokens: int,
        messages: List[Dict[str, Any]],
        system: Optional[str] = None,
        **kwargs
    ) -> Any:
        """Create a message/completion request."""
        pass

    @property
    @abstractmethod
    def is_null(self) -> bool:
        """Return True if this is a null/mock provider."""
        pass

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        response_format: str = "json",
        model: str = DEFAULT_MODEL,
        max_tokens: int = 1500,
        history: Optional[List[Dict[str, Any]]] = None,
    ) -> str:
        """
        Single-turn text completion.

        Args:
            prompt: User message
            system: Optional system prompt
            response_format: "json" appends a JSON-only instruction to the system prompt
            model: Model id
            max_tokens: Response token limit
            history: Earlier conversation turns sent before ``prompt``

        Returns:
            Raw response text (not validated)
        """
        if response_format == "json":
            system = f"{system}\n\n{JSON_INSTRUCTION}" if system else JSON_INSTRUCTION

        messages = list(history or []) + [{"role": "user", "content": prompt}]
        response = self.create_message(
            model=model,
            max_tokens=max_tokens,
            messages=messages,
            system=system,
        )
        return response_text(response)


class AnthropicProvider(LLMProvider):
    """Real Anthropic Claude API provider."""

    def __init__(self, api_key: Optional[str] = None):
        from anthropic import Anthropic
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY required for AnthropicProvider")
        self.client = Anthropic(api_key=self.api_key)

    def create_message(
        self,
        model: str,
        max_tokens: int,
        messages: List[Dict[str, Any]],
        system: Optional[str] = None,
        **kwargs
    ) -> Any:
        params = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system:
            params["system"] = system
        params.update(kwargs)
        return self.client.messages.create(**params)

    @property
    def is_null(self) -> bool:
        return False


class NullLLMProvider(LLMProvider):
    """
    NullLLMProvider is NOT a mock of Anthropic behavior.
    It exists to:
    - run the service without an API key
    - verify control flow
    - assert call boundaries

    It always answers with the same fixed ``text``.
    """

    DEFAULT_TEXT = "[NullLLM: No real LLM call made]"

    def __init__(self, text: Optional[str] = None):
        self.text = text if text is not None else self.DEFAULT_TEXT
        self.call_count = 0
        self.last_messages = None
        self.last_model = None
        self.last_system = None
        logger.info("NullLLMProvider initialized - LLM calls will return canned responses")

    def create_message(
        self,
        model: str,
        max_tokens: int,
        messages: List[Dict[str, Any]],
        system: Optional[str] = None,
        **kwargs
    ) -> MockResponse:
        self.call_count += 1
        self.last_messages = messages
        self.last_model = model
        self.last_system = system

        logger.debug(f"NullLLM call #{self.call_count}: model={model}, messages={len(messages)}")

        return MockResponse(
            content=[MockTextBlock(text=self.text)],
            stop_reason="end_turn",
            model="null-llm"
        )

    @property
    def is_null(self) -> bool:
        return True


def get_llm_provider(
    api_key: Optional[str] = None,
    use_null: bool = False
) -> LLMProvider:
    """
    Get an LLM provider instance.

    Args:
        api_key: Optional API key (uses env var if not provided)
        use_null: Force use of NullLLMProvider (for testing)

    Returns:
        LLMProvider instance

    Environment Variables:
        USE_NULL_LLM: Set to "true" to use NullLLMProvider
        ANTHROPIC_API_KEY: API key for AnthropicProvider
    """
    if use_null or os.environ.get("USE_NULL_LLM", "").lower() == "true":
        return NullLLMProvider()

    # Try to create real provider, fall back to null if no API key
    api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        logger.warning("No ANTHROPIC_API_KEY found, using NullLLMProvider")
        return NullLLMProvider()

    return AnthropicProvider(api_key=api_key)
