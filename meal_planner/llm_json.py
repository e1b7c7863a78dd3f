"""
Defensive JSON extraction from LLM responses.

Models wrap JSON in code fences, prepend a sentence, or leave trailing
commas. Malformed output is an expected outcome and is reported as
AiFallbackParseError rather than a bare json error.
"""

import json
import re
from typing import Any

from .errors import AiFallbackParseError

_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def strip_code_fences(content: str) -> str:
    """Remove a surrounding markdown code block if present."""
    content = content.strip()
    if content.startswith("```"):
        parts = content.split("```")
        if len(parts) >= 2:
            content = parts[1]
        if content.lower().startswith("json"):
            content = content[4:]
    return content.strip()


def _slice_json(content: str) -> str:
    """Trim prose before the first and after the last bracket."""
    starts = [i for i in (content.find("{"), content.find("[")) if i != -1]
    if not starts:
        return content
    start = min(starts)
    closing = "}" if content[start] == "{" else "]"
    end = content.rfind(closing)
    if end == -1:
        return content[start:]
    return content[start:end + 1]


def parse_json_response(content: str) -> Any:
    """
    Parse JSON out of an LLM response.

    Args:
        content: Raw response text

    Returns:
        Parsed JSON value

    Raises:
        AiFallbackParseError: If no valid JSON can be recovered
    """
    if not content or not content.strip():
        raise AiFallbackParseError("Empty response from AI")

    candidate = _slice_json(strip_code_fences(content))
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    try:
        return json.loads(_TRAILING_COMMA.sub(r"\1", candidate))
    except json.JSONDecodeError as e:
        raise AiFallbackParseError(f"AI returned malformed JSON: {e}") from e
