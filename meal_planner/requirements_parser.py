"""
Parse cuisine planning requests into per-day CuisineAssignment objects.

Python-first parser: no LLM required for typical cases. Uses the cuisine
vocabulary from meal_planner.cuisine_canon plus whatever cuisine labels the
catalog actually holds.

Examples:
    "4 days chinese, 3 days italian"
    "all sichuan"
    "monday thai, tuesday lunch japanese"
    "italian monday and tuesday, cantonese wednesday"
"""

import re
from typing import Iterable, List, Optional, Tuple

from .cuisine_canon import ANY_CUISINE, known_cuisine_words
from .data.models import DINNER, LUNCH
from .planning.cuisine_planner import CuisineAssignment

# Day name to index mapping (0 = Monday)
DAY_NAMES = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1, "tues": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3, "thur": 3, "thurs": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
    "周一": 0, "星期一": 0,
    "周二": 1, "星期二": 1,
    "周三": 2, "星期三": 2,
    "周四": 3, "星期四": 3,
    "周五": 4, "星期五": 4,
    "周六": 5, "星期六": 5,
    "周日": 6, "星期日": 6, "星期天": 6,
}

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7,
    "a": 1, "an": 1,
}

MEAL_WORDS = {
    "lunch": LUNCH, "lunches": LUNCH, "午餐": LUNCH, "午饭": LUNCH,
    "dinner": DINNER, "dinners": DINNER, "supper": DINNER, "晚餐": DINNER, "晚饭": DINNER,
}

SURPRISE_PATTERNS = ["surprise me", "surprise", "dealer's choice", "your choice", "anything"]

_COUNT_CLAUSE = re.compile(
    r"\b(\d+|one|two|three|four|five|six|seven|a|an)\s+days?\s+(?:of\s+)?(.+?)(?=,|;|\.|\band\b|\bthen\b|$)"
)
_ALL_PATTERN = re.compile(r"\b(?:all|every\s*day|whole\s+week|all\s+week)\s+(.+)$")
_QUESTION = re.compile(r"^(?:what|which|how|why|when|is|are|does|do)\b|[?？]\s*$")


def parse_cuisine_request(
    message: str,
    available_cuisines: Optional[Iterable[str]] = None,
) -> List[CuisineAssignment]:
    """
    Parse a request into seven CuisineAssignments (Monday..Sunday).

    Args:
        message: Natural language request
        available_cuisines: Cuisine labels present in the catalog

    Returns:
        Seven assignments, or [] if no cuisine was recognized

    Examples:
        parse_cuisine_request("4 days chinese, 3 days italian")
        -> Mon-Thu chinese, Fri-Sun italian (lunch and dinner)
    """
    msg_lower = message.lower().strip()
    if not msg_lower:
        return []
    # Questions about the plan are answered, not applied
    if _QUESTION.search(msg_lower):
        return []

    vocabulary = [w for w in known_cuisine_words(available_cuisines) if w != ANY_CUISINE]
    assignments = [CuisineAssignment(day_of_week=d) for d in range(7)]

    # "4 days chinese, 3 days italian": consecutive runs from Monday
    count_clauses = _COUNT_CLAUSE.findall(msg_lower)
    if count_clauses:
        next_day = 0
        matched = False
        for count_text, phrase in count_clauses:
            count = NUMBER_WORDS.get(count_text) or int(count_text)
            cuisine = _find_cuisine(phrase, vocabulary)
            if not cuisine:
                next_day += count
                continue
            meal_type = _find_meal_type(phrase)
            for day in range(next_day, min(next_day + count, 7)):
                _assign(assignments[day], cuisine, meal_type)
                matched = True
            next_day += count
        return assignments if matched else []

    # "all italian", "every day sichuan"
    all_match = _ALL_PATTERN.search(msg_lower)
    if all_match:
        cuisine = _find_cuisine(all_match.group(1), vocabulary)
        if cuisine:
            meal_type = _find_meal_type(all_match.group(1))
            for assignment in assignments:
                _assign(assignment, cuisine, meal_type)
            return assignments

    # Global cuisine without day specifiers: "make me thai food"
    if not _has_day_specifiers(msg_lower):
        cuisine = _find_cuisine(msg_lower, vocabulary)
        if not cuisine:
            return []
        meal_type = _find_meal_type(msg_lower)
        for assignment in assignments:
            _assign(assignment, cuisine, meal_type)
        return assignments

    # Day-specific clauses
    matched = False
    for clause in _split_into_clauses(msg_lower):
        days, remaining = _extract_days_from_clause(clause)
        if not days:
            continue
        if any(pattern in remaining for pattern in SURPRISE_PATTERNS):
            continue
        cuisine = _find_cuisine(remaining, vocabulary)
        if not cuisine:
            continue
        meal_type = _find_meal_type(remaining)
        for day in days:
            _assign(assignments[day], cuisine, meal_type)
            matched = True

    return assignments if matched else []


def _assign(assignment: CuisineAssignment, cuisine: str, meal_type: Optional[str]):
    """Set one meal's cuisine, or both when no meal was named."""
    if meal_type in (None, LUNCH):
        assignment.lunch = cuisine
    if meal_type in (None, DINNER):
        assignment.dinner = cuisine


def _word_pattern(word: str) -> str:
    # ASCII words need boundaries ("sun" must not match inside "sunday");
    # CJK labels are matched as-is.
    if word.isascii():
        return rf"(?<![a-z]){re.escape(word)}(?![a-z])"
    return re.escape(word)


def _find_cuisine(text: str, vocabulary: List[str]) -> Optional[str]:
    """Return the longest known cuisine word in ``text``, if any."""
    for word in vocabulary:
        if re.search(_word_pattern(word), text):
            return word
    return None


def _find_meal_type(text: str) -> Optional[str]:
    for word, meal_type in MEAL_WORDS.items():
        if re.search(_word_pattern(word), text):
            return meal_type
    return None


def _has_day_specifiers(message: str) -> bool:
    """Check if message contains day names as whole words."""
    # Word boundaries avoid matching "fri" in "friendly"
    return any(re.search(_word_pattern(day), message) for day in DAY_NAMES)


def _split_into_clauses(message: str) -> List[str]:
    """Split message into day-specific clauses on commas, semicolons and periods."""
    parts = re.split(r"[,.;，。；]", message)
    return [p.strip() for p in parts if p.strip()]


def _extract_days_from_clause(clause: str) -> Tuple[List[int], str]:
    """
    Extract day indices from a clause.

    Returns:
        (list of day indices, remaining text without day names)
    """
    indices: List[int] = []
    remaining = clause
    # Longest names first so "星期一" is consumed before a shorter overlap
    for day in sorted(DAY_NAMES, key=len, reverse=True):
        pattern = _word_pattern(day)
        if re.search(pattern, remaining):
            idx = DAY_NAMES[day]
            if idx not in indices:
                indices.append(idx)
            remaining = re.sub(pattern, " ", remaining)

    return sorted(indices), " ".join(remaining.split())
