"""
Cuisine vocabulary and request matching.

Recipe cuisines are free text (mostly Chinese labels such as "川菜" or
"意式"), while requests arrive as casual English ("chinese", "sichuan")
from people or from the LLM. This module maps one onto the other:
- CUISINE_ALIASES: casual label -> stored label
- CHINESE_VARIANTS: regional labels that satisfy a "chinese" request
- matches(): tolerant comparison that degrades to substring matching
"""

from typing import Dict, Iterable, List, Optional, Set

ANY_CUISINE = "any"
CHINESE = "chinese"
CHINESE_FAMILY = "中式"

# =============================================================================
# ALIASES (lower-case request -> stored cuisine label)
# =============================================================================
CUISINE_ALIASES: Dict[str, str] = {
    # Chinese family and regions
    "chinese": CHINESE_FAMILY,
    "china": CHINESE_FAMILY,
    "中餐": CHINESE_FAMILY,
    "中国菜": CHINESE_FAMILY,
    "sichuan": "川菜",
    "szechuan": "川菜",
    "cantonese": "粤菜",
    "guangdong": "粤菜",
    "hunan": "湘菜",
    "shandong": "鲁菜",
    "jiangsu": "苏菜",
    "zhejiang": "浙菜",
    "fujian": "闽菜",
    "anhui": "徽菜",
    "northeastern": "东北菜",
    "dongbei": "东北菜",
    "northwestern": "西北菜",
    "yunnan": "云南菜",
    "guizhou": "贵州菜",
    "xinjiang": "新疆菜",
    "home-style": "家常菜",
    "home style": "家常菜",
    "homestyle": "家常菜",
    "cold dishes": "凉菜",
    "hot dishes": "热菜",
    # Other cuisines
    "italian": "意式",
    "italy": "意式",
    "western": "西式",
    "french": "法式",
    "japanese": "日式",
    "japan": "日式",
    "korean": "韩式",
    "korea": "韩式",
    "thai": "泰式",
    "thailand": "泰式",
    "vietnamese": "越南菜",
    "indian": "印度菜",
    "mexican": "墨西哥菜",
    "american": "美式",
    "southeast asian": "东南亚菜",
}

# =============================================================================
# CHINESE VARIANTS (stored labels in the Chinese family, lower-case)
# =============================================================================
CHINESE_VARIANTS: Set[str] = {
    CHINESE_FAMILY,
    "中餐",
    "中国菜",
    "川菜",
    "粤菜",
    "湘菜",
    "鲁菜",
    "苏菜",
    "浙菜",
    "闽菜",
    "徽菜",
    "东北菜",
    "西北菜",
    "云南菜",
    "贵州菜",
    "新疆菜",
    "家常菜",
    "凉菜",
    "热菜",
    "chinese",
    "sichuan",
    "cantonese",
    "home-style",
}


def resolve_cuisine(label: str) -> str:
    """Resolve a request label through the alias table (case-folded)."""
    key = label.strip().lower()
    return CUISINE_ALIASES.get(key, key)


def is_chinese_variant(label: Optional[str]) -> bool:
    return bool(label) and label.strip().lower() in CHINESE_VARIANTS


def matches(recipe_cuisine: Optional[str], requested_cuisine: str) -> bool:
    """
    Does a recipe's cuisine satisfy a requested cuisine?

    Checks, in order: "any"; missing recipe cuisine; alias resolution;
    exact match; Chinese family membership; substring containment in either
    direction.

    Args:
        recipe_cuisine: Cuisine stored on the recipe (may be None)
        requested_cuisine: Label from the person or the LLM

    Returns:
        True if the recipe should be considered a match
    """
    requested = (requested_cuisine or "").strip().lower()
    if requested == ANY_CUISINE:
        return True

    if recipe_cuisine is None:
        return False
    cuisine = recipe_cuisine.strip().lower()
    if not cuisine or not requested:
        return False

    resolved = resolve_cuisine(requested)
    if resolved == cuisine:
        return True

    if requested == cuisine:
        return True

    if (requested == CHINESE or resolved == CHINESE_FAMILY) and cuisine in CHINESE_VARIANTS:
        return True

    return requested in cuisine or cuisine in requested


def filter_by_cuisine(recipes: Iterable, requested_cuisine: str) -> List:
    """Recipes whose cuisine matches the request, in input order."""
    return [r for r in recipes if matches(r.cuisine, requested_cuisine)]


def normalize_cuisine(user_input: str, available: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Recognize a cuisine word in user input.

    Args:
        user_input: A single word or short phrase, e.g. "Sichuan" or "意式"
        available: Stored cuisine labels to accept verbatim

    Returns:
        The input (lower-cased) if it is a known alias, a Chinese variant or
        one of ``available``; "any" for "any"; otherwise None
    """
    key = user_input.strip().lower()
    if not key:
        return None
    if key == ANY_CUISINE:
        return ANY_CUISINE
    if key in CUISINE_ALIASES or key in CHINESE_VARIANTS:
        return key
    for label in available or []:
        if label and label.strip().lower() == key:
            return key
    return None


def known_cuisine_words(available: Optional[Iterable[str]] = None) -> List[str]:
    """All recognizable cuisine words, longest first for greedy matching."""
    words = set(CUISINE_ALIASES) | CHINESE_VARIANTS
    words.update(label.strip().lower() for label in (available or []) if label and label.strip())
    return sorted(words, key=len, reverse=True)
