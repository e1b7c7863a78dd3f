"""
Keyword-based grocery categorization.

Best-effort and deterministic: a name is checked against each category's
English and Chinese keywords in priority order, and the first category
with a keyword contained in the name wins.
"""

from typing import List, Tuple

OTHER = "Other"

# Priority order matters: "pepper" is Produce before it is a seasoning,
# "eggplant" is Produce before "egg" makes it Dairy.
CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Produce", (
        "vegetable", "tomato", "onion", "garlic", "pepper", "carrot", "cucumber",
        "broccoli", "spinach", "cabbage", "mushroom", "potato", "eggplant",
        "ginger", "scallion",
        "茄子", "番茄", "洋葱", "葱", "蒜", "辣椒", "胡萝卜", "黄瓜", "菠菜",
        "白菜", "蘑菇", "土豆", "姜", "青菜", "菜", "瓜", "豆腐",
    )),
    ("Meat & Seafood", (
        "chicken", "beef", "pork", "lamb", "fish", "shrimp", "meat", "duck", "seafood",
        "鸡", "牛", "猪", "羊", "鱼", "虾", "肉", "鸭", "排骨", "海鲜",
    )),
    ("Dairy", (
        "milk", "cream", "cheese", "butter", "egg",
        "牛奶", "奶", "蛋", "鸡蛋",
    )),
    ("Spices & Seasonings", (
        "salt", "sugar", "sauce", "oil", "vinegar", "soy", "pepper", "spice",
        "盐", "糖", "酱", "醋", "油", "生抽", "老抽", "料酒", "胡椒", "花椒", "调料",
    )),
    ("Pantry", (
        "rice", "noodle", "flour", "bread",
        "米", "面", "粉", "淀粉",
    )),
]

CATEGORIES = [category for category, _ in CATEGORY_KEYWORDS] + [OTHER]


def categorize(name: str) -> str:
    """
    Map an ingredient name to a shopping category.

    Args:
        name: Ingredient name in English or Chinese

    Returns:
        One of Produce, Meat & Seafood, Dairy, Spices & Seasonings, Pantry, Other
    """
    name_lower = name.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(word in name_lower for word in keywords):
            return category
    return OTHER
