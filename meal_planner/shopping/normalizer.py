"""
Ingredient amount normalization and English display names.

Turns one ingredient record into a ``(quantity, unit)`` pair. Amounts come
in two shapes (free text such as "2 cups", or a structured quantity/unit)
and two languages.

Known limitation: fractions are not understood. "1/2 cup" reads the first
number only and yields quantity 1 with unit "/ cup". Kept as-is so existing
lists aggregate the same way.
"""

import re
from dataclasses import dataclass

from ..data.models import (
    LANG_EN,
    AmountFreeText,
    AmountStructured,
    RecipeIngredient,
)

# Unit used when a record carries no unit at all
GENERIC_UNITS = {
    "en": "item",
    "zh": "个",
}

_NUMERIC_RUN = re.compile(r"[\d.]+")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_DIGITS_AND_DOTS = re.compile(r"[\d.]")


@dataclass(frozen=True)
class NormalizedAmount:
    quantity: float
    unit: str


def generic_unit(language: str) -> str:
    return GENERIC_UNITS.get(language, GENERIC_UNITS[LANG_EN])


def parse_free_text(text: str, language: str = LANG_EN) -> NormalizedAmount:
    """Parse a free-text amount like "2 cups" or "300克".

    The first run of digits and dots gives the quantity (1 when there is
    none); everything that is not a digit or a dot becomes the unit.
    """
    quantity = 1.0
    run = _NUMERIC_RUN.search(text)
    if run:
        number = _LEADING_NUMBER.match(run.group(0))
        if number:
            quantity = float(number.group(0))

    unit = _DIGITS_AND_DOTS.sub("", text).strip()
    return NormalizedAmount(quantity=quantity, unit=unit or generic_unit(language))


def normalize_amount(ingredient: RecipeIngredient, language: str = LANG_EN) -> NormalizedAmount:
    """
    Resolve an ingredient's amount to a canonical quantity and unit.

    Args:
        ingredient: Ingredient record in either amount shape
        language: "en" or "zh", selects the generic unit

    Returns:
        NormalizedAmount; quantity defaults to 1 and unit to the generic
        noun when the record does not say
    """
    amount = ingredient.amount

    if isinstance(amount, AmountStructured):
        return NormalizedAmount(
            quantity=amount.quantity or 1,
            unit=amount.unit or generic_unit(language),
        )

    if isinstance(amount, AmountFreeText) and amount.text:
        return parse_free_text(amount.text, language)

    return NormalizedAmount(quantity=1, unit=generic_unit(language))


# =============================================================================
# CHINESE -> ENGLISH INGREDIENT NAMES
# =============================================================================
# Order matters for partial matching: the first key contained in a name wins.
INGREDIENT_TRANSLATIONS = {
    # Proteins
    "鸡": "Chicken", "鸡肉": "Chicken", "鸡胸": "Chicken Breast", "鸡腿": "Chicken Leg", "鸡翅": "Chicken Wings",
    "牛肉": "Beef", "牛": "Beef", "肥牛": "Beef Slices", "牛腩": "Beef Brisket",
    "猪肉": "Pork", "猪": "Pork", "五花肉": "Pork Belly", "排骨": "Pork Ribs", "猪肉末": "Ground Pork",
    "羊肉": "Lamb", "羊": "Lamb", "羊排": "Lamb Chops",
    "鱼": "Fish", "虾": "Shrimp", "虾仁": "Shrimp", "蟹": "Crab", "鱿鱼": "Squid",
    "豆腐": "Tofu", "嫩豆腐": "Soft Tofu", "老豆腐": "Firm Tofu", "鸡蛋": "Eggs", "蛋": "Eggs",
    # Vegetables
    "葱": "Scallion", "小葱": "Scallion", "大葱": "Green Onion", "洋葱": "Onion",
    "姜": "Ginger", "生姜": "Ginger", "蒜": "Garlic", "大蒜": "Garlic",
    "辣椒": "Chili Pepper", "青椒": "Green Pepper", "红椒": "Red Pepper", "干辣椒": "Dried Chili",
    "番茄": "Tomato", "西红柿": "Tomato", "土豆": "Potato", "马铃薯": "Potato",
    "茄子": "Eggplant", "黄瓜": "Cucumber", "胡萝卜": "Carrot", "萝卜": "Radish", "白萝卜": "White Radish",
    "白菜": "Chinese Cabbage", "大白菜": "Napa Cabbage", "小白菜": "Bok Choy", "娃娃菜": "Baby Cabbage",
    "青菜": "Green Vegetables", "菠菜": "Spinach", "生菜": "Lettuce", "芹菜": "Celery",
    "蘑菇": "Mushroom", "香菇": "Shiitake Mushroom", "金针菇": "Enoki Mushroom", "木耳": "Wood Ear Mushroom",
    "豆芽": "Bean Sprouts", "韭菜": "Chinese Chives", "香菜": "Cilantro", "花生": "Peanuts",
    "玉米": "Corn", "毛豆": "Edamame", "四季豆": "Green Beans", "豆角": "String Beans",
    "莲藕": "Lotus Root", "藕": "Lotus Root", "笋": "Bamboo Shoots", "冬笋": "Winter Bamboo Shoots",
    "西兰花": "Broccoli", "花菜": "Cauliflower", "南瓜": "Pumpkin", "冬瓜": "Winter Melon", "丝瓜": "Loofah",
    # Seasonings
    "盐": "Salt", "糖": "Sugar", "白糖": "White Sugar", "冰糖": "Rock Sugar",
    "酱油": "Soy Sauce", "生抽": "Light Soy Sauce", "老抽": "Dark Soy Sauce",
    "醋": "Vinegar", "米醋": "Rice Vinegar", "香醋": "Black Vinegar",
    "料酒": "Cooking Wine", "蚝油": "Oyster Sauce", "豆瓣酱": "Doubanjiang", "郫县豆瓣酱": "Pixian Doubanjiang",
    "芝麻油": "Sesame Oil", "香油": "Sesame Oil", "麻油": "Sesame Oil",
    "花椒": "Sichuan Peppercorn", "胡椒": "Pepper", "胡椒粉": "Pepper Powder", "花椒粉": "Sichuan Pepper Powder",
    "八角": "Star Anise", "桂皮": "Cinnamon", "香叶": "Bay Leaf",
    "五香粉": "Five Spice Powder", "十三香": "Thirteen Spice", "孜然": "Cumin",
    "味精": "MSG", "鸡精": "Chicken Powder", "淀粉": "Starch", "玉米淀粉": "Cornstarch",
    "食用油": "Cooking Oil", "油": "Oil", "植物油": "Vegetable Oil",
    # Staples
    "米": "Rice", "大米": "Rice", "米饭": "Cooked Rice", "面": "Noodles", "面条": "Noodles",
    "粉": "Rice Noodles", "米粉": "Rice Noodles", "粉丝": "Glass Noodles",
    "面粉": "Flour", "高汤": "Stock", "鸡汤": "Chicken Stock", "水": "Water",
}


def translate_ingredient(name: str) -> str:
    """Translate a Chinese ingredient name to English, if known.

    Exact matches win; otherwise the first table key contained in the name
    is used. Unknown names come back unchanged.
    """
    key = name.strip()
    if key in INGREDIENT_TRANSLATIONS:
        return INGREDIENT_TRANSLATIONS[key]

    for chinese, english in INGREDIENT_TRANSLATIONS.items():
        if chinese in key:
            return english

    return name


def display_name(name: str, language: str = LANG_EN) -> str:
    """Ingredient name as shown on a list in ``language``."""
    if language == LANG_EN:
        return translate_ingredient(name)
    return name
