"""
Runtime settings read from the environment (and a local .env file).
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from .data.models import LANG_EN, SUPPORTED_LANGUAGES
from .llm_provider import DEFAULT_MODEL


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    db_dir: str = "data"
    language: str = LANG_EN
    model: str = DEFAULT_MODEL
    dishes_per_meal: int = 2
    use_null_llm: bool = False
    anthropic_api_key: Optional[str] = None
    debug: bool = False
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        language = os.getenv("MEAL_PLANNER_LANGUAGE", LANG_EN).lower()
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"MEAL_PLANNER_LANGUAGE must be one of {SUPPORTED_LANGUAGES}, got {language!r}")

        dishes = int(os.getenv("DISHES_PER_MEAL", "2"))
        if dishes < 1:
            raise ValueError("DISHES_PER_MEAL must be at least 1")

        return cls(
            db_dir=os.getenv("MEAL_PLANNER_DB_DIR", "data"),
            language=language,
            model=os.getenv("MEAL_PLANNER_MODEL", DEFAULT_MODEL),
            dishes_per_meal=dishes,
            use_null_llm=_env_bool("USE_NULL_LLM"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            debug=_env_bool("DEBUG"),
            port=int(os.getenv("PORT", "5000")),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
