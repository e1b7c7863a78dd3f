"""
FastAPI application for the weekly meal planner.

Services are built once in the lifespan and kept on ``app.state``:
- DatabaseInterface / PlanRepository (sqlite on a thread pool)
- LLM provider and the grocery fallback built on it
- SessionRegistry with one PlannerSession per user
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..data.database import DatabaseInterface
from ..data.repository import PlanRepository
from ..errors import MealPlannerError
from ..llm_provider import LLMProvider, get_llm_provider
from ..services.planner_session import PlannerSession, SessionRegistry
from ..shopping.aggregator import LLMGroceryFallback
from .dependencies import status_for

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[LLMProvider] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Runtime settings (defaults to the environment)
        provider: LLM provider override, e.g. NullLLMProvider in tests
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        logger.info(f"Starting meal planner API (db_dir={cfg.db_dir}, language={cfg.language})")

        db = DatabaseInterface(db_dir=cfg.db_dir)
        repository = PlanRepository(db)
        llm = provider or get_llm_provider(api_key=cfg.anthropic_api_key, use_null=cfg.use_null_llm)
        fallback = LLMGroceryFallback(llm, model=cfg.model)

        app.state.settings = cfg
        app.state.db = db
        app.state.repository = repository
        app.state.provider = llm
        app.state.registry = SessionRegistry(
            lambda user_id: PlannerSession(
                user_id,
                repository,
                fallback=fallback,
                language=cfg.language,
                dishes_per_meal=cfg.dishes_per_meal,
            )
        )
        logger.info(f"Services initialized (llm={'null' if llm.is_null else 'anthropic'})")

        yield

        logger.info("Meal planner API shutdown complete")

    app = FastAPI(
        title="Weekly Meal Planner API",
        description="Weekly meal plans, cuisine requests and grocery lists",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MealPlannerError)
    async def planner_error_handler(request: Request, exc: MealPlannerError):
        logger.error(f"Unhandled planner error on {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": {"error": exc.user_message, "error_type": type(exc).__name__}},
        )

    @app.get("/health")
    async def health_check(request: Request):
        """Returns 200 if storage is reachable."""
        try:
            await request.app.state.repository.list_cuisines()
            return {"status": "healthy", "llm": "null" if request.app.state.provider.is_null else "anthropic"}
        except MealPlannerError as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})

    from .routes import chat, plan, shop

    app.include_router(plan.router, prefix="/api/plan", tags=["planning"])
    app.include_router(shop.router, prefix="/api/shop", tags=["shopping"])
    app.include_router(chat.router, prefix="/api/chat", tags=["chat"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "meal_planner.api.main:app",
        host="0.0.0.0",
        port=get_settings().port,
        reload=get_settings().debug,
        log_level="debug" if get_settings().debug else "info",
    )
