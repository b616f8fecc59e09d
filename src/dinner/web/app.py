"""
Dinner, Decided - FastAPI application.

`create_app` wires services, routers, CORS and the DinnerError handler.
Every domain failure leaves as structured JSON:

    {"error": "<code>", "message": "...", "helpText": "...", "kind": "..."}
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dinner import __version__
from dinner.config import configure_logging, settings
from dinner.core.errors import (
    DinnerError,
    GenerationError,
    GenerationErrorKind,
    GroceryItemNotFound,
    GroceryListNotFound,
    HouseholdNotFound,
    InvalidMealData,
    MealNotFound,
    MemberNotFound,
    NoActivePlan,
    PlanNotFound,
    StalePlanVersion,
)
from dinner.db.memory import MemoryStore
from dinner.db.seed import seed_demo_data
from dinner.llm.prompt_logger import enable_prompt_logging
from dinner.services import Services, build_services
from dinner.web import grocery_routes, household_routes, plan_routes

logger = logging.getLogger(__name__)

NOT_FOUND_ERRORS = (
    NoActivePlan,
    PlanNotFound,
    MealNotFound,
    GroceryListNotFound,
    GroceryItemNotFound,
    HouseholdNotFound,
    MemberNotFound,
)

GENERATION_STATUS: dict[GenerationErrorKind, int] = {
    GenerationErrorKind.RATE_LIMITED: 429,
    GenerationErrorKind.QUOTA_EXCEEDED: 402,
    GenerationErrorKind.AUTH_FAILED: 502,
    GenerationErrorKind.TIMEOUT: 504,
    GenerationErrorKind.UNKNOWN: 502,
}


def status_for(error: DinnerError) -> int:
    if isinstance(error, NOT_FOUND_ERRORS):
        return 404
    if isinstance(error, StalePlanVersion):
        return 409
    if isinstance(error, InvalidMealData):
        return 422
    if isinstance(error, GenerationError):
        return GENERATION_STATUS[error.kind]
    return 500


async def dinner_error_handler(request: Request, exc: DinnerError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.code}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(services: Services | None = None) -> FastAPI:
    """
    Build the application.

    Pass `services` to run against a prepared store/generator (tests);
    otherwise they are built, and the demo data seeded, at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        if settings.dinner_log_prompts:
            enable_prompt_logging(True)

        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
            store = app.state.services.store
            if settings.seed_demo_data and isinstance(store, MemoryStore):
                await seed_demo_data(store)

        logger.info(f"Dinner, Decided {__version__} started ({settings.dinner_env})")
        yield

    app = FastAPI(title="Dinner, Decided", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DinnerError, dinner_error_handler)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__, "demoMode": not settings.has_openai}

    app.include_router(household_routes.router)
    app.include_router(plan_routes.router)
    app.include_router(grocery_routes.router)

    return app


app = create_app()
