import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load .env before settings are read
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from promofye.core.config import settings, validate_config
from promofye.core.database import create_all_tables
from promofye.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from promofye.core.logging import configure_logging
from promofye.core.middleware.request_id import RequestIdMiddleware
from promofye.core.validation import validate_env
from promofye.api import admin, auth, billing, generate, health, history, metrics, subscription
from promofye.api import settings as settings_api
from promofye.features.plans.service import seed_plans


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("promofye")
    configure_logging(settings.ENV)
    validate_env()
    validate_config(strict=getattr(settings, "CONFIG_STRICT", False))
    create_all_tables()
    seed_plans()
    logger.info("Starting Promofye backend...")
    try:
        yield
    finally:
        logger.info("Stopping Promofye backend...")


def create_app() -> FastAPI:
    app = FastAPI(title="Promofye API", lifespan=lifespan)

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    # Starlette's class also covers router-level 404/405
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
    )

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(generate.router, prefix="/api/generate", tags=["generate"])
    app.include_router(history.router, prefix="/api/history", tags=["history"])
    app.include_router(settings_api.router, prefix="/api/settings", tags=["settings"])
    app.include_router(subscription.router, prefix="/api/subscription", tags=["subscription"])
    app.include_router(subscription.usage_router, prefix="/api", tags=["subscription"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
    app.include_router(billing.router, prefix="/api/billing", tags=["billing"])
    app.include_router(health.router)
    app.include_router(metrics.router)
    return app


app = create_app()
