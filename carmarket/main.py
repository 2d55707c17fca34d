"""
Application entry point.
Run with:  uvicorn carmarket.main:app --reload

⚠️  DEVELOPMENT NOTE:
    A default admin user is seeded on startup while SEED_ADMIN is true
    (see carmarket/db/seeder.py). Disable it before deploying to production.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from carmarket.core.logging_config import configure_logging
from fastapi.middleware.cors import CORSMiddleware

from carmarket.core.config import settings
from carmarket.core.exceptions import AppError
from carmarket.api.v1.router import api_router
from carmarket.db.database import init_db
from carmarket.db.seeder import seed_admin

configure_logging()

logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map a domain error to its status code and a stable error code."""
    logger.info(
        "%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.error_code
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "detail": exc.detail},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures with their traceback and return an opaque 500."""
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    logger.info("Starting FastAPI application setup")
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=(
            "Backend API for a car marketplace where dealerships list offers "
            "against a shared catalog and buyers favorite, review and purchase them."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Middleware ──────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Error mapping ───────────────────────────────────────────────────────
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ── Routers ─────────────────────────────────────────────────────────────
    app.include_router(api_router)

    # ── Startup / shutdown events ───────────────────────────────────────────
    @app.on_event("startup")
    def on_startup() -> None:
        """Initialize the database and development seed data."""
        logger.info("Initializing database and seed data")
        init_db()
        if settings.SEED_ADMIN:
            # ⚠️ DEV ONLY – disable SEED_ADMIN in production
            seed_admin()

    return app


app = create_app()
