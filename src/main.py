"""
GymFlow API entry point.

create_app() wires settings, CORS, the routers and the exception
handlers that turn domain errors into HTTP status codes.

Run locally with:
    uvicorn src.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .api.routes import (
    activity_templates,
    benchmark_templates,
    health,
    schedule_templates,
    workout_programs,
)
from .config.settings import get_settings
from .core.access import GymRequiredError, PermissionDenied
from .infrastructure.snowflake.repositories import NotFoundError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Runs once on startup and once on shutdown.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "GymFlow API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {"snowflake": settings.snowflake_mock_mode},
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Logged rather than fatal so local development works with a partial .env
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("GymFlow API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Gym management API.

        ## Features

        - Weekly schedule templates with location and coach conflict checks
        - Block / week / day workout programs with per-block volume analysis
        - A shared catalog of activity templates and their activity groups
        - Benchmark templates with type/unit checks and tags

        ## Authentication

        All `/api` endpoints require a bearer token (`Authorization: Bearer <jwt>`).
        Non-admin users are always scoped to their own gym.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Configure allowed origins via CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        schedule_templates.router,
        prefix="/api/schedule-templates",
        tags=["Schedule Templates"],
    )

    app.include_router(
        workout_programs.router,
        prefix="/api/workout-programs",
        tags=["Workout Programs"],
    )

    app.include_router(
        activity_templates.router,
        prefix="/api/activity-templates",
        tags=["Activity Templates"],
    )

    app.include_router(
        benchmark_templates.router,
        prefix="/api/benchmark-templates",
        tags=["Benchmark Templates"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "GymFlow API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Domain errors raised below the routes map onto HTTP statuses here
    @app.exception_handler(GymRequiredError)
    async def gym_required_handler(request: Request, exc: GymRequiredError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(PermissionDenied)
    async def permission_denied_handler(request: Request, exc: PermissionDenied):
        logger.info(
            "Permission denied",
            extra={"path": request.url.path, "method": request.method, "reason": str(exc)}
        )
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": str(exc)},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": str(exc)},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Logs the traceback and returns a generic 500 body.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    # pydantic's ValidationError is a ValueError; a model failing inside a
    # handler is a server fault and must not reach the 400 mapping above
    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        return await global_exception_handler(request, exc)

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
