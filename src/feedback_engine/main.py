"""
FastAPI application entry point.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from feedback_engine import __version__
from feedback_engine.config import get_settings
from feedback_engine.dialog.router import router as sms_webhook_router
from feedback_engine.feedback.router import router as feedback_router
from feedback_engine.shared.database import get_database_manager
from feedback_engine.shared.exceptions import (
    AppError,
    AuthenticationError,
    OrganizationNotFoundError,
    PersistenceError,
)
from feedback_engine.shared.logging import correlation_id_var, get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Application starting", extra={"env": settings.app_env})

    if settings.database_auto_create:
        await get_database_manager().create_all()
        logger.info("Database tables ensured")

    yield

    logger.info("Shutting down application")
    await get_database_manager().close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Feedback Engine API",
        description="Feedback collection over a batch API and SMS dialogs",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        token = correlation_id_var.set(request.headers.get("x-request-id") or str(uuid4()))
        try:
            return await call_next(request)
        finally:
            correlation_id_var.reset(token)

    # Map domain exceptions to HTTP responses
    @app.exception_handler(AuthenticationError)
    async def _unauthorized(_: Request, exc: AuthenticationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": exc.message})

    @app.exception_handler(OrganizationNotFoundError)
    async def _unknown_webhook(_: Request, exc: OrganizationNotFoundError) -> PlainTextResponse:
        return PlainTextResponse(exc.message, status_code=status.HTTP_404_NOT_FOUND)

    @app.exception_handler(PersistenceError)
    async def _persistence(_: Request, exc: PersistenceError) -> JSONResponse:
        logger.error(
            "Unhandled persistence error",
            extra={"code": exc.code, "session_id": str(exc.session_id) if exc.session_id else None},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to save feedback"},
        )

    @app.exception_handler(AppError)
    async def _app_error(_: Request, exc: AppError) -> JSONResponse:
        logger.error("Unhandled application error", extra={"code": exc.code})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    # Request shape errors (bad JSON, missing fields) -> 400 {"error"}
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(f"{field}: {error['msg']}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body", "details": errors},
        )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(feedback_router)
    app.include_router(sms_webhook_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
