"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from taskhub.api import router as api_router
from taskhub.config import get_settings
from taskhub.db.session import close_db, init_db
from taskhub.exceptions import TaskHubError
from taskhub.middleware.logging import RequestLoggingMiddleware

logger = structlog.get_logger()
settings = get_settings()


def configure_logging() -> None:
    """Filter structlog output at the configured level."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    logger.info("app_starting", app_name=settings.app_name, version=settings.app_version)
    await init_db()
    logger.info("database_initialized")

    yield

    # Shutdown
    logger.info("app_stopping")
    await close_db()
    logger.info("database_closed")


async def taskhub_error_handler(request: Request, exc: TaskHubError) -> ORJSONResponse:
    """Render domain errors as ``{"detail": ..., "code": ...}``."""
    logger.info(
        "domain_error",
        code=exc.code,
        status_code=exc.http_status,
        detail=exc.message,
    )
    return ORJSONResponse(
        status_code=exc.http_status,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-user task management with sharing, recurrence and templates",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_exception_handler(TaskHubError, taskhub_error_handler)

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    # Trust proxy headers (X-Forwarded-Proto, X-Forwarded-For) from a reverse proxy
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    # Include API router
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()
