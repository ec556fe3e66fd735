"""FastAPI application factory and configuration."""

import logging
import sys

import structlog
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.dependencies import get_storage
from src.api.routes import health_router, inbox_router, webhooks_router
from src.core.config import DEFAULT_VERIFY_TOKEN, Settings, settings
from src.core.exceptions import AppException, ConfigurationError, NotFound
from src.services.notifications.email import get_email_transport
from src.services.notifications.relay import get_relay_client


def configure_logging(config: Settings) -> None:
    """Route structlog through stdlib logging at the configured level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, config.log_level.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if config.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def check_settings(config: Settings) -> None:
    """Refuse to start in production with development secrets."""
    if config.is_production and config.webhook_verify_token == DEFAULT_VERIFY_TOKEN:
        raise ConfigurationError(
            "WEBHOOK_VERIFY_TOKEN must be set in production",
            details={"setting": "webhook_verify_token"},
        )


configure_logging(settings)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    check_settings(settings)

    logger.info(
        "Starting Property Inbox API",
        environment=settings.app_env,
        debug=settings.app_debug,
        relay_configured=get_relay_client().is_configured,
        email_configured=get_email_transport().is_configured,
    )

    storage = get_storage()

    # In-memory storage starts empty; give local runs something to route to
    if settings.is_development:
        from src.storage.memory import InMemoryStorage
        if isinstance(storage, InMemoryStorage):
            await storage.seed_demo_directory()
            logger.info("Seeded demo agent and listing for development")

    yield

    logger.info("Shutting down Property Inbox API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Property Inbox API",
        description="Inbound chat ingestion and agent routing for property listings",
        version="0.1.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # The agent dashboard polls the inbox from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [settings.app_base_url],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Map application errors raised by the inbox endpoints."""
        logger.warning(
            "Application exception",
            path=request.url.path,
            code=exc.code,
            message=exc.message,
            details=exc.details,
        )
        if isinstance(exc, NotFound):
            status_code = status.HTTP_404_NOT_FOUND
        else:
            status_code = status.HTTP_400_BAD_REQUEST
        return JSONResponse(
            status_code=status_code,
            content={
                "error": exc.code,
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            },
        )

    app.include_router(health_router)
    app.include_router(webhooks_router)
    app.include_router(inbox_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "service": "Property Inbox API",
            "version": "0.1.0",
            "status": "running",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.is_development,
    )
