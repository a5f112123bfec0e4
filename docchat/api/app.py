"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
error handlers and router registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from docchat.api.chat import router as chat_router
from docchat.api.errors import AppError, app_error_handler, request_validation_handler
from docchat.api.ingest import router as ingest_router
from docchat.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Log startup configuration and shutdown."""
    settings = get_settings()
    logger.info(f"Starting docchat API ({settings.environment})...")
    if not settings.retrieval_assistant_id:
        logger.warning("RETRIEVAL_ASSISTANT_ID is not set; /chat will return 503")
    if not settings.ingestion_assistant_id:
        logger.warning("INGESTION_ASSISTANT_ID is not set; /ingest will return 503")
    yield
    logger.info("Shutting down docchat API...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="docchat API",
        description=(
            "Streaming document Q&A. Ingests PDF documents into an upstream "
            "retrieval service and relays its chat event stream to clients "
            "as Server-Sent Events."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    application.add_exception_handler(AppError, app_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)

    application.include_router(chat_router)
    application.include_router(ingest_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "docchat"}

    return application


app = create_app()
