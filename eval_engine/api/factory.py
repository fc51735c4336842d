"""
API Factory

Centralized API setup with middleware, CORS, and monitoring configuration.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eval_engine.api.errors import register_exception_handlers
from eval_engine.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from eval_engine.api.router import router
from eval_engine.api.v1.endpoints.test_runs import close_streaming_executor
from eval_engine.core.config import settings
from eval_engine.core.logger import get_logger

logger = get_logger(__name__)


def setup_cors(app: FastAPI) -> None:
    """
    Setup CORS middleware with configurable origins.

    Args:
        app: FastAPI application instance
    """
    cors_origins = settings.cors_allow_origins_list

    if cors_origins and cors_origins != [""]:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=settings.cors__allow_credentials,
            allow_methods=settings.cors_allow_methods_list,
            allow_headers=settings.cors_allow_headers_list,
        )
        logger.info("CORS middleware configured for origins: %s", cors_origins)
    else:
        logger.info("CORS middleware skipped (no origins configured)")


def setup_logging_middleware(app: FastAPI) -> None:
    # Added last so it runs first and every request has an ID
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    logger.info("Request logging and ID middleware configured")


def setup_logfire_instrumentation(app: FastAPI) -> None:
    """
    Configure Logfire and instrument pydantic-ai, httpx and FastAPI.

    Args:
        app: FastAPI application instance
    """
    from eval_engine.core.logfire_config import initialize_logfire

    try:
        results = initialize_logfire(app)
    except Exception as e:
        logger.warning("Failed to initialize Logfire: %s", e)
        return

    if not results["configured"]:
        logger.debug("Logfire initialization skipped (disabled)")
        return

    enabled = [name for name, on in results["instrumentation"].items() if on]
    logger.info(
        "Logfire instrumentation enabled for: %s", ", ".join(enabled) or "nothing"
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await close_streaming_executor()
        logger.info("Endpoint HTTP client closed")


def create_api(
    title: str = settings.api__title,
    description: str = settings.api__description,
    version: str = settings.api__version,
    docs_url: str = settings.api__docs_url,
    redoc_url: str = settings.api__redoc_url,
    enable_cors: bool = True,
    enable_logfire: bool = True,
    mount_prefix: str = "/api",
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Response compression is deliberately not installed: it would buffer the
    run event stream.

    Args:
        title: API title
        description: API description
        version: API version
        docs_url: URL path for Swagger UI
        redoc_url: URL path for ReDoc
        enable_cors: Whether to enable CORS middleware
        enable_logfire: Whether to configure Logfire instrumentation
        mount_prefix: Prefix for mounting the API router

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        description=description,
        version=version,
        docs_url=docs_url,
        redoc_url=redoc_url,
        debug=settings.debug,
        lifespan=lifespan,
    )

    if enable_cors:
        setup_cors(app)

    setup_logging_middleware(app)
    register_exception_handlers(app)
    logger.info("Global exception handlers configured")

    if enable_logfire:
        setup_logfire_instrumentation(app)

    app.include_router(router, prefix=mount_prefix)

    logger.info("API factory created: %s v%s", title, version)
    return app


__all__ = ["create_api"]
