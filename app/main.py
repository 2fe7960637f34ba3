"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.config import settings
from app.core.exceptions import AppException
from app.core.session import CookieSessionStore
from app.database import check_database_connection, create_engine, create_session_factory
from app.middleware.error_handler import (
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.middleware.logging import LoggingMiddleware, configure_logging
from app.services.authenticator import Authenticator
from app.services.google_strategy import GoogleStrategy
from app.services.neon_client import NeonProvisioner
from app.services.schema_bootstrap import SchemaBootstrapper

# Configure logging
configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Builds every long-lived dependency on startup and releases them on shutdown.
    """
    # Startup
    logger.info("application_startup", environment=settings.environment)

    engine = create_engine(settings)
    http_client = httpx.AsyncClient()

    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.http_client = http_client
    app.state.session_store = CookieSessionStore.from_settings(settings)
    app.state.authenticator = Authenticator(
        [GoogleStrategy.from_settings(http_client, settings)],
        throw_on_error=True,
    )
    app.state.provisioner = NeonProvisioner(
        http_client,
        api_key=settings.neon_api_key,
        base_url=settings.neon_api_base_url,
        timeout=settings.provisioner_timeout_seconds,
        max_retries=settings.provisioner_max_retries,
        retry_backoff=settings.provisioner_retry_backoff_seconds,
    )
    app.state.bootstrapper = SchemaBootstrapper(
        dimensions=settings.embedding_dimensions,
        timeout=settings.bootstrap_timeout_seconds,
    )

    # Test database connection
    if await check_database_connection(engine):
        logger.info("database_connected")
    else:
        logger.error("database_connection_failed")

    yield

    # Shutdown
    logger.info("application_shutdown")

    await http_client.aclose()
    logger.info("http_client_closed")

    # Close database connections
    await engine.dispose()
    logger.info("database_connections_closed")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="OAuth login with a dedicated vector database provisioned per user",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add logging middleware
app.add_middleware(LoggingMiddleware)

# Add exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, general_exception_handler)  # type: ignore[arg-type]

# Include API router
app.include_router(api_router, prefix=settings.api_v1_prefix)

# Setup Prometheus instrumentation
Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/docs", "/redoc", "/openapi.json"],
    inprogress_name="http_requests_inprogress",
    inprogress_labels=True,
).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """
    Root endpoint.

    Returns:
        Welcome message
    """
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
