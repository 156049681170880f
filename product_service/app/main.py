"""
Product Service FastAPI Application
==================================

Main application entry point for the Product Service microservice.
Owns the product catalog and publishes a catalog event for every committed
create, update and delete, plus low-stock warnings derived from updates.
"""

import os
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog_common.utils.logging import setup_service_logging

from .api.v1.health import router as health_router
from .api.v1.products import router as products_router
from .core.database import ProductServiceDatabaseManager
from .core.event_management import close_events, init_events
from .core.setting import get_settings

settings = get_settings()
environment = os.getenv("ENVIRONMENT", settings.ENVIRONMENT).lower()
enable_file_logging = environment in ["production", "staging"]

logger = setup_service_logging(
    "product_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


# Lifespan management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown."""
    startup_start = time.time()

    try:
        await _initialize_services(app, startup_start)
    except Exception as e:
        logger.error(
            "Failed to start product service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    yield

    await _shutdown_services(app)


async def _initialize_services(app: FastAPI, startup_start: float) -> None:
    """Initialize database and event publishing during startup."""
    logger.info(
        "Starting product service initialization",
        extra={
            "environment": environment,
            "debug_mode": settings.DEBUG,
            "file_logging_enabled": enable_file_logging,
            "service_version": settings.APP_VERSION,
        },
    )

    database_manager = ProductServiceDatabaseManager(
        settings.PRODUCT_DATABASE_URL, echo=settings.DEBUG
    )
    await database_manager.create_tables()
    app.state.database_manager = database_manager

    app.state.event_publisher = None
    app.state.event_producer = None
    if settings.EVENTS_ENABLED:
        publisher, producer = await init_events(settings)
        app.state.event_publisher = publisher
        app.state.event_producer = producer
    else:
        logger.warning("Event publishing disabled, product changes will not be published")

    logger.info(
        "Product service started successfully",
        extra={
            "total_startup_duration_ms": int((time.time() - startup_start) * 1000),
            "events_enabled": settings.EVENTS_ENABLED,
        },
    )


async def _shutdown_services(app: FastAPI) -> None:
    """Shutdown all application services gracefully."""
    shutdown_start = time.time()
    logger.info("Starting product service shutdown")

    await close_events(getattr(app.state, "event_publisher", None))

    database_manager = getattr(app.state, "database_manager", None)
    if database_manager is not None:
        await database_manager.close()

    logger.info(
        "Product service shutdown completed",
        extra={"shutdown_duration_ms": int((time.time() - shutdown_start) * 1000)},
    )


# Application factory
def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _setup_routers(app)
    return app


def _setup_routers(app: FastAPI) -> None:
    """Configure all application routers."""
    routers_info: list[dict[str, Any]] = []

    app.include_router(health_router, tags=["Health"])
    routers_info.append({"router": "health", "prefix": "", "tags": ["Health"]})

    app.include_router(products_router, prefix="/api/v1", tags=["Product Management"])
    routers_info.append(
        {"router": "products", "prefix": "/api/v1", "tags": ["Product Management"]}
    )

    logger.info(
        "API routes configured",
        extra={"total_routers": len(routers_info), "routers": routers_info},
    )


app = create_app()
