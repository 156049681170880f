"""
Notification Service FastAPI Application
========================================

Consumes low-stock warnings from the ``notifications`` topic and pushes
them over WebSocket to the dashboard clients subscribed to that seller.
"""

import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog_common.events.kafka_client import KafkaEventConsumer
from catalog_common.utils.logging import setup_service_logging

from .api.v1.health import router as health_router
from .api.websocket import router as websocket_router
from .core.settings import get_settings
from .events.consumers import NotificationEventProcessor
from .services.subscriptions import SubscriptionRouter

settings = get_settings()
environment = os.getenv("ENVIRONMENT", settings.ENVIRONMENT).lower()
enable_file_logging = environment in ["production", "staging"]

logger = setup_service_logging(
    "notification_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the subscription router and the Kafka consumer for the app's lifetime."""
    startup_start = time.time()
    logger.info(
        "Starting notification service initialization",
        extra={"environment": environment, "service_version": settings.APP_VERSION},
    )

    subscription_router = SubscriptionRouter(send_timeout=settings.SEND_TIMEOUT_SECONDS)
    app.state.subscription_router = subscription_router
    app.state.event_consumer = None

    if settings.CONSUMER_ENABLED:
        consumer = KafkaEventConsumer(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            topic=settings.KAFKA_TOPIC_NOTIFICATIONS,
            group_id=settings.KAFKA_GROUP_ID,
            client_id=f"{settings.SERVICE_NAME}-consumer",
            processor=NotificationEventProcessor(subscription_router),
            max_retries=settings.KAFKA_CONNECT_RETRIES,
            auto_offset_reset=settings.KAFKA_AUTO_OFFSET_RESET,
        )
        await consumer.start()
        app.state.event_consumer = consumer
    else:
        logger.warning("Kafka consumer disabled, no notifications will be pushed")

    logger.info(
        "Notification service started successfully",
        extra={"total_startup_duration_ms": int((time.time() - startup_start) * 1000)},
    )

    yield

    logger.info("Starting notification service shutdown")
    if app.state.event_consumer is not None:
        await app.state.event_consumer.stop()
    logger.info("Notification service shutdown completed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(health_router, tags=["Health"])
    app.include_router(websocket_router, tags=["Notifications"])

    logger.info("API routes configured", extra={"routers": ["health", "websocket"]})
    return app


app = create_app()
