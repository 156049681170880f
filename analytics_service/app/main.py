"""
Analytics Service FastAPI Application
====================================

Consumes ``product-events`` under the ``analytics-service`` consumer group,
projects every event into DynamoDB and archives it to S3, and serves
read-only analytics queries.
"""

import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from catalog_common.events.kafka_client import KafkaEventConsumer
from catalog_common.utils.logging import setup_service_logging

from .api.v1.analytics import router as analytics_router
from .api.v1.health import router as health_router
from .core.settings import get_settings
from .events.consumers import AnalyticsEventProcessor
from .services.projector import AnalyticsProjector
from .storage.dynamodb import AnalyticsStore
from .storage.s3 import EventArchiver

settings = get_settings()
environment = os.getenv("ENVIRONMENT", settings.ENVIRONMENT).lower()
enable_file_logging = environment in ["production", "staging"]

logger = setup_service_logging(
    "analytics_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the storage clients and the Kafka consumer for the app's lifetime."""
    startup_start = time.time()
    logger.info(
        "Starting analytics service initialization",
        extra={"environment": environment, "service_version": settings.APP_VERSION},
    )

    store = AnalyticsStore(
        table_name=settings.DYNAMODB_TABLE_NAME,
        region_name=settings.AWS_REGION,
        endpoint_url=settings.DYNAMODB_ENDPOINT,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
    )
    archiver = EventArchiver(
        historical_bucket=settings.S3_HISTORICAL_BUCKET,
        archive_bucket=settings.S3_ARCHIVE_BUCKET,
        region_name=settings.AWS_REGION,
        endpoint_url=settings.S3_ENDPOINT,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
    )
    app.state.analytics_store = store
    app.state.event_archiver = archiver
    app.state.event_consumer = None

    if settings.CONSUMER_ENABLED:
        consumer = KafkaEventConsumer(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            topic=settings.KAFKA_TOPIC_PRODUCT_EVENTS,
            group_id=settings.KAFKA_GROUP_ID,
            client_id=f"{settings.SERVICE_NAME}-consumer",
            processor=AnalyticsEventProcessor(AnalyticsProjector(store, archiver)),
            redelivery_backoff=settings.REDELIVERY_BACKOFF_SECONDS,
            max_retries=settings.KAFKA_CONNECT_RETRIES,
            shutdown_timeout=settings.SHUTDOWN_TIMEOUT_SECONDS,
        )
        await consumer.start()
        app.state.event_consumer = consumer
    else:
        logger.warning("Kafka consumer disabled, no events will be projected")

    logger.info(
        "Analytics service started successfully",
        extra={"total_startup_duration_ms": int((time.time() - startup_start) * 1000)},
    )

    yield

    logger.info("Starting analytics service shutdown")
    if app.state.event_consumer is not None:
        await app.state.event_consumer.stop()
    logger.info("Analytics service shutdown completed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.include_router(health_router, tags=["Health"])
    app.include_router(analytics_router, prefix="/api/v1", tags=["Analytics"])

    logger.info(
        "API routes configured",
        extra={"routers": ["health", "analytics"]},
    )
    return app


app = create_app()
