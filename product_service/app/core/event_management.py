"""
Product Service Event Management
Builds and tears down the Kafka publisher and the product event producer.
"""

from typing import Optional, Tuple

from catalog_common.events.kafka_client import KafkaEventPublisher
from catalog_common.utils.logging import setup_service_logging

from ..events.event_producers import ProductEventProducer
from .setting import ProductSettings, get_settings

logger = setup_service_logging(
    "product_service.events", log_level=get_settings().LOG_LEVEL
)


async def init_events(
    settings: ProductSettings,
) -> Tuple[KafkaEventPublisher, ProductEventProducer]:
    """Connect the Kafka publisher and wrap it in a product event producer"""
    logger.info(
        "Initializing event publishing infrastructure",
        extra={
            "operation": "init_events",
            "kafka_servers": settings.KAFKA_BOOTSTRAP_SERVERS,
            "service_name": settings.SERVICE_NAME,
        },
    )

    publisher = KafkaEventPublisher(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        client_id=f"{settings.SERVICE_NAME}-producer",
        max_retries=settings.KAFKA_CONNECT_RETRIES,
        retry_delay=2.0,
        publish_retries=settings.KAFKA_PUBLISH_RETRIES,
        topics=[settings.KAFKA_TOPIC_PRODUCT_EVENTS, settings.KAFKA_TOPIC_NOTIFICATIONS],
    )
    await publisher.start(timeout=30.0)

    producer = ProductEventProducer(
        publisher,
        source=settings.SERVICE_NAME,
        low_stock_threshold=settings.LOW_STOCK_THRESHOLD,
    )

    logger.info(
        "Event publishing infrastructure initialized",
        extra={
            "operation": "init_events_complete",
            "connected": publisher.is_connected,
        },
    )
    return publisher, producer


async def close_events(publisher: Optional[KafkaEventPublisher]) -> None:
    """Flush and close the Kafka publisher"""
    if publisher is None:
        return
    logger.info(
        "Closing event publishing infrastructure",
        extra={"operation": "close_events"},
    )
    await publisher.stop()
