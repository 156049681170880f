"""
Catalog event contract and bus plumbing shared by all services.

Contract:
    - EventType and the four envelope classes (ProductCreatedEvent,
      ProductUpdatedEvent, ProductDeletedEvent, LowStockWarningEvent)
    - encode_event / decode_event / transport_headers

Processing:
    - EventProcessor: decode -> route -> apply, reports a MessageOutcome
    - EventHandler / EventPublisher interfaces

The Kafka adapters live in ``catalog_common.events.kafka_client`` and are
imported explicitly by the services that own a bus connection.
"""

from .base import EventHandler, EventPublisher
from .codec import decode_event, encode_event, transport_headers
from .processor import EventProcessor, MessageOutcome
from .schemas import (
    EVENT_SOURCE,
    EVENT_VERSION,
    LOW_STOCK_THRESHOLD,
    NOTIFICATIONS_TOPIC,
    PRODUCT_EVENTS_TOPIC,
    BaseEvent,
    EventMetadata,
    EventType,
    LowStockWarningData,
    LowStockWarningEvent,
    ProductCreatedData,
    ProductCreatedEvent,
    ProductDeletedData,
    ProductDeletedEvent,
    ProductEvent,
    ProductUpdatedData,
    ProductUpdatedEvent,
    format_timestamp,
    topic_for,
    utc_now,
)

__all__ = [
    # Interfaces
    "EventHandler",
    "EventPublisher",
    # Codec
    "decode_event",
    "encode_event",
    "transport_headers",
    # Processing
    "EventProcessor",
    "MessageOutcome",
    # Contract
    "BaseEvent",
    "EventMetadata",
    "EventType",
    "ProductEvent",
    "ProductCreatedData",
    "ProductCreatedEvent",
    "ProductUpdatedData",
    "ProductUpdatedEvent",
    "ProductDeletedData",
    "ProductDeletedEvent",
    "LowStockWarningData",
    "LowStockWarningEvent",
    # Constants
    "EVENT_SOURCE",
    "EVENT_VERSION",
    "LOW_STOCK_THRESHOLD",
    "NOTIFICATIONS_TOPIC",
    "PRODUCT_EVENTS_TOPIC",
    # Utility functions
    "format_timestamp",
    "topic_for",
    "utc_now",
]
