"""
Analytics Persistence Projector
===============================

Turns one catalog event into storage writes, in this order:

1. raw event-log record (pk=eventId), for audit and replay
2. S3 archive copy in both buckets
3. product analytics record (pk=sellerId#productId, sk=timestamp#eventType)

LowStockWarning stops after step 2. Any failure raises ``StorageError`` so
the consumer leaves the message for redelivery. Every written value derives
from the event alone, so projecting the same event twice produces the same
items.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from catalog_common.events import (
    BaseEvent,
    LowStockWarningEvent,
    ProductCreatedEvent,
    ProductDeletedEvent,
    ProductUpdatedEvent,
    format_timestamp,
)
from catalog_common.utils.logging import setup_service_logging

from ..storage.dynamodb import AnalyticsStore
from ..storage.s3 import EventArchiver
from .ttl import TTL_DAYS, calculate_ttl

logger = setup_service_logging("analytics_service.services.projector")


def _decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def field_delta(
    field: str,
    new_value: Any,
    changes: Iterable[str],
    previous_value: Optional[Any],
) -> Decimal:
    """``new - previous`` when ``field`` changed and its prior value is known"""
    if field not in changes or previous_value is None or new_value is None:
        return Decimal(0)
    return _decimal(new_value) - _decimal(previous_value)


class AnalyticsProjector:
    """Projects catalog events into the analytics table and the S3 archive"""

    def __init__(self, store: AnalyticsStore, archiver: EventArchiver):
        self.store = store
        self.archiver = archiver

    async def project(self, event: BaseEvent) -> None:
        logger.info(
            "Processing event for analytics",
            extra={
                "operation": "project_event",
                "event_id": event.event_id,
                "event_type": event.event_type,  # type: ignore[attr-defined]
                "product_id": event.data.product_id,  # type: ignore[attr-defined]
            },
        )

        await self.store.put_event_log(self.build_event_log(event))
        await self.archiver.archive(event)

        record = self.build_analytics_record(event)
        if record is not None:
            await self.store.put_analytics_record(record)

        logger.info(
            "Event projected",
            extra={
                "operation": "project_event",
                "event_id": event.event_id,
                "event_type": event.event_type,  # type: ignore[attr-defined]
                "analytics_record": record is not None,
            },
        )

    # ==============================================
    # RECORD BUILDERS
    # ==============================================

    def build_event_log(self, event: BaseEvent) -> Dict[str, Any]:
        timestamp = format_timestamp(event.timestamp)
        return {
            "pk": event.event_id,
            "sk": timestamp,
            "recordType": "event_log",
            "eventId": event.event_id,
            "eventType": event.event_type,  # type: ignore[attr-defined]
            "timestamp": timestamp,
            "source": event.source,
            "correlationId": event.correlation_id,
            "eventData": event.to_dict(),
            "processed": True,
            "ttl": calculate_ttl(TTL_DAYS["event_log"], event.timestamp),
        }

    def build_analytics_record(self, event: BaseEvent) -> Optional[Dict[str, Any]]:
        """Analytics item for ``event``, or None for kinds that have none"""
        if isinstance(event, ProductCreatedEvent):
            record = self._base_record(event, category=event.data.category)
            record.update(price=event.data.price, quantity=event.data.quantity)
            return record

        if isinstance(event, ProductUpdatedEvent):
            data = event.data
            previous_price = data.previous_state.get("price")
            previous_quantity = data.previous_state.get("quantity", data.previous_quantity)

            record = self._base_record(event, category=data.category)
            record.update(
                price=data.price,
                quantity=data.quantity,
                previousQuantity=data.previous_quantity,
                priceChange=field_delta("price", data.price, data.changes, previous_price),
                quantityChange=field_delta(
                    "quantity", data.quantity, data.changes, previous_quantity
                ),
            )
            return record

        if isinstance(event, ProductDeletedEvent):
            # History is append-only; the product no longer has a category
            return self._base_record(event, category="")

        if isinstance(event, LowStockWarningEvent):
            return None

        raise TypeError(f"No analytics projection for {type(event).__name__}")

    def _base_record(self, event: BaseEvent, category: str) -> Dict[str, Any]:
        data = event.data  # type: ignore[attr-defined]
        timestamp = format_timestamp(event.timestamp)
        return {
            "pk": event.partition_key,
            "sk": f"{timestamp}#{event.event_type}",  # type: ignore[attr-defined]
            "recordType": "product_analytics",
            "eventId": event.event_id,
            "eventType": event.event_type,  # type: ignore[attr-defined]
            "timestamp": timestamp,
            "version": event.version,
            "source": event.source,
            "correlationId": event.correlation_id,
            "userId": event.user_id,
            "sessionId": event.session_id,
            "metadata": event.metadata.to_dict() if event.metadata else None,
            "productId": data.product_id,
            "sellerId": data.seller_id,
            "productName": data.name,
            "category": category,
            "eventData": data.to_dict(),
            "ttl": calculate_ttl(TTL_DAYS["product_analytics"], event.timestamp),
        }
