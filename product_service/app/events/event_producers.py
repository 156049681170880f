"""
Product Service Event Producers
==============================

Builds catalog event envelopes from committed product mutations and
publishes them to the bus, keyed by product id.

A ProductUpdated whose resulting quantity is at or below the low-stock
threshold additionally yields an independent LowStockWarning on the
notifications topic. That warning is best-effort: losing it never fails or
retries the primary event.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from catalog_common.errors import PublishError
from catalog_common.events import (
    EVENT_SOURCE,
    LOW_STOCK_THRESHOLD,
    BaseEvent,
    EventPublisher,
    EventType,
    LowStockWarningData,
    LowStockWarningEvent,
    ProductCreatedData,
    ProductCreatedEvent,
    ProductDeletedData,
    ProductDeletedEvent,
    ProductUpdatedData,
    ProductUpdatedEvent,
    encode_event,
    topic_for,
    transport_headers,
    utc_now,
)
from catalog_common.utils.logging import setup_service_logging

from ..core.setting import get_settings

settings = get_settings()
logger = setup_service_logging(
    "product_service.events.producers", log_level=settings.LOG_LEVEL
)

# Fields compared between the previous and the new state of a product
TRACKED_FIELDS = ("name", "description", "price", "quantity", "category")


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    return value


def snapshot_product(product: Any) -> Dict[str, Any]:
    """Capture the tracked fields of a product as plain JSON values"""
    return {field: _plain(getattr(product, field)) for field in TRACKED_FIELDS}


def compute_changes(
    current: Dict[str, Any], previous_state: Optional[Dict[str, Any]]
) -> List[str]:
    """Names of the fields whose new value differs from ``previous_state``"""
    if not previous_state:
        return []
    return sorted(
        field
        for field, old_value in previous_state.items()
        if field in current and _plain(old_value) != current[field]
    )


class ProductEventProducer:
    """
    Product service event producer.
    Publishes product lifecycle events and derives low-stock warnings.
    """

    def __init__(
        self,
        publisher: EventPublisher,
        source: str = EVENT_SOURCE,
        low_stock_threshold: int = LOW_STOCK_THRESHOLD,
    ):
        self.publisher = publisher
        self.source = source
        self.low_stock_threshold = low_stock_threshold

    # ==============================================
    # EMISSION
    # ==============================================

    async def emit(
        self,
        kind: EventType,
        product: Any,
        previous_state: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        """
        Publish the event for one committed product mutation.

        Raises:
            PublishError: the primary event could not be delivered
            ValueError: ``kind`` is LowStockWarning, which is only ever derived
        """
        kind = EventType(kind)

        if kind is EventType.PRODUCT_CREATED:
            event: BaseEvent = self.build_product_created(product, correlation_id)
        elif kind is EventType.PRODUCT_UPDATED:
            event = self.build_product_updated(product, previous_state, correlation_id)
        elif kind is EventType.PRODUCT_DELETED:
            event = self.build_product_deleted(product, correlation_id, reason)
        else:
            raise ValueError(
                "LowStockWarning is derived from product updates and cannot be emitted directly"
            )

        await self._publish(event)

        if isinstance(event, ProductUpdatedEvent):
            await self._check_low_stock(event)

    async def publish_product_created(
        self, product: Any, correlation_id: Optional[str] = None
    ) -> None:
        """Publish product created event"""
        await self.emit(EventType.PRODUCT_CREATED, product, correlation_id=correlation_id)

    async def publish_product_updated(
        self,
        product: Any,
        previous_state: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Publish product updated event"""
        await self.emit(
            EventType.PRODUCT_UPDATED,
            product,
            previous_state=previous_state,
            correlation_id=correlation_id,
        )

    async def publish_product_deleted(
        self,
        product: Any,
        correlation_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        """Publish product deleted event"""
        await self.emit(
            EventType.PRODUCT_DELETED,
            product,
            correlation_id=correlation_id,
            reason=reason,
        )

    # ==============================================
    # ENVELOPE BUILDERS
    # ==============================================

    def build_product_created(
        self, product: Any, correlation_id: Optional[str] = None
    ) -> ProductCreatedEvent:
        state = snapshot_product(product)
        return ProductCreatedEvent(
            source=self.source,
            correlation_id=correlation_id,
            data=ProductCreatedData(
                product_id=str(product.id),
                seller_id=str(product.seller_id),
                created_at=product.created_at or utc_now(),
                **state,
            ),
        )

    def build_product_updated(
        self,
        product: Any,
        previous_state: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> ProductUpdatedEvent:
        state = snapshot_product(product)
        changes = compute_changes(state, previous_state)
        previous_quantity = (previous_state or {}).get("quantity")

        return ProductUpdatedEvent(
            source=self.source,
            correlation_id=correlation_id,
            data=ProductUpdatedData(
                product_id=str(product.id),
                seller_id=str(product.seller_id),
                updated_at=product.updated_at or utc_now(),
                previous_quantity=previous_quantity,
                changes=changes,
                previous_state={
                    field: _plain(previous_state[field])  # type: ignore[index]
                    for field in changes
                },
                **state,
            ),
        )

    def build_product_deleted(
        self,
        product: Any,
        correlation_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> ProductDeletedEvent:
        return ProductDeletedEvent(
            source=self.source,
            correlation_id=correlation_id,
            data=ProductDeletedData(
                product_id=str(product.id),
                seller_id=str(product.seller_id),
                name=product.name,
                deleted_at=utc_now(),
                reason=reason,
            ),
        )

    def build_low_stock_warning(
        self, updated: ProductUpdatedEvent
    ) -> LowStockWarningEvent:
        data = updated.data
        return LowStockWarningEvent(
            source=self.source,
            correlation_id=updated.correlation_id,
            data=LowStockWarningData(
                product_id=data.product_id,
                seller_id=data.seller_id,
                name=data.name,
                current_quantity=data.quantity,
                threshold=self.low_stock_threshold,
                category=data.category,
                triggered_at=utc_now(),
            ),
        )

    # ==============================================
    # PUBLISHING
    # ==============================================

    async def _publish(self, event: BaseEvent) -> None:
        topic = topic_for(event.event_type)  # type: ignore[attr-defined]
        try:
            await self.publisher.publish(
                topic=topic,
                key=event.message_key,
                value=encode_event(event),
                headers=transport_headers(event),
            )
        except PublishError as e:
            raise PublishError(
                e.message,
                event_id=event.event_id,
                event_type=event.event_type,  # type: ignore[attr-defined]
                cause=e.cause or e,
            ) from e

        logger.info(
            "Published event",
            extra={
                "operation": "publish_event",
                "event_id": event.event_id,
                "event_type": event.event_type,  # type: ignore[attr-defined]
                "topic": topic,
                "product_id": event.message_key,
                "correlation_id": event.correlation_id,
            },
        )

    async def _check_low_stock(self, updated: ProductUpdatedEvent) -> None:
        if updated.data.quantity > self.low_stock_threshold:
            return

        warning = self.build_low_stock_warning(updated)
        try:
            await self._publish(warning)
        except PublishError as e:
            logger.error(
                "Failed to publish low stock warning",
                extra={
                    "operation": "publish_low_stock_warning",
                    "product_id": updated.data.product_id,
                    "seller_id": updated.data.seller_id,
                    "current_quantity": updated.data.quantity,
                    "threshold": self.low_stock_threshold,
                    "triggering_event_id": updated.event_id,
                    **e.to_dict(),
                },
            )
