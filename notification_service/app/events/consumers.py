"""
Notification Service Event Consumers
===================================

Consumes ``notifications`` and pushes low-stock warnings to subscribed
clients. Delivery is best-effort: a routing failure is logged and the
message is still acknowledged, since clients have no backlog to replay.
"""

from catalog_common.events import BaseEvent, EventHandler, EventProcessor, EventType
from catalog_common.utils.logging import setup_service_logging

from ..services.subscriptions import SubscriptionRouter

logger = setup_service_logging("notification_service.events.consumers")


class LowStockWarningHandler(EventHandler):
    """Handle low stock warnings by routing them to the seller's clients"""

    def __init__(self, subscription_router: SubscriptionRouter):
        self.subscription_router = subscription_router

    async def handle(self, event: BaseEvent) -> None:
        try:
            await self.subscription_router.route(event)
        except Exception as e:
            logger.error(
                f"Failed to route low stock warning: {e}",
                extra={
                    "operation": "route_notification",
                    "event_id": event.event_id,
                    "seller_id": event.data.seller_id,  # type: ignore[attr-defined]
                },
                exc_info=True,
            )


class NotificationEventProcessor(EventProcessor):
    """Event processor for the notification consumer group"""

    def __init__(self, subscription_router: SubscriptionRouter):
        super().__init__(
            {EventType.LOW_STOCK_WARNING: LowStockWarningHandler(subscription_router)},
            logger=logger,
        )
