"""
Analytics Service Event Consumers
================================

Routes product lifecycle events from ``product-events`` to the projector.
"""

from catalog_common.events import BaseEvent, EventHandler, EventProcessor, EventType
from catalog_common.utils.logging import setup_service_logging

from ..services.projector import AnalyticsProjector

logger = setup_service_logging("analytics_service.events.consumers")

PROJECTED_EVENT_TYPES = (
    EventType.PRODUCT_CREATED,
    EventType.PRODUCT_UPDATED,
    EventType.PRODUCT_DELETED,
)


class ProjectionHandler(EventHandler):
    """Applies one product event to analytics storage"""

    def __init__(self, projector: AnalyticsProjector):
        self.projector = projector

    async def handle(self, event: BaseEvent) -> None:
        await self.projector.project(event)


class AnalyticsEventProcessor(EventProcessor):
    """Event processor for the analytics consumer group"""

    def __init__(self, projector: AnalyticsProjector):
        handler = ProjectionHandler(projector)
        super().__init__(
            {event_type: handler for event_type in PROJECTED_EVENT_TYPES},
            logger=logger,
        )
