from typing import Any, Dict, Literal

from pydantic import Field

from catalog_common.events import LowStockWarningEvent
from catalog_common.events.schemas import EventModel, UTCDateTime

LOW_STOCK_TITLE = "Low Stock Warning"


class NotificationData(EventModel):
    """Push payload delivered to subscribed dashboard clients"""

    id: str
    type: Literal["low_stock_warning"] = "low_stock_warning"
    title: str
    message: str
    product_id: str
    product_name: str
    seller_id: str
    current_quantity: int
    threshold: int
    category: str
    timestamp: UTCDateTime

    @classmethod
    def from_low_stock_warning(cls, event: LowStockWarningEvent) -> "NotificationData":
        data = event.data
        return cls(
            id=event.event_id,
            title=LOW_STOCK_TITLE,
            message=(
                f"{data.name} has only {data.current_quantity} items left "
                f"(threshold: {data.threshold})"
            ),
            product_id=data.product_id,
            product_name=data.name,
            seller_id=data.seller_id,
            current_quantity=data.current_quantity,
            threshold=data.threshold,
            category=data.category,
            timestamp=data.triggered_at,
        )


class ClientFrame(EventModel):
    """Frame sent by a client over the WebSocket channel"""

    action: Literal["subscribe", "unsubscribe"]
    seller_id: str = Field(min_length=1)


def server_frame(event: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"event": event, "data": data}
