"""
Catalog Event Schemas
=====================

Wire contract for every domain event exchanged between the catalog services.

Every envelope serializes to camelCase JSON::

    {
      "eventId": "...", "eventType": "ProductUpdated",
      "timestamp": "2024-01-01T00:00:00.000Z", "version": "1.0",
      "source": "products-service", "correlationId": "...",
      "data": {"productId": "...", "sellerId": "...", ...}
    }

The four envelope classes form a discriminated union on ``eventType``
(``ProductEvent``). ``data.productId`` and ``data.sellerId`` are present on
every variant.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

# ==============================================
# CONSTANTS
# ==============================================

LOW_STOCK_THRESHOLD = 10
EVENT_VERSION = "1.0"
EVENT_SOURCE = "products-service"

PRODUCT_EVENTS_TOPIC = "product-events"
NOTIFICATIONS_TOPIC = "notifications"


class EventType(str, Enum):
    """Closed set of catalog event kinds"""

    PRODUCT_CREATED = "ProductCreated"
    PRODUCT_UPDATED = "ProductUpdated"
    PRODUCT_DELETED = "ProductDeleted"
    LOW_STOCK_WARNING = "LowStockWarning"


EVENT_TYPE_VALUES = frozenset(event_type.value for event_type in EventType)


def topic_for(event_type: str) -> str:
    """Map an event kind to the bus topic that carries it"""
    if EventType(event_type) is EventType.LOW_STOCK_WARNING:
        return NOTIFICATIONS_TOPIC
    return PRODUCT_EVENTS_TOPIC


# ==============================================
# TIMESTAMPS
# ==============================================


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix"""
    return (
        ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )


UTCDateTime = Annotated[
    datetime,
    AfterValidator(ensure_utc),
    PlainSerializer(format_timestamp, return_type=str),
]


# ==============================================
# BASE MODEL
# ==============================================


class EventModel(BaseModel):
    """Immutable camelCase model used for every part of an envelope"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ==============================================
# PAYLOAD SCHEMAS
# ==============================================


class ProductCreatedData(EventModel):
    """Data schema for product creation events"""

    product_id: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)
    name: str
    description: str = ""
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    category: str
    created_at: UTCDateTime


class ProductUpdatedData(EventModel):
    """Data schema for product update events"""

    product_id: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)
    name: str
    description: str = ""
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    category: str
    updated_at: UTCDateTime
    previous_quantity: Optional[int] = None
    changes: List[str] = Field(default_factory=list)
    previous_state: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("changes", mode="before")
    @classmethod
    def normalize_changes(cls, value: Any) -> Any:
        # Older producers sent changes as a {field: newValue} mapping
        if isinstance(value, dict):
            return sorted(value)
        return value


class ProductDeletedData(EventModel):
    """Data schema for product deletion events"""

    product_id: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)
    name: str
    deleted_at: UTCDateTime
    reason: Optional[str] = None


class LowStockWarningData(EventModel):
    """Data schema for derived low-stock warnings"""

    product_id: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)
    name: str
    current_quantity: int = Field(ge=0)
    threshold: int
    category: str
    triggered_at: UTCDateTime


# ==============================================
# ENVELOPES
# ==============================================


class EventMetadata(EventModel):
    """Request metadata carried for tracing"""

    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    request_id: Optional[str] = None


class BaseEvent(EventModel):
    """Fields shared by every catalog event envelope"""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()), min_length=1)
    timestamp: UTCDateTime = Field(default_factory=utc_now)
    version: str = EVENT_VERSION
    source: str = EVENT_SOURCE
    correlation_id: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    metadata: Optional[EventMetadata] = None

    @property
    def partition_key(self) -> str:
        """Storage partition key ``sellerId#productId``"""
        return f"{self.data.seller_id}#{self.data.product_id}"  # type: ignore[attr-defined]

    @property
    def message_key(self) -> str:
        """Bus partition key, so all events for one product stay ordered"""
        return self.data.product_id  # type: ignore[attr-defined]

    @property
    def kind(self) -> EventType:
        return EventType(self.event_type)  # type: ignore[attr-defined]


class ProductCreatedEvent(BaseEvent):
    event_type: Literal["ProductCreated"] = EventType.PRODUCT_CREATED.value
    data: ProductCreatedData


class ProductUpdatedEvent(BaseEvent):
    event_type: Literal["ProductUpdated"] = EventType.PRODUCT_UPDATED.value
    data: ProductUpdatedData


class ProductDeletedEvent(BaseEvent):
    event_type: Literal["ProductDeleted"] = EventType.PRODUCT_DELETED.value
    data: ProductDeletedData


class LowStockWarningEvent(BaseEvent):
    event_type: Literal["LowStockWarning"] = EventType.LOW_STOCK_WARNING.value
    data: LowStockWarningData


ProductEvent = Annotated[
    Union[
        ProductCreatedEvent,
        ProductUpdatedEvent,
        ProductDeletedEvent,
        LowStockWarningEvent,
    ],
    Field(discriminator="event_type"),
]
