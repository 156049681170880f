"""
Pytest configuration and fixtures for analytics service tests.
"""

import os
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

import pytest

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("DYNAMODB_TABLE_NAME", "product-analytics-test")
os.environ.setdefault("S3_HISTORICAL_BUCKET", "analytics-historical-test")
os.environ.setdefault("S3_ARCHIVE_BUCKET", "analytics-archive-test")
os.environ.setdefault("CONSUMER_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "INFO")

from analytics_service.app.storage.dynamodb import to_dynamo  # noqa: E402
from analytics_service.app.storage.s3 import archive_key  # noqa: E402
from catalog_common.errors import StorageError  # noqa: E402
from catalog_common.events import (  # noqa: E402
    LowStockWarningData,
    LowStockWarningEvent,
    ProductCreatedData,
    ProductCreatedEvent,
    ProductDeletedData,
    ProductDeletedEvent,
    ProductUpdatedData,
    ProductUpdatedEvent,
)

EVENT_TIME = datetime(2024, 3, 5, 14, 30, 0, 123000, tzinfo=timezone.utc)


class InMemoryAnalyticsStore:
    """Put-by-key table keyed by (pk, sk), as DynamoDB overwrites on put."""

    def __init__(self, failures: int = 0):
        self.items: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.failures = failures
        self.writes: List[str] = []

    async def _put(self, record):
        if self.failures > 0:
            self.failures -= 1
            raise StorageError("table unavailable", event_id=record.get("eventId"))
        self.items[(record["pk"], record["sk"])] = to_dynamo(record)
        self.writes.append(record["eventId"])

    async def put_event_log(self, record):
        await self._put(record)

    async def put_analytics_record(self, record):
        await self._put(record)

    def analytics_records(self):
        return [i for i in self.items.values() if i["recordType"] == "product_analytics"]

    async def get_product_history(self, seller_id, product_id, limit=None):
        pk = f"{seller_id}#{product_id}"
        return [item for (key, _), item in sorted(self.items.items()) if key == pk]

    async def get_events_by_type(self, event_type, since=None, limit=100):
        return [
            item
            for item in self.items.values()
            if item["recordType"] == "event_log"
            and item["eventType"] == event_type
            and (since is None or item["timestamp"] >= since)
        ][:limit]

    async def health_check(self):
        return True


class InMemoryArchiver:
    def __init__(self, fail: bool = False):
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.fail = fail

    async def archive(self, event):
        if self.fail:
            raise StorageError("bucket unavailable", event_id=event.event_id)
        key = archive_key(event)
        self.objects[key] = event.to_dict()
        return key

    async def health_check(self):
        return True


def make_created(
    product_id: str = "P1",
    seller_id: str = "S1",
    price: float = 100,
    quantity: int = 5,
    timestamp: datetime = EVENT_TIME,
) -> ProductCreatedEvent:
    return ProductCreatedEvent(
        timestamp=timestamp,
        correlation_id="corr-1",
        data=ProductCreatedData(
            product_id=product_id,
            seller_id=seller_id,
            name="Desk Lamp",
            description="LED desk lamp",
            price=price,
            quantity=quantity,
            category="home",
            created_at=timestamp,
        ),
    )


def make_updated(
    price: float = 120,
    quantity: int = 3,
    changes: Optional[List[str]] = None,
    previous_state: Optional[Dict[str, Any]] = None,
    previous_quantity: Optional[int] = 5,
    timestamp: datetime = EVENT_TIME,
    product_id: str = "P1",
) -> ProductUpdatedEvent:
    return ProductUpdatedEvent(
        timestamp=timestamp,
        data=ProductUpdatedData(
            product_id=product_id,
            seller_id="S1",
            name="Desk Lamp",
            description="LED desk lamp",
            price=price,
            quantity=quantity,
            category="home",
            updated_at=timestamp,
            previous_quantity=previous_quantity,
            changes=["price", "quantity"] if changes is None else changes,
            previous_state=(
                {"price": 100, "quantity": 5} if previous_state is None else previous_state
            ),
        ),
    )


def make_deleted(timestamp: datetime = EVENT_TIME) -> ProductDeletedEvent:
    return ProductDeletedEvent(
        timestamp=timestamp,
        data=ProductDeletedData(
            product_id="P1",
            seller_id="S1",
            name="Desk Lamp",
            deleted_at=timestamp,
            reason="discontinued",
        ),
    )


def make_low_stock(seller_id: str = "S1", timestamp: datetime = EVENT_TIME) -> LowStockWarningEvent:
    return LowStockWarningEvent(
        timestamp=timestamp,
        data=LowStockWarningData(
            product_id="P1",
            seller_id=seller_id,
            name="Desk Lamp",
            current_quantity=3,
            threshold=10,
            category="home",
            triggered_at=timestamp,
        ),
    )


@pytest.fixture
def store():
    return InMemoryAnalyticsStore()


@pytest.fixture
def archiver():
    return InMemoryArchiver()


@pytest.fixture
def events():
    """Factories for catalog events at a fixed timestamp."""
    return SimpleNamespace(
        created=make_created,
        updated=make_updated,
        deleted=make_deleted,
        low_stock=make_low_stock,
        time=EVENT_TIME,
    )


@pytest.fixture
def make_store():
    return InMemoryAnalyticsStore


@pytest.fixture
def make_archiver():
    return InMemoryArchiver
