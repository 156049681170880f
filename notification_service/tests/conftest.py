"""
Pytest configuration and fixtures for notification service tests.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CONSUMER_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "INFO")

from catalog_common.events import (  # noqa: E402
    LowStockWarningData,
    LowStockWarningEvent,
    ProductCreatedData,
    ProductCreatedEvent,
)
from notification_service.app.services.subscriptions import (  # noqa: E402
    ClientConnection,
    SubscriptionRouter,
)

EVENT_TIME = datetime(2024, 3, 5, 14, 30, 0, 123000, tzinfo=timezone.utc)


class FakeConnection(ClientConnection):
    """Records every frame pushed to it; optionally fails on send."""

    def __init__(self, connection_id: str, fail: bool = False):
        self.id = connection_id
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []

    async def send(self, message: Dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.sent.append(message)


def make_low_stock(seller_id: str = "S1", quantity: int = 3) -> LowStockWarningEvent:
    return LowStockWarningEvent(
        timestamp=EVENT_TIME,
        correlation_id="corr-1",
        data=LowStockWarningData(
            product_id="P1",
            seller_id=seller_id,
            name="Desk Lamp",
            current_quantity=quantity,
            threshold=10,
            category="home",
            triggered_at=EVENT_TIME,
        ),
    )


def make_created(seller_id: str = "S1") -> ProductCreatedEvent:
    return ProductCreatedEvent(
        timestamp=EVENT_TIME,
        data=ProductCreatedData(
            product_id="P1",
            seller_id=seller_id,
            name="Desk Lamp",
            description="LED desk lamp",
            price=100,
            quantity=3,
            category="home",
            created_at=EVENT_TIME,
        ),
    )


@pytest.fixture
def subscription_router():
    return SubscriptionRouter()


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def low_stock():
    return make_low_stock


@pytest.fixture
def created():
    return make_created
