"""
Pytest configuration and fixtures for the shared catalog event library.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from catalog_common.events import (
    LowStockWarningData,
    LowStockWarningEvent,
    ProductCreatedData,
    ProductCreatedEvent,
    ProductUpdatedData,
    ProductUpdatedEvent,
)

EVENT_TIME = datetime(2024, 3, 5, 14, 30, 0, 123000, tzinfo=timezone.utc)


def make_created(**overrides) -> ProductCreatedEvent:
    data = dict(
        product_id="P1",
        seller_id="S1",
        name="Desk Lamp",
        description="LED desk lamp",
        price=100.0,
        quantity=5,
        category="home",
        created_at=EVENT_TIME,
    )
    data.update(overrides)
    return ProductCreatedEvent(
        timestamp=EVENT_TIME, correlation_id="corr-1", data=ProductCreatedData(**data)
    )


def make_updated(**overrides) -> ProductUpdatedEvent:
    data = dict(
        product_id="P1",
        seller_id="S1",
        name="Desk Lamp",
        price=120.0,
        quantity=3,
        category="home",
        updated_at=EVENT_TIME,
        previous_quantity=5,
        changes=["price", "quantity"],
        previous_state={"price": 100.0, "quantity": 5},
    )
    data.update(overrides)
    return ProductUpdatedEvent(timestamp=EVENT_TIME, data=ProductUpdatedData(**data))


def make_low_stock() -> LowStockWarningEvent:
    return LowStockWarningEvent(
        timestamp=EVENT_TIME,
        data=LowStockWarningData(
            product_id="P1",
            seller_id="S1",
            name="Desk Lamp",
            current_quantity=3,
            threshold=10,
            category="home",
            triggered_at=EVENT_TIME,
        ),
    )


@pytest.fixture
def events():
    """Factories for catalog events at a fixed timestamp."""
    return SimpleNamespace(
        created=make_created,
        updated=make_updated,
        low_stock=make_low_stock,
        time=EVENT_TIME,
    )
