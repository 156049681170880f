"""
Pytest configuration and fixtures for product service tests.
"""

import os
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from typing import List, Optional, Tuple

import pytest

# Set up test environment variables before importing anything else
os.environ.setdefault("APP_VERSION", "1.0.0")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PRODUCT_DATABASE_URL", "sqlite+aiosqlite:///product_test.db")
os.environ.setdefault("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")
os.environ.setdefault("EVENTS_ENABLED", "false")
os.environ.setdefault("LOW_STOCK_THRESHOLD", "10")
os.environ.setdefault("LOG_LEVEL", "INFO")

from catalog_common.errors import PublishError  # noqa: E402
from catalog_common.events import EventPublisher, decode_event  # noqa: E402
from product_service.app.models.product import ProductCategory  # noqa: E402


class RecordingPublisher(EventPublisher):
    """In-memory publisher that keeps every message it is asked to send."""

    def __init__(self, fail_topics: Optional[List[str]] = None):
        self.fail_topics = set(fail_topics or [])
        self.messages: List[Tuple[str, str, bytes, list]] = []

    async def publish(self, topic, key, value, headers=None):
        if topic in self.fail_topics:
            raise PublishError(f"broker unavailable for {topic}")
        self.messages.append((topic, key, value, headers or []))

    def events(self, topic: Optional[str] = None):
        return [
            decode_event(value)
            for message_topic, _, value, _ in self.messages
            if topic is None or message_topic == topic
        ]


@pytest.fixture
def recording_publisher():
    return RecordingPublisher()


@pytest.fixture
def sample_product():
    """Committed product row as the service hands it to the producer."""
    return SimpleNamespace(
        id="prod-1",
        seller_id="seller-1",
        name="Trail Shoe",
        description="Lightweight trail running shoe",
        price=Decimal("120.00"),
        quantity=25,
        category=ProductCategory.SPORTS,
        created_at=datetime(2024, 1, 1, 12, 0, 0),
        updated_at=datetime(2024, 1, 1, 12, 0, 0),
    )


@pytest.fixture
def make_publisher():
    """Factory for publishers that fail on the given topics."""
    return RecordingPublisher
