"""Retention helpers for DynamoDB TTL attributes"""

from datetime import datetime

from catalog_common.events.schemas import ensure_utc

SECONDS_PER_DAY = 24 * 60 * 60

# Retention in days per record kind
TTL_DAYS = {
    "event_log": 7,
    "product_analytics": 30,
    "seller_analytics": 90,
    "category_analytics": 90,
}


def calculate_ttl(days: int, from_time: datetime) -> int:
    """Epoch seconds ``days`` after ``from_time``"""
    return int(ensure_utc(from_time).timestamp()) + days * SECONDS_PER_DAY
