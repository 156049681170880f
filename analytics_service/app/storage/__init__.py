"""Storage adapters for the Analytics Service"""

from .dynamodb import AnalyticsStore
from .s3 import EventArchiver, archive_key

__all__ = ["AnalyticsStore", "EventArchiver", "archive_key"]
