"""Service layer for the Analytics Service"""

from .projector import AnalyticsProjector
from .ttl import TTL_DAYS, calculate_ttl

__all__ = ["AnalyticsProjector", "TTL_DAYS", "calculate_ttl"]
