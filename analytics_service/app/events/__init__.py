from .consumers import AnalyticsEventProcessor, ProjectionHandler

__all__ = ["AnalyticsEventProcessor", "ProjectionHandler"]
