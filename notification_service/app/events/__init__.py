from .consumers import LowStockWarningHandler, NotificationEventProcessor

__all__ = ["LowStockWarningHandler", "NotificationEventProcessor"]
