"""Service layer for the Notification Service"""

from .subscriptions import ClientConnection, SubscriptionRegistry, SubscriptionRouter

__all__ = ["ClientConnection", "SubscriptionRegistry", "SubscriptionRouter"]
