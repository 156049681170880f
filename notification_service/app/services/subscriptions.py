"""
Seller subscription registry and notification routing.

The registry keeps two indexes that always agree:

    seller_id      -> connection ids subscribed to that seller
    connection_id  -> seller ids that connection subscribed to

Sets are removed as soon as they become empty. Every mutation and every
routing snapshot runs under one ``asyncio.Lock``, so ``route`` never sees a
half-applied subscribe or disconnect.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set

from catalog_common.events import BaseEvent, LowStockWarningEvent
from catalog_common.utils.logging import setup_service_logging

from ..schemas.notification import NotificationData, server_frame

logger = setup_service_logging("notification_service.services.subscriptions")

SEND_TIMEOUT_SECONDS = 5.0


class ClientConnection(ABC):
    """A live push channel to one client"""

    id: str

    @abstractmethod
    async def send(self, message: Dict[str, Any]) -> None:
        pass


class SubscriptionRegistry:
    def __init__(self):
        self._lock = asyncio.Lock()
        self._seller_connections: Dict[str, Set[str]] = {}
        self._connection_sellers: Dict[str, Set[str]] = {}
        self._connections: Dict[str, ClientConnection] = {}

    async def add(self, connection: ClientConnection, seller_id: str) -> None:
        async with self._lock:
            self._connections[connection.id] = connection
            self._seller_connections.setdefault(seller_id, set()).add(connection.id)
            self._connection_sellers.setdefault(connection.id, set()).add(seller_id)

    async def remove(self, connection_id: str, seller_id: str) -> bool:
        """Drop one subscription; False when it did not exist"""
        async with self._lock:
            if seller_id not in self._connection_sellers.get(connection_id, ()):
                return False
            self._unlink(connection_id, seller_id)
            return True

    async def remove_connection(self, connection_id: str) -> List[str]:
        """Drop every subscription of a connection and return the sellers it had"""
        async with self._lock:
            sellers = list(self._connection_sellers.get(connection_id, ()))
            for seller_id in sellers:
                self._unlink(connection_id, seller_id)
            self._connections.pop(connection_id, None)
            return sellers

    async def subscribers(self, seller_id: str) -> List[ClientConnection]:
        """Snapshot of the connections subscribed to ``seller_id``"""
        async with self._lock:
            return [
                self._connections[connection_id]
                for connection_id in self._seller_connections.get(seller_id, ())
            ]

    def _unlink(self, connection_id: str, seller_id: str) -> None:
        connections = self._seller_connections.get(seller_id)
        if connections is not None:
            connections.discard(connection_id)
            if not connections:
                del self._seller_connections[seller_id]

        sellers = self._connection_sellers.get(connection_id)
        if sellers is not None:
            sellers.discard(seller_id)
            if not sellers:
                del self._connection_sellers[connection_id]
                self._connections.pop(connection_id, None)

    # Introspection

    def connected_sellers(self) -> List[str]:
        return sorted(self._seller_connections)

    def client_count(self, seller_id: str) -> int:
        return len(self._seller_connections.get(seller_id, ()))

    def total_clients(self) -> int:
        return len(self._connection_sellers)

    def sellers_for(self, connection_id: str) -> Set[str]:
        return set(self._connection_sellers.get(connection_id, ()))


class SubscriptionRouter:
    """Fans low-stock warnings out to the connections of the affected seller"""

    def __init__(
        self,
        registry: Optional[SubscriptionRegistry] = None,
        send_timeout: float = SEND_TIMEOUT_SECONDS,
    ):
        self.registry = registry or SubscriptionRegistry()
        self.send_timeout = send_timeout

    async def subscribe(self, connection: ClientConnection, seller_id: str) -> None:
        await self.registry.add(connection, seller_id)
        logger.info(
            "Client subscribed to seller",
            extra={
                "operation": "subscribe",
                "connection_id": connection.id,
                "seller_id": seller_id,
            },
        )

    async def unsubscribe(self, connection: ClientConnection, seller_id: str) -> bool:
        removed = await self.registry.remove(connection.id, seller_id)
        logger.info(
            "Client unsubscribed from seller",
            extra={
                "operation": "unsubscribe",
                "connection_id": connection.id,
                "seller_id": seller_id,
                "was_subscribed": removed,
            },
        )
        return removed

    async def on_disconnect(self, connection: ClientConnection) -> None:
        sellers = await self.registry.remove_connection(connection.id)
        logger.info(
            "Client disconnected",
            extra={
                "operation": "disconnect",
                "connection_id": connection.id,
                "seller_ids": sellers,
            },
        )

    async def route(self, event: BaseEvent) -> int:
        """Push ``event`` to its seller's subscribers; returns how many received it"""
        if not isinstance(event, LowStockWarningEvent):
            logger.debug(
                "Ignoring event that is not routed to clients",
                extra={"event_id": event.event_id, "event_type": event.event_type},  # type: ignore[attr-defined]
            )
            return 0

        notification = NotificationData.from_low_stock_warning(event)
        frame = server_frame("notification", notification.to_dict())
        targets = await self.registry.subscribers(event.data.seller_id)

        results = await asyncio.gather(
            *(self._deliver(connection, frame, event.data.seller_id) for connection in targets)
        )
        delivered = sum(results)

        logger.info(
            "Low stock warning routed",
            extra={
                "operation": "route_notification",
                "event_id": event.event_id,
                "seller_id": event.data.seller_id,
                "product_id": event.data.product_id,
                "subscribers": len(targets),
                "delivered": delivered,
                "notification_message": notification.message,
            },
        )
        return delivered

    async def _deliver(
        self, connection: ClientConnection, frame: Dict[str, Any], seller_id: str
    ) -> bool:
        """Send one frame; a failed or stalled connection is pruned"""
        try:
            await asyncio.wait_for(connection.send(frame), timeout=self.send_timeout)
            return True
        except Exception as e:
            logger.warning(
                "Dropping connection after failed send",
                extra={
                    "operation": "route_notification",
                    "connection_id": connection.id,
                    "seller_id": seller_id,
                    "error": str(e) or type(e).__name__,
                },
            )
            await self.on_disconnect(connection)
            return False
