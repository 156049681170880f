"""
Base interfaces for catalog event publishing and handling.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from .schemas import BaseEvent


class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    async def handle(self, event: BaseEvent) -> None:
        """Apply the event's side effect"""


class EventPublisher(ABC):
    """Abstract base class for bus publishers"""

    async def start(self) -> None:
        """Connect to the bus"""

    async def stop(self) -> None:
        """Flush and disconnect from the bus"""

    @abstractmethod
    async def publish(
        self,
        topic: str,
        key: str,
        value: bytes,
        headers: Optional[List[Tuple[str, bytes]]] = None,
    ) -> None:
        """Publish a message; raises PublishError once delivery is given up"""

    async def health_check(self) -> bool:
        return True
