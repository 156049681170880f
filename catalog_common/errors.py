"""
Catalog Event Exceptions

Error taxonomy shared by the producer and the consumers.

Producer side:
    - PublishError: bus unreachable after the retry budget

Consumer side (terminal, message is acknowledged and skipped):
    - ParseError / UnknownEventTypeError: undecodable payload or unknown kind
    - ValidationError: envelope missing required fields

Consumer side (transient, message is not acknowledged and gets redelivered):
    - ProcessingError / StorageError
"""

from typing import Any, Dict, Optional


class CatalogEventError(Exception):
    """Base exception for catalog event errors."""

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        event_type: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.event_id = event_id
        self.event_type = event_type
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error": self.message,
            "event_id": self.event_id,
            "event_type": self.event_type,
            "cause": str(self.cause) if self.cause else None,
        }


class PublishError(CatalogEventError):
    """Raised when an event cannot be delivered to the bus."""


class ParseError(CatalogEventError):
    """Raised when a message payload cannot be decoded into a JSON object."""


class UnknownEventTypeError(ParseError):
    """Raised when a message carries an eventType outside the known set."""


class ValidationError(CatalogEventError):
    """Raised when a decoded envelope is missing required fields or has bad values."""


class ProcessingError(CatalogEventError):
    """Raised when applying an event fails transiently."""


class StorageError(ProcessingError):
    """Raised when a keyed-storage or blob-storage write fails."""
