"""
Catalog Event Processor
=======================

Per-service message handling shared by every consumer.

Each raw message moves through ``Received -> Parsed -> Routed -> Applied``
and ends either acknowledged or failed:

    APPLIED  handler succeeded                          -> commit
    SKIPPED  poison message, unknown kind, no handler   -> commit
    FAILED   transient processing/storage failure       -> no commit, redeliver
"""

import logging
from enum import Enum
from typing import Dict, Optional

from ..errors import ParseError, ProcessingError, UnknownEventTypeError, ValidationError
from .base import EventHandler
from .codec import decode_event
from .schemas import EventType

default_logger = logging.getLogger(__name__)


class MessageOutcome(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def should_commit(self) -> bool:
        return self is not MessageOutcome.FAILED


class EventProcessor:
    """Decode, route and apply one message at a time"""

    def __init__(
        self,
        handlers: Dict[EventType, EventHandler],
        logger: Optional[logging.Logger] = None,
    ):
        self.handlers = dict(handlers)
        self.logger = logger or default_logger

    def register(self, event_type: EventType, handler: EventHandler) -> None:
        self.handlers[EventType(event_type)] = handler

    async def on_message(self, raw: bytes) -> MessageOutcome:
        """Process one raw message and report whether its offset may be committed"""
        try:
            event = decode_event(raw)
        except UnknownEventTypeError as e:
            self.logger.info(
                "Skipping message with unknown event type",
                extra={
                    "operation": "route_event",
                    "event_id": e.event_id,
                    "event_type": e.event_type,
                    "outcome": MessageOutcome.SKIPPED.value,
                },
            )
            return MessageOutcome.SKIPPED
        except (ParseError, ValidationError) as e:
            # Poison message: retrying cannot fix it, so it must not block the partition
            self.logger.warning(
                "Acknowledging malformed message without processing",
                extra={
                    "operation": "parse_event",
                    "outcome": MessageOutcome.SKIPPED.value,
                    **e.to_dict(),
                },
            )
            return MessageOutcome.SKIPPED
        except Exception as e:
            # Decoding is deterministic, so a retry would fail the same way
            self.logger.error(
                "Unexpected error decoding message, acknowledging without processing",
                extra={
                    "operation": "parse_event",
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "outcome": MessageOutcome.SKIPPED.value,
                },
                exc_info=True,
            )
            return MessageOutcome.SKIPPED

        handler = self.handlers.get(event.kind)
        if handler is None:
            self.logger.debug(
                "No handler registered for event type",
                extra={
                    "operation": "route_event",
                    "event_id": event.event_id,
                    "event_type": event.event_type,
                    "outcome": MessageOutcome.SKIPPED.value,
                },
            )
            return MessageOutcome.SKIPPED

        try:
            await handler.handle(event)
        except ProcessingError as e:
            self.logger.error(
                "Event processing failed, leaving message for redelivery",
                extra={
                    "operation": "apply_event",
                    "outcome": MessageOutcome.FAILED.value,
                    **e.to_dict(),
                    "event_id": event.event_id,
                    "event_type": event.event_type,
                },
            )
            return MessageOutcome.FAILED
        except Exception as e:
            self.logger.error(
                "Unexpected error applying event, leaving message for redelivery",
                extra={
                    "operation": "apply_event",
                    "event_id": event.event_id,
                    "event_type": event.event_type,
                    "error": str(e),
                    "outcome": MessageOutcome.FAILED.value,
                },
                exc_info=True,
            )
            return MessageOutcome.FAILED

        self.logger.info(
            "Event processed",
            extra={
                "operation": "apply_event",
                "event_id": event.event_id,
                "event_type": event.event_type,
                "correlation_id": event.correlation_id,
                "outcome": MessageOutcome.APPLIED.value,
            },
        )
        return MessageOutcome.APPLIED
