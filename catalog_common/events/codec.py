"""
Catalog Event Codec
===================

JSON encoding/decoding of event envelopes and their transport headers.
"""

import json
from typing import Any, List, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..errors import ParseError, UnknownEventTypeError, ValidationError
from .schemas import EVENT_TYPE_VALUES, BaseEvent, ProductEvent, format_timestamp

_event_adapter: TypeAdapter = TypeAdapter(ProductEvent)


def encode_event(event: BaseEvent) -> bytes:
    """Serialize an envelope to its JSON wire form"""
    return json.dumps(event.to_dict(), ensure_ascii=False).encode("utf-8")


def transport_headers(event: BaseEvent) -> List[Tuple[str, bytes]]:
    """Header metadata duplicated from the envelope for filtering"""
    return [
        ("eventType", event.event_type.encode("utf-8")),  # type: ignore[attr-defined]
        ("version", event.version.encode("utf-8")),
        ("timestamp", format_timestamp(event.timestamp).encode("utf-8")),
    ]


def decode_event(raw: bytes) -> Any:
    """
    Decode raw message bytes into one of the ``ProductEvent`` envelopes.

    Raises:
        ParseError: payload is not a JSON object
        UnknownEventTypeError: ``eventType`` is not a known kind
        ValidationError: envelope is structurally invalid
    """
    if raw is None:
        raise ParseError("Message has no value")

    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, ValueError, TypeError, RecursionError) as e:
        raise ParseError(f"Message is not valid JSON: {e}", cause=e) from e

    if not isinstance(payload, dict):
        raise ParseError(
            f"Message must be a JSON object, got {type(payload).__name__}"
        )

    event_id = payload.get("eventId")
    event_id = event_id if isinstance(event_id, str) else None
    event_type = payload.get("eventType")

    if event_type is None:
        raise ValidationError("Envelope is missing eventType", event_id=event_id)

    if not isinstance(event_type, str) or event_type not in EVENT_TYPE_VALUES:
        raise UnknownEventTypeError(
            f"Unknown event type: {event_type!r}",
            event_id=event_id,
            event_type=str(event_type),
        )

    try:
        return _event_adapter.validate_python(payload)
    except RecursionError as e:
        raise ParseError(
            f"{event_type} envelope is nested too deeply",
            event_id=event_id,
            event_type=event_type,
            cause=e,
        ) from e
    except PydanticValidationError as e:
        missing = [
            ".".join(str(part) for part in error["loc"]) for error in e.errors()
        ]
        raise ValidationError(
            f"Invalid {event_type} envelope: {', '.join(missing)}",
            event_id=event_id,
            event_type=event_type,
            cause=e,
        ) from e
