import json

import pytest

from catalog_common.errors import ParseError, UnknownEventTypeError, ValidationError
from catalog_common.events import (
    LowStockWarningEvent,
    ProductUpdatedEvent,
    decode_event,
    encode_event,
    topic_for,
    transport_headers,
)


def _raw(payload) -> bytes:
    return json.dumps(payload).encode("utf-8")


class TestEncoding:
    def test_envelope_is_camel_case_with_millisecond_timestamp(self, events):
        payload = json.loads(encode_event(events.created()))

        assert payload["eventType"] == "ProductCreated"
        assert payload["timestamp"] == "2024-03-05T14:30:00.123Z"
        assert payload["version"] == "1.0"
        assert payload["source"] == "products-service"
        assert payload["correlationId"] == "corr-1"
        assert payload["data"]["productId"] == "P1"
        assert payload["data"]["createdAt"] == "2024-03-05T14:30:00.123Z"

    def test_transport_headers_mirror_envelope(self, events):
        headers = dict(transport_headers(events.low_stock()))

        assert headers == {
            "eventType": b"LowStockWarning",
            "version": b"1.0",
            "timestamp": b"2024-03-05T14:30:00.123Z",
        }

    def test_keys(self, events):
        event = events.created()

        assert event.message_key == "P1"
        assert event.partition_key == "S1#P1"

    def test_topic_routing(self):
        assert topic_for("LowStockWarning") == "notifications"
        assert topic_for("ProductUpdated") == "product-events"
        with pytest.raises(ValueError):
            topic_for("Nope")


class TestDecoding:
    def test_decodes_to_matching_envelope_class(self, events):
        event = decode_event(encode_event(events.updated()))

        assert isinstance(event, ProductUpdatedEvent)
        assert event.data.changes == ["price", "quantity"]
        assert event.data.previous_state == {"price": 100.0, "quantity": 5}
        assert event.timestamp == events.time

    def test_decodes_low_stock_warning(self, events):
        event = decode_event(encode_event(events.low_stock()))

        assert isinstance(event, LowStockWarningEvent)
        assert event.kind.value == "LowStockWarning"

    def test_changes_mapping_is_normalized_to_field_names(self, events):
        payload = events.updated().to_dict()
        payload["data"]["changes"] = {"quantity": 3, "price": 120}

        event = decode_event(_raw(payload))

        assert event.data.changes == ["price", "quantity"]

    def test_offset_timestamps_are_normalized_to_utc(self, events):
        payload = events.created().to_dict()
        payload["timestamp"] = "2024-03-05T16:30:00.123+02:00"

        event = decode_event(_raw(payload))

        assert event.to_dict()["timestamp"] == "2024-03-05T14:30:00.123Z"

    @pytest.mark.parametrize("raw", [b"not json", b"\xff\xfe", b"[1, 2]", b"42"])
    def test_non_object_payload_is_parse_error(self, raw):
        with pytest.raises(ParseError):
            decode_event(raw)

    def test_missing_event_type_is_validation_error(self, events):
        payload = events.created().to_dict()
        del payload["eventType"]

        with pytest.raises(ValidationError) as exc_info:
            decode_event(_raw(payload))
        assert exc_info.value.event_id == payload["eventId"]

    def test_unknown_event_type(self, events):
        payload = events.created().to_dict()
        payload["eventType"] = "ProductArchived"

        with pytest.raises(UnknownEventTypeError) as exc_info:
            decode_event(_raw(payload))
        assert exc_info.value.event_type == "ProductArchived"

    def test_missing_product_id_names_the_field(self, events):
        payload = events.created().to_dict()
        del payload["data"]["productId"]

        with pytest.raises(ValidationError) as exc_info:
            decode_event(_raw(payload))
        assert "productId" in exc_info.value.message
        assert exc_info.value.event_type == "ProductCreated"


def test_error_to_dict_carries_context():
    cause = RuntimeError("broker down")
    error = ValidationError("bad envelope", event_id="e1", event_type="ProductCreated", cause=cause)

    assert error.to_dict() == {
        "error_type": "ValidationError",
        "error": "bad envelope",
        "event_id": "e1",
        "event_type": "ProductCreated",
        "cause": "broker down",
    }


def test_deeply_nested_payload_is_parse_error():
    raw = b"[" * 100000 + b"]" * 100000

    with pytest.raises(ParseError):
        decode_event(raw)
