import os

import pytest
from fastapi.testclient import TestClient

from catalog_common.events import (
    NOTIFICATIONS_TOPIC,
    PRODUCT_EVENTS_TOPIC,
    LowStockWarningEvent,
    ProductDeletedEvent,
    ProductUpdatedEvent,
)
from product_service.app.api.dependencies import get_product_event_producer
from product_service.app.events.event_producers import ProductEventProducer
from product_service.app.main import app


@pytest.fixture
def client(recording_publisher):
    producer = ProductEventProducer(recording_publisher, low_stock_threshold=10)
    app.dependency_overrides[get_product_event_producer] = lambda: producer

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    try:
        os.remove("product_test.db")
    except FileNotFoundError:
        pass


def _create(client, **overrides):
    payload = {
        "seller_id": "seller-9",
        "name": "Desk Lamp",
        "description": "LED desk lamp",
        "price": "35.00",
        "quantity": 40,
        "category": "home",
    }
    payload.update(overrides)
    response = client.post(
        "/api/v1/products/", json=payload, headers={"X-Correlation-ID": "corr-api"}
    )
    assert response.status_code == 201
    return response.json()


def test_health_reports_service(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["service"] == "products-service"


def test_create_publishes_product_created(client, recording_publisher):
    product = _create(client)

    events = recording_publisher.events(PRODUCT_EVENTS_TOPIC)
    assert len(events) == 1
    assert events[0].event_type == "ProductCreated"
    assert events[0].data.product_id == product["id"]
    assert events[0].correlation_id == "corr-api"


def test_update_to_low_stock_publishes_warning(client, recording_publisher):
    product = _create(client)

    response = client.put(f"/api/v1/products/{product['id']}", json={"quantity": 3})

    assert response.status_code == 200
    updated = recording_publisher.events(PRODUCT_EVENTS_TOPIC)[-1]
    assert isinstance(updated, ProductUpdatedEvent)
    assert updated.data.changes == ["quantity"]
    assert updated.data.previous_quantity == 40

    warnings = recording_publisher.events(NOTIFICATIONS_TOPIC)
    assert len(warnings) == 1
    assert isinstance(warnings[0], LowStockWarningEvent)
    assert warnings[0].data.current_quantity == 3


def test_delete_publishes_product_deleted(client, recording_publisher):
    product = _create(client)

    response = client.delete(
        f"/api/v1/products/{product['id']}", params={"reason": "discontinued"}
    )

    assert response.status_code == 204
    deleted = recording_publisher.events(PRODUCT_EVENTS_TOPIC)[-1]
    assert isinstance(deleted, ProductDeletedEvent)
    assert deleted.data.reason == "discontinued"
    assert client.get(f"/api/v1/products/{product['id']}").status_code == 404


def test_invalid_product_is_rejected_without_event(client, recording_publisher):
    response = client.post(
        "/api/v1/products/",
        json={
            "seller_id": "seller-9",
            "name": "   ",
            "description": "blank name",
            "price": "-1",
            "quantity": 1,
        },
    )

    assert response.status_code == 422
    assert recording_publisher.messages == []


def test_unknown_product_returns_404(client):
    assert client.put("/api/v1/products/nope", json={"quantity": 1}).status_code == 404
    assert client.delete("/api/v1/products/nope").status_code == 404
