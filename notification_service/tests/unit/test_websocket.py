import pytest
from fastapi.testclient import TestClient

from notification_service.app.main import app


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def test_subscribe_acknowledges_with_seller(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "subscribe", "sellerId": "S1"})
        reply = ws.receive_json()

    assert reply == {
        "event": "subscribed",
        "data": {
            "sellerId": "S1",
            "message": "Successfully subscribed to notifications",
        },
    }


def test_invalid_frame_gets_error_and_keeps_socket_open(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "subscribe"})
        error = ws.receive_json()

        ws.send_json({"action": "unsubscribe", "sellerId": "S1"})
        reply = ws.receive_json()

    assert error["event"] == "error"
    assert error["data"]["details"][0]["field"] == "sellerId"
    assert reply == {"event": "unsubscribed", "data": {"sellerId": "S1"}}


def test_routed_warning_is_pushed_to_subscriber(client, low_stock):
    router = app.state.subscription_router

    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "subscribe", "sellerId": "S1"})
        ws.receive_json()

        delivered = client.portal.call(router.route, low_stock("S1"))
        frame = ws.receive_json()

    assert delivered == 1
    assert frame["event"] == "notification"
    assert frame["data"]["message"] == "Desk Lamp has only 3 items left (threshold: 10)"


def test_health_reports_subscriptions(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "subscribe", "sellerId": "S1"})
        ws.receive_json()

        body = client.get("/health").json()

    assert body["service"] == "notification-service"
    assert body["connectedSellers"] == ["S1"]
    assert body["totalClients"] == 1
    assert body["checks"]["kafka_consumer"] == "down"
