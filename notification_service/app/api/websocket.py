"""Real-time notification channel"""

import asyncio
import uuid
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from catalog_common.utils.logging import setup_service_logging

from ..schemas.notification import ClientFrame, server_frame
from ..services.subscriptions import ClientConnection, SubscriptionRouter

logger = setup_service_logging("notification_service.api.websocket")
router = APIRouter()


class WebSocketConnection(ClientConnection):
    """ClientConnection over a FastAPI WebSocket"""

    def __init__(self, websocket: WebSocket):
        self.id = str(uuid.uuid4())
        self.websocket = websocket
        self._send_lock = asyncio.Lock()

    async def send(self, message: Dict[str, Any]) -> None:
        # Routing and request replies may write to the same socket concurrently
        async with self._send_lock:
            await self.websocket.send_json(message)


async def _handle_frame(
    subscriptions: SubscriptionRouter, connection: WebSocketConnection, raw: str
) -> None:
    try:
        frame = ClientFrame.model_validate_json(raw)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        await connection.send(
            server_frame(
                "error",
                {
                    "message": "Invalid frame, expected {action, sellerId}",
                    "details": [
                        {"field": ".".join(str(p) for p in err["loc"]), "reason": err["msg"]}
                        for err in errors
                    ],
                },
            )
        )
        return

    if frame.action == "subscribe":
        await subscriptions.subscribe(connection, frame.seller_id)
        await connection.send(
            server_frame(
                "subscribed",
                {
                    "sellerId": frame.seller_id,
                    "message": "Successfully subscribed to notifications",
                },
            )
        )
    else:
        await subscriptions.unsubscribe(connection, frame.seller_id)
        await connection.send(server_frame("unsubscribed", {"sellerId": frame.seller_id}))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    subscriptions: SubscriptionRouter = websocket.app.state.subscription_router
    connection = WebSocketConnection(websocket)

    await websocket.accept()
    logger.info(
        "WebSocket connected",
        extra={"operation": "connect", "connection_id": connection.id},
    )
    try:
        while True:
            raw = await websocket.receive_text()
            await _handle_frame(subscriptions, connection, raw)
    except WebSocketDisconnect:
        pass
    finally:
        await subscriptions.on_disconnect(connection)
