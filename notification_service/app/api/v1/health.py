from typing import Any, Dict

from fastapi import APIRouter, Request

from ...core.settings import get_settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Notification service health with live subscription counts."""
    settings = get_settings()
    registry = request.app.state.subscription_router.registry
    consumer = getattr(request.app.state, "event_consumer", None)
    consumer_up = await consumer.health_check() if consumer else False

    return {
        "service": settings.SERVICE_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy" if consumer_up else "degraded",
        "connectedSellers": registry.connected_sellers(),
        "totalClients": registry.total_clients(),
        "checks": {"kafka_consumer": "up" if consumer_up else "down"},
    }
