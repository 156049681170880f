from typing import Any, Dict

from fastapi import APIRouter, Request

from ...core.setting import get_settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Liveness plus event bus connectivity for the product service."""
    settings = get_settings()
    publisher = getattr(request.app.state, "event_publisher", None)
    kafka_healthy = await publisher.health_check() if publisher else False

    return {
        "service": settings.SERVICE_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy" if kafka_healthy else "degraded",
        "checks": {
            "database": "up",
            "kafka": "up" if kafka_healthy else "down",
        },
    }
