from typing import Any, Dict

from fastapi import APIRouter, Request

from ...core.settings import get_settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Analytics service health with storage and consumer checks."""
    settings = get_settings()
    state = request.app.state

    consumer = getattr(state, "event_consumer", None)
    checks = {
        "dynamodb": await state.analytics_store.health_check(),
        "s3": await state.event_archiver.health_check(),
        "kafka_consumer": await consumer.health_check() if consumer else False,
    }

    return {
        "service": settings.SERVICE_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy" if all(checks.values()) else "degraded",
        "checks": {name: "up" if ok else "down" for name, ok in checks.items()},
    }
