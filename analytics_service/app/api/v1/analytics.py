"""Analytics query endpoints"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from catalog_common.errors import StorageError
from catalog_common.events import EventType, format_timestamp
from catalog_common.utils.logging import setup_service_logging

logger = setup_service_logging("analytics_service.api.analytics")
router = APIRouter(prefix="/analytics")


def _storage_unavailable(e: StorageError) -> HTTPException:
    logger.error(
        "Analytics query failed",
        extra={"operation": "query_analytics", **e.to_dict()},
    )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Analytics storage unavailable",
    )


@router.get("/products/{seller_id}/{product_id}")
async def get_product_history(
    request: Request,
    seller_id: str,
    product_id: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
) -> Dict[str, Any]:
    """Analytics history for one product, oldest first"""
    try:
        records = await request.app.state.analytics_store.get_product_history(
            seller_id, product_id, limit=limit
        )
    except StorageError as e:
        raise _storage_unavailable(e)

    return {
        "sellerId": seller_id,
        "productId": product_id,
        "count": len(records),
        "records": records,
    }


@router.get("/events/{event_type}")
async def get_events_by_type(
    request: Request,
    event_type: str,
    since: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
) -> Dict[str, Any]:
    """Logged events of one kind, oldest first"""
    try:
        kind = EventType(event_type)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown event type: {event_type}",
        )

    try:
        records = await request.app.state.analytics_store.get_events_by_type(
            kind.value,
            since=format_timestamp(since) if since else None,
            limit=limit,
        )
    except StorageError as e:
        raise _storage_unavailable(e)

    return {"eventType": kind.value, "count": len(records), "events": records}
