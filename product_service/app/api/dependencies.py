"""
FastAPI dependency injection for Product Service

Provides database sessions, the event producer owned by the application
lifespan, and correlation ID propagation.
"""

import uuid
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..events.event_producers import ProductEventProducer
from ..services.product_service import ProductService

# =====================================================
# DATABASE DEPENDENCIES
# =====================================================


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Provide async database session"""
    async for session in request.app.state.database_manager.get_async_session():
        yield session


# =====================================================
# EVENT PUBLISHER DEPENDENCIES
# =====================================================


def get_product_event_producer(request: Request) -> Optional[ProductEventProducer]:
    """Provide the ProductEventProducer created in the lifespan"""
    return getattr(request.app.state, "event_producer", None)


# =====================================================
# REQUEST CONTEXT
# =====================================================


def get_correlation_id(
    x_correlation_id: Optional[str] = Header(default=None),
) -> str:
    """Propagate the caller's correlation ID or mint one"""
    return x_correlation_id or str(uuid.uuid4())


# =====================================================
# SERVICE DEPENDENCIES
# =====================================================


def get_product_service(
    session: AsyncSession = Depends(get_async_session),
    event_producer: Optional[ProductEventProducer] = Depends(
        get_product_event_producer
    ),
) -> ProductService:
    """Provide ProductService instance with database and event publishing"""
    return ProductService(session, event_producer)


ProductServiceDep = Depends(get_product_service)
CorrelationIdDep = Depends(get_correlation_id)
