"""Product service for business logic"""

import math
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from catalog_common.errors import PublishError
from catalog_common.events import EventType
from catalog_common.utils.logging import setup_service_logging

from ..core.setting import get_settings
from ..events.event_producers import ProductEventProducer, snapshot_product
from ..models.product import Product, ProductCategory
from ..repository.product_repository import ProductRepository
from ..schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)

logger = setup_service_logging(
    "product_service.services.products", log_level=get_settings().LOG_LEVEL
)


class ProductService:
    """Service class for product business logic"""

    def __init__(
        self, db: AsyncSession, event_producer: Optional[ProductEventProducer] = None
    ):
        self.db = db
        self.repository = ProductRepository(db)
        self.event_producer = event_producer

    async def create_product(
        self, product_data: ProductCreate, correlation_id: Optional[str] = None
    ) -> ProductResponse:
        """Create a new product"""
        product = await self.repository.create_product(product_data)

        logger.info(
            "Product created successfully",
            extra={
                "product_id": product.id,
                "seller_id": product.seller_id,
                "correlation_id": correlation_id,
            },
        )

        await self._emit(EventType.PRODUCT_CREATED, product, correlation_id=correlation_id)
        return ProductResponse.model_validate(product)

    async def get_product(
        self, product_id: str, correlation_id: Optional[str] = None
    ) -> Optional[ProductResponse]:
        """Get product by ID"""
        product = await self.repository.get_product_by_id(product_id)
        if not product:
            return None

        logger.debug(
            "Product retrieved",
            extra={"product_id": product_id, "correlation_id": correlation_id},
        )
        return ProductResponse.model_validate(product)

    async def list_products(
        self,
        page: int = 1,
        limit: int = 20,
        seller_id: Optional[str] = None,
        category: Optional[ProductCategory] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> ProductListResponse:
        """List products for the dashboard"""
        products, total = await self.repository.list_products(
            page=page,
            limit=limit,
            seller_id=seller_id,
            category=category,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        total_pages = math.ceil(total / limit) if limit else 0

        return ProductListResponse(
            products=[ProductResponse.model_validate(p) for p in products],
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    async def update_product(
        self,
        product_id: str,
        product_data: ProductUpdate,
        correlation_id: Optional[str] = None,
    ) -> Optional[ProductResponse]:
        """Update product and publish the change with its previous state"""
        product = await self.repository.get_product_by_id(product_id)
        if not product:
            return None

        previous_state = snapshot_product(product)
        product = await self.repository.update_product(product, product_data)

        logger.info(
            "Product updated successfully",
            extra={
                "product_id": product_id,
                "updated_fields": sorted(
                    product_data.model_dump(exclude_unset=True).keys()
                ),
                "correlation_id": correlation_id,
            },
        )

        await self._emit(
            EventType.PRODUCT_UPDATED,
            product,
            previous_state=previous_state,
            correlation_id=correlation_id,
        )
        return ProductResponse.model_validate(product)

    async def delete_product(
        self,
        product_id: str,
        correlation_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> bool:
        """Delete product"""
        product = await self.repository.get_product_by_id(product_id)
        if not product:
            return False

        await self.repository.delete_product(product)

        logger.info(
            "Product deleted successfully",
            extra={
                "product_id": product_id,
                "reason": reason,
                "correlation_id": correlation_id,
            },
        )

        await self._emit(
            EventType.PRODUCT_DELETED,
            product,
            correlation_id=correlation_id,
            reason=reason,
        )
        return True

    async def _emit(
        self,
        kind: EventType,
        product: Product,
        previous_state: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        # The mutation is already committed; a lost event must not fail the request
        if not self.event_producer:
            logger.warning(
                "Event producer not available, skipping event",
                extra={"event_type": kind.value, "product_id": product.id},
            )
            return

        try:
            await self.event_producer.emit(
                kind,
                product,
                previous_state=previous_state,
                correlation_id=correlation_id,
                reason=reason,
            )
        except PublishError as e:
            logger.error(
                "Failed to publish product event, downstream services will miss this change",
                extra={
                    "operation": "publish_product_event_failed",
                    "product_id": product.id,
                    "seller_id": product.seller_id,
                    "correlation_id": correlation_id,
                    "alert": True,
                    **e.to_dict(),
                },
            )
