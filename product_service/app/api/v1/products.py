"""Product API endpoints"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from catalog_common.utils.logging import setup_service_logging

from ...core.setting import get_settings
from ...models.product import ProductCategory
from ...schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from ...services.product_service import ProductService
from ..dependencies import CorrelationIdDep, ProductServiceDep

logger = setup_service_logging(
    "product_service.api.products", log_level=get_settings().LOG_LEVEL
)
router = APIRouter(prefix="/products")


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    correlation_id: str = CorrelationIdDep,
    service: ProductService = ProductServiceDep,
):
    """Create a new product and publish ProductCreated"""
    try:
        return await service.create_product(
            product_data=product_data, correlation_id=correlation_id
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(
            f"Failed to create product: {str(e)}",
            extra={
                "seller_id": product_data.seller_id,
                "correlation_id": correlation_id,
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create product",
        )


@router.get("/", response_model=ProductListResponse)
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    seller_id: Optional[str] = Query(None),
    category: Optional[ProductCategory] = Query(None),
    sort_by: str = Query("created_at", pattern="^(name|price|quantity|created_at)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    service: ProductService = ProductServiceDep,
):
    """List products with filtering and pagination"""
    return await service.list_products(
        page=page,
        limit=limit,
        seller_id=seller_id,
        category=category,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    correlation_id: str = CorrelationIdDep,
    service: ProductService = ProductServiceDep,
):
    """Get product details by ID"""
    product = await service.get_product(
        product_id=product_id, correlation_id=correlation_id
    )

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        )

    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    correlation_id: str = CorrelationIdDep,
    service: ProductService = ProductServiceDep,
):
    """Update product and publish ProductUpdated"""
    try:
        product = await service.update_product(
            product_id=product_id,
            product_data=product_data,
            correlation_id=correlation_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        )

    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: str,
    reason: Optional[str] = Query(None, max_length=255),
    correlation_id: str = CorrelationIdDep,
    service: ProductService = ProductServiceDep,
):
    """Delete product and publish ProductDeleted"""
    deleted = await service.delete_product(
        product_id=product_id, correlation_id=correlation_id, reason=reason
    )

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Product not found"
        )

    return Response(status_code=status.HTTP_204_NO_CONTENT)
