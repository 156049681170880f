from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.product import ProductCategory


class ProductBase(BaseModel):
    name: str = Field(
        ..., min_length=1, max_length=255, description="Product name (required)"
    )
    description: str = Field(..., min_length=1, max_length=1000)
    price: Decimal = Field(
        ..., ge=0, max_digits=10, decimal_places=2, description="Non-negative price"
    )
    quantity: int = Field(..., ge=0, description="Units in stock")
    category: ProductCategory = ProductCategory.OTHER

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name cannot be empty or whitespace only")
        return v.strip()


class ProductCreate(ProductBase):
    seller_id: str = Field(..., min_length=1, max_length=36)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=0)
    category: Optional[ProductCategory] = None


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    seller_id: str
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool
