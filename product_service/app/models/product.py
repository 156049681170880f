import enum
from decimal import Decimal

from sqlalchemy import DECIMAL, TEXT, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import ProductServiceBaseModel


class ProductCategory(str, enum.Enum):
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    BOOKS = "books"
    HOME = "home"
    SPORTS = "sports"
    OTHER = "other"


class Product(ProductServiceBaseModel):
    __tablename__ = "products"

    seller_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(TEXT, nullable=False)
    price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[ProductCategory] = mapped_column(
        Enum(
            ProductCategory,
            name="product_category",
            values_callable=lambda categories: [c.value for c in categories],
        ),
        nullable=False,
        default=ProductCategory.OTHER,
    )
