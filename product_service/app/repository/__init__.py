"""Repository layer for Product Service"""

from .product_repository import ProductRepository

__all__ = ["ProductRepository"]
