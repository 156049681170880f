from .base import ProductServiceBase, ProductServiceBaseModel
from .product import Product, ProductCategory

__all__ = [
    "ProductServiceBase",
    "ProductServiceBaseModel",
    "Product",
    "ProductCategory",
]
