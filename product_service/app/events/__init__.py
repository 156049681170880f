"""
Events module for the Product Service.

Producers:
    - ProductEventProducer: publishes ProductCreated, ProductUpdated and
      ProductDeleted, and derives LowStockWarning from updates
"""

from .event_producers import ProductEventProducer, compute_changes, snapshot_product

__all__ = [
    "ProductEventProducer",
    "compute_changes",
    "snapshot_product",
]
