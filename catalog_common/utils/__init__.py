from .logging import CatalogJSONFormatter, setup_service_logging

__all__ = ["CatalogJSONFormatter", "setup_service_logging"]
