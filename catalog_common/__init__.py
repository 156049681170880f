"""
Shared building blocks for the catalog services: the event contract,
the error taxonomy, Kafka adapters and structured logging.
"""

__version__ = "1.0.0"
