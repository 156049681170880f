"""
Product Service configuration
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the product service directory path
PRODUCT_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = PRODUCT_SERVICE_DIR / ".env"


class ProductSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Product Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Service specific
    SERVICE_NAME: str = "products-service"

    # Database
    PRODUCT_DATABASE_URL: str = "sqlite+aiosqlite:///./products.db"

    # Kafka for events
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_TOPIC_PRODUCT_EVENTS: str = "product-events"
    KAFKA_TOPIC_NOTIFICATIONS: str = "notifications"
    KAFKA_CONNECT_RETRIES: int = 20
    KAFKA_PUBLISH_RETRIES: int = 3
    EVENTS_ENABLED: bool = True

    # Low stock rule
    LOW_STOCK_THRESHOLD: int = 10

    # CORS
    CORS_ORIGINS: List[str] = ["*"]


# Create a singleton instance
_settings_instance = None


def get_settings() -> ProductSettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = ProductSettings()
    return _settings_instance
