"""
Analytics Service configuration
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

ANALYTICS_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = ANALYTICS_SERVICE_DIR / ".env"


class AnalyticsServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Analytics Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Service specific
    SERVICE_NAME: str = "analytics-service"

    # AWS
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    DYNAMODB_ENDPOINT: Optional[str] = None
    DYNAMODB_TABLE_NAME: str = "product-analytics"
    S3_ENDPOINT: Optional[str] = None
    S3_HISTORICAL_BUCKET: str = "analytics-historical"
    S3_ARCHIVE_BUCKET: str = "analytics-archive"

    # Kafka for events
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_GROUP_ID: str = "analytics-service"
    KAFKA_TOPIC_PRODUCT_EVENTS: str = "product-events"
    KAFKA_CONNECT_RETRIES: int = 5
    CONSUMER_ENABLED: bool = True
    REDELIVERY_BACKOFF_SECONDS: float = 1.0
    SHUTDOWN_TIMEOUT_SECONDS: float = 30.0


_settings_instance = None


def get_settings() -> AnalyticsServiceSettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = AnalyticsServiceSettings()
    return _settings_instance
