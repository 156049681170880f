"""
Notification Service configuration using shared patterns
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

NOTIFICATION_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = NOTIFICATION_SERVICE_DIR / ".env"


class NotificationServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Notification Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Service specific
    SERVICE_NAME: str = "notification-service"

    # Kafka for events
    KAFKA_BOOTSTRAP_SERVERS: str = "localhost:9092"
    KAFKA_GROUP_ID: str = "notification-service-consumer"
    KAFKA_TOPIC_NOTIFICATIONS: str = "notifications"
    KAFKA_AUTO_OFFSET_RESET: str = "latest"
    KAFKA_CONNECT_RETRIES: int = 5
    CONSUMER_ENABLED: bool = True

    # WebSocket push
    SEND_TIMEOUT_SECONDS: float = 5.0

    # CORS
    CORS_ORIGINS: List[str] = ["*"]


_settings_instance = None


def get_settings() -> NotificationServiceSettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = NotificationServiceSettings()
    return _settings_instance
