"""Application configuration loaded via pydantic settings."""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Strongly-typed application settings with environment overrides."""

    # Application
    APP_NAME: str = "Toolkit Inventory & Stock Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./data/toolkits.db"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_LEVELS: str = "TRACE,ERROR,WARNING,INFO"
    LOG_FILE_PATH: str = "./logs/app.log"
    LOG_TRACE_CALLS: bool = True

    # Stock ledger
    DEFAULT_MIN_STOCK_LEVEL: int = 5
    DEFAULT_UPDATED_BY: str = "System"
    SAVE_RETRY_LIMIT: int = 3

    # Notifications
    NOTIFICATIONS_ENABLED: bool = True
    NOTIFICATION_WORKERS: int = 2
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0
    NOTIFICATION_MAX_ATTEMPTS: int = 2
    PUSH_WEBHOOK_URL: str = ""

    # Development
    SEED_MOCK_DATA: bool = False

    class Config:
        """Configure environment file loading behavior."""

        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
