"""Configuration for Dashboard Service"""
import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Service info
    SERVICE_NAME: str = "Dashboard Service"
    SERVICE_HOST: str = os.getenv("SERVICE_HOST", "0.0.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8000"))

    # Storage: memory | redis | sql
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./dashboards.db")

    # Storage keys for the two persisted documents
    DASHBOARDS_KEY: str = "unified-analytics-dashboards"
    DEPLOYED_KEY: str = "unified-analytics-deployed-dashboards"

    # Editor
    SAVE_DELAY_SECONDS: float = float(os.getenv("SAVE_DELAY_SECONDS", "0.5"))
    ENFORCE_VERSION_CHECK: bool = True
    DEFAULT_OWNER_ID: str = os.getenv("DEFAULT_OWNER_ID", "demo-user")
    SEED_TEMPLATES: bool = True

    # Analytics service; empty uses the built-in mock data
    ANALYTICS_SERVICE_URL: str = os.getenv("ANALYTICS_SERVICE_URL", "")
    ANALYTICS_TIMEOUT: float = 30.0

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"


settings = Settings()
