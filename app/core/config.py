# app/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from .env"""

    # === Database ===
    DATABASE_URL: str
    DATABASE_TEST_URL: Optional[str] = None

    @validator("DATABASE_URL")
    def validate_database_url(cls, v):
        """Ensure database URL is safe for current environment"""
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env == "production" and ("localhost" in v or v.startswith("sqlite")):
            raise ValueError("🚨 Production environment cannot use a local database!")
        return v

    # === Celery ===
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # === JWT ===
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # === CORS ===
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    ALLOWED_METHODS: List[str] = ["*"]
    ALLOWED_HEADERS: List[str] = ["*"]

    # === Photo evidence ===
    UPLOAD_PATH: str = "uploads"
    PHOTO_BUCKET: str = "count_images"
    MAX_PHOTO_SIZE: int = 10 * 1024 * 1024

    # === Aggregation ===
    AGGREGATION_REFRESH_SECONDS: float = 300.0

    # === System ===
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    TIMEZONE: str = "UTC"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Create a global settings instance
settings = Settings()
