"""
Application configuration using Pydantic Settings.

This module manages all configuration from environment variables.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Excel Records API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "REST API for converting Excel sheets to typed records and back"
    API_PREFIX: str = "/api"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    RELOAD: bool = False

    # Upload Configuration
    MAX_FILE_SIZE_MB: int = 100
    ALLOWED_EXTENSIONS: List[str] = [".xlsx", ".xlsm"]
    UPLOAD_FIELD_NAME: str = "file"

    # Workbook Configuration
    DEFAULT_SHEET_NAME: str = "Sheet1"
    DEFAULT_EXPORT_FILENAME: str = "export.xlsx"
    STREAM_CHUNK_SIZE: int = 64 * 1024
    STREAM_QUEUE_SIZE: int = 16

    # Modules imported at startup so their @register_record types are available
    RECORD_MODULES: List[str] = []

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Create global settings instance
settings = get_settings()
