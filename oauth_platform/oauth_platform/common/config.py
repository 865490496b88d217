"""
Configuration management for the OAuth platform services
"""
from fastapi import Request
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional


class Settings(BaseSettings):
    """Platform configuration loaded from environment variables"""

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    TRACE_HEADER: str = "X-Trace-Id"

    # Database Configuration
    OAUTH_DATABASE_URL: str = "sqlite:///./oauth.db"
    CATALOG_DATABASE_URL: str = "sqlite:///./catalog.db"

    # Tokens
    SECRET_KEY: str = "change-this-secret-in-prod"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Projects a new account may reach, and where each one redirects after login
    DEFAULT_PROJECTS: List[str] = ["testing"]
    PROJECT_URLS: Dict[str, str] = {
        "testing": "https://www.example.com/project1",
        "project2": "https://www.example.com/project2",
    }

    # Login rate limiting (per client address)
    LOGIN_RATE_LIMIT_MAX_ATTEMPTS: int = 100
    LOGIN_RATE_LIMIT_WINDOW_MINUTES: int = 180

    # Catalog query defaults
    DEFAULT_PAGE_SIZE: int = 10
    FEATURED_DEFAULT_LIMIT: int = 5
    TOP_SELLERS_LIMIT: int = 5
    TOP_RATED_DEFAULT_LIMIT: int = 10

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


# Global settings instance
settings = Settings()


def get_settings(request: Request) -> Settings:
    """Settings injected into the app by ``create_app``."""
    return request.app.state.settings
