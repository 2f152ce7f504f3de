"""Configuration management.

Reads settings from env vars (and a local .env file if there is one).
"""
import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """App settings loaded from environment variables"""

    # API tokens - comma separated list
    api_tokens: List[str] = os.getenv(
        "API_TOKEN",
        "default-dev-token"
    ).split(",")

    # Database
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./experiments.db"
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS origins - comma separated, "*" allows everything
    cors_origins: List[str] = os.getenv("CORS_ORIGINS", "*").split(",")

    # Server
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


settings = Settings()
