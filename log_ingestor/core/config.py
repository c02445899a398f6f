"""Application configuration."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def parse_list(value: str) -> list[str]:
    """Split a comma-separated setting, dropping blank entries."""
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Environment
    env: str = os.getenv("APP_ENV", "development")
    api_secret_key: str = os.getenv("API_SECRET_KEY", "dev-secret-key")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Storage: "sql" (persistent) or "memory"
    storage_backend: str = os.getenv("STORAGE_BACKEND", "sql")
    database_url: str = os.getenv(
        "DATABASE_URL", "postgresql:///logingestor?user=postgres"
    )

    # HTTP server
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    cors_origins: list[str] = parse_list(os.getenv("CORS_ORIGINS", "*"))

    # When false, GET /logs is served without an API key (browser UI)
    read_api_key_required: bool = parse_bool(
        os.getenv("READ_API_KEY_REQUIRED", "true")
    )
    # Static log viewer, served at / and /ui when the directory exists
    ui_dir: str = os.getenv("UI_DIR", "ui/dist")

    # Timeouts (in seconds)
    insert_timeout: float = float(os.getenv("INSERT_TIMEOUT", "5"))
    query_timeout: float = float(os.getenv("QUERY_TIMEOUT", "10"))


settings = Settings()
