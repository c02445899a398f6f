"""API key authentication for the ingestion and query endpoints."""

import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from log_ingestor.core.config import settings

API_KEY_HEADER_NAME = "X-API-Key"

api_key_header = APIKeyHeader(name=API_KEY_HEADER_NAME, auto_error=False)


def check_api_key(api_key: str | None) -> str:
    """Raise 403 unless ``api_key`` matches the configured secret."""
    if api_key is None or not secrets.compare_digest(
        api_key.encode(), settings.api_secret_key.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )
    return api_key


def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """Reject requests whose X-API-Key does not match the configured secret."""
    return check_api_key(api_key)


def verify_read_access(
    api_key: str | None = Security(api_key_header),
) -> str | None:
    """Like verify_api_key, unless READ_API_KEY_REQUIRED is turned off."""
    if not settings.read_api_key_required:
        return api_key
    return check_api_key(api_key)
