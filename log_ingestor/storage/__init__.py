"""Log storage backends."""

from log_ingestor.core.config import Settings
from log_ingestor.storage.base import Deadline, LogStorage
from log_ingestor.storage.memory import InMemoryLogStorage
from log_ingestor.storage.sql import SQLLogStorage

__all__ = [
    "Deadline",
    "InMemoryLogStorage",
    "LogStorage",
    "SQLLogStorage",
    "create_storage",
]


def create_storage(settings: Settings) -> LogStorage:
    """Build the storage backend selected by configuration."""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return InMemoryLogStorage()
    if backend == "sql":
        return SQLLogStorage(settings.database_url, env=settings.env)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
