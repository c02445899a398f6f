"""Business logic services."""

from .api_client import ApiClientService
from .generator import LogGenerator
from .ingestion import IngestionService

__all__ = ["ApiClientService", "IngestionService", "LogGenerator"]
