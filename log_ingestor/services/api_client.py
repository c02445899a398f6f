"""API client service for interacting with the log ingestor API."""

import os
from typing import Any

import httpx

from log_ingestor.models import LogQuery, LogRecord
from log_ingestor.models.log import QUERY_TIME_FORMAT


class ApiClientService:
    """Service for log ingestor API client operations."""

    @staticmethod
    def get_client(
        base_url: str | None = None, api_key: str | None = None
    ) -> httpx.Client:
        """Get configured HTTP client.

        Args:
            base_url: API base URL (defaults to LOG_INGESTOR_URL env var or http://localhost:3000)
            api_key: API key for authentication (defaults to API_SECRET_KEY env var)

        Returns:
            Configured httpx.Client with base_url, headers, and timeout
        """
        if base_url is None:
            base_url = os.getenv("LOG_INGESTOR_URL", "http://localhost:3000")
        if api_key is None:
            api_key = os.getenv("API_SECRET_KEY", "")

        return httpx.Client(
            base_url=base_url,
            headers={"X-API-Key": api_key},
            timeout=30.0,
        )

    @staticmethod
    def ingest_log(
        record: LogRecord, client: httpx.Client | None = None
    ) -> dict[str, Any]:
        """Send one log record to the ingestion endpoint.

        Args:
            record: Log record to send; a missing timestamp is assigned server-side
            client: Optional httpx.Client to use (if None, creates new client)

        Returns:
            Response body, e.g. {"status": "Log ingested successfully"}

        Raises:
            httpx.HTTPStatusError: If API request fails
        """
        should_close = client is None
        if client is None:
            client = ApiClientService.get_client()

        try:
            payload = record.model_dump(mode="json", by_alias=True, exclude_none=True)
            response = client.post("/", json=payload)
            response.raise_for_status()
            return response.json()
        finally:
            if should_close:
                client.close()

    @staticmethod
    def query_logs(
        query: LogQuery, client: httpx.Client | None = None
    ) -> tuple[list[LogRecord], int]:
        """Query stored logs.

        Args:
            query: Filters and pagination; empty filters are not sent
            client: Optional httpx.Client to use (if None, creates new client)

        Returns:
            Tuple of (records in the page, count)

        Raises:
            httpx.HTTPStatusError: If API request fails
        """
        should_close = client is None
        if client is None:
            client = ApiClientService.get_client()

        try:
            response = client.get("/logs", params=ApiClientService.query_params(query))
            response.raise_for_status()
            data = response.json()
            records = [LogRecord.model_validate(item) for item in data["logs"]]
            return records, data["count"]
        finally:
            if should_close:
                client.close()

    @staticmethod
    def query_params(query: LogQuery) -> dict[str, str | int]:
        """Convert a query into request parameters, dropping unset fields."""
        params: dict[str, str | int] = {}
        for name, value in query.model_dump(by_alias=True).items():
            if value in ("", None, 0):
                continue
            if name in ("startTime", "endTime"):
                value = value.strftime(QUERY_TIME_FORMAT)
            params[name] = value
        return params
