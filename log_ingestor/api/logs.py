"""Log ingestion and query endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ValidationError

from log_ingestor.core.auth import verify_api_key, verify_read_access
from log_ingestor.core.config import settings
from log_ingestor.core.errors import (
    InsertionError,
    OperationCancelledError,
    StorageError,
)
from log_ingestor.models import LogQuery, LogRecord
from log_ingestor.services import IngestionService
from log_ingestor.storage import Deadline, LogStorage

logger = logging.getLogger(__name__)

router = APIRouter()


class IngestResponse(BaseModel):
    """Response model for a successful ingestion."""

    status: str


class LogListResponse(BaseModel):
    """Response model for one page of logs."""

    logs: list[LogRecord]
    count: int


def describe_validation_error(error: ValidationError) -> str:
    """Flatten a validation error into a one-line message."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )
    return f"Invalid query parameters: {problems}"


def get_storage(request: Request) -> LogStorage:
    return request.app.state.storage


def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


@router.post("/", response_model=IngestResponse)
def ingest_log(
    record: LogRecord,
    service: Annotated[IngestionService, Depends(get_ingestion_service)],
    api_key: str = Depends(verify_api_key),
):
    """Ingest a single log record."""
    try:
        service.ingest(record, deadline=Deadline.after(settings.insert_timeout))
    except InsertionError as e:
        logger.error(f"Error inserting log: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to insert log: {e.__cause__ or e}",
        ) from e
    except OperationCancelledError as e:
        logger.error(f"Log insert timed out: {e}")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"Log insert timed out: {e}",
        ) from e

    return IngestResponse(status="Log ingested successfully")


@router.get("/logs", response_model=LogListResponse)
def query_logs(
    storage: Annotated[LogStorage, Depends(get_storage)],
    level: str = "",
    message: str = "",
    resource_id: Annotated[str, Query(alias="resourceId")] = "",
    trace_id: Annotated[str, Query(alias="traceId")] = "",
    span_id: Annotated[str, Query(alias="spanId")] = "",
    commit: str = "",
    parent_resource_id: Annotated[str, Query(alias="parentResourceId")] = "",
    start_time: Annotated[str, Query(alias="startTime")] = "",
    end_time: Annotated[str, Query(alias="endTime")] = "",
    regex: str = "",
    search: str = "",
    page: str = "",
    limit: str = "",
    api_key: str | None = Depends(verify_read_access),
):
    """Query logs with filters and pagination."""
    try:
        query = LogQuery(
            level=level,
            message=message,
            resource_id=resource_id,
            trace_id=trace_id,
            span_id=span_id,
            commit=commit,
            parent_resource_id=parent_resource_id,
            start_time=start_time,
            end_time=end_time,
            regex_pattern=regex,
            full_text_search=search,
            page=page,
            limit=limit,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=describe_validation_error(e),
        ) from e

    try:
        logs, count = storage.query(
            query, deadline=Deadline.after(settings.query_timeout)
        )
    except StorageError as e:
        logger.error(f"Error querying logs: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to query logs",
        ) from e
    except OperationCancelledError as e:
        logger.error(f"Log query timed out: {e}")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"Log query timed out: {e}",
        ) from e

    return LogListResponse(logs=logs, count=count)
