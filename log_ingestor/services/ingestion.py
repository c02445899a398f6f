"""Log ingestion service."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from log_ingestor.core.errors import InsertionError, StorageError
from log_ingestor.models import LogRecord
from log_ingestor.models.log import to_utc
from log_ingestor.storage import Deadline, LogStorage

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class IngestionService:
    """Normalizes incoming log records and hands them to storage.

    The only normalization is the timestamp rule: a record without a
    timestamp is stamped with the current UTC time from ``clock``. No other
    field is validated.
    """

    def __init__(self, storage: LogStorage, clock: Clock = utc_now):
        self.storage = storage
        self.clock = clock

    def normalize(self, record: LogRecord) -> LogRecord:
        """Return the record with a timestamp assigned if it had none."""
        if record.timestamp is not None:
            return record
        return record.model_copy(update={"timestamp": to_utc(self.clock())})

    def ingest(self, record: LogRecord, deadline: Deadline | None = None) -> LogRecord:
        """Store a log record.

        Args:
            record: Record as received from the caller
            deadline: Optional cancellation signal passed to storage

        Returns:
            The normalized record that was stored

        Raises:
            InsertionError: If storage rejects the record
            OperationCancelledError: If the deadline elapses first
        """
        normalized = self.normalize(record)

        try:
            self.storage.insert(normalized, deadline=deadline)
        except StorageError as e:
            raise InsertionError(f"failed to insert log: {e}") from e

        logger.debug(
            f"Ingested {normalized.level or '-'} log for resource "
            f"{normalized.resource_id or '-'}"
        )
        return normalized
