"""In-memory log storage."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from log_ingestor.core.errors import OperationCancelledError
from log_ingestor.models import LogQuery, LogRecord
from log_ingestor.storage.base import Deadline, LogStorage
from log_ingestor.storage.matching import matches_query, paginate, resolve_pagination

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Lock allowing many concurrent readers or one writer.

    Waiting writers block new readers so a steady stream of queries cannot
    starve inserts.
    """

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self, timeout: float | None = None) -> bool:
        with self._condition:
            acquired = self._condition.wait_for(
                lambda: not self._writer and self._waiting_writers == 0,
                timeout=timeout,
            )
            if acquired:
                self._readers += 1
            return acquired

    def release_read(self) -> None:
        with self._condition:
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    def acquire_write(self, timeout: float | None = None) -> bool:
        with self._condition:
            self._waiting_writers += 1
            try:
                acquired = self._condition.wait_for(
                    lambda: not self._writer and self._readers == 0,
                    timeout=timeout,
                )
            finally:
                self._waiting_writers -= 1
            if acquired:
                self._writer = True
            else:
                # Readers held back by this writer may proceed
                self._condition.notify_all()
            return acquired

    def release_write(self) -> None:
        with self._condition:
            self._writer = False
            self._condition.notify_all()

    @contextmanager
    def read_locked(self, deadline: Deadline | None = None) -> Iterator[None]:
        """Hold a shared lock, giving up when the deadline passes."""
        timeout = deadline.remaining() if deadline else None
        if not self.acquire_read(timeout=timeout):
            raise OperationCancelledError("timed out waiting for read lock")
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self, deadline: Deadline | None = None) -> Iterator[None]:
        """Hold the exclusive lock, giving up when the deadline passes."""
        timeout = deadline.remaining() if deadline else None
        if not self.acquire_write(timeout=timeout):
            raise OperationCancelledError("timed out waiting for write lock")
        try:
            yield
        finally:
            self.release_write()


class InMemoryLogStorage(LogStorage):
    """Append-only list of records guarded by a reader/writer lock.

    Queries return matches in insertion order. The ``message`` filter is a
    case-sensitive literal substring match; ``regex_pattern`` and
    ``full_text_search`` are ignored.
    """

    def __init__(self):
        self._records: list[LogRecord] = []
        self._lock = ReadWriteLock()

    def insert(self, record: LogRecord, deadline: Deadline | None = None) -> None:
        if deadline:
            deadline.check("insert")
        # Copy so later changes to the caller's metadata dict are not seen
        stored = record.model_copy(deep=True)
        with self._lock.write_locked(deadline):
            self._records.append(stored)

    def query(
        self, query: LogQuery, deadline: Deadline | None = None
    ) -> tuple[list[LogRecord], int]:
        if deadline:
            deadline.check("query")
        resolve_pagination(query)
        with self._lock.read_locked(deadline):
            matched = [
                record for record in self._records if matches_query(record, query)
            ]

        page = [
            record.model_copy(deep=True)
            for record in paginate(matched, query.page, query.limit)
        ]
        return page, len(page)

    def close(self) -> None:
        logger.debug(f"Closing in-memory storage holding {len(self)} records")

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._records)
