"""Storage port for log records.

Every backend (in-memory, SQL) implements ``LogStorage``. Backends differ in
internal representation and ordering, but share the observable contract:

- ``insert`` appends exactly one record and never mutates earlier ones.
- ``query`` resolves default pagination on the query object itself, then
  returns one page of matches plus the number of records in that page. A page
  beyond the available matches is empty, never an error.
- Both accept an optional ``Deadline`` and raise ``OperationCancelledError``
  instead of blocking past it.
"""

import threading
import time
from abc import ABC, abstractmethod

from log_ingestor.core.errors import OperationCancelledError
from log_ingestor.models import LogQuery, LogRecord


class Deadline:
    """Cancellation signal with an optional expiry time."""

    def __init__(self, expires_at: float | None = None):
        # Monotonic clock value, None for no expiry
        self.expires_at = expires_at
        self._cancelled = threading.Event()

    @classmethod
    def after(cls, seconds: float | None) -> "Deadline":
        """Create a deadline that expires ``seconds`` from now."""
        if seconds is None:
            return cls()
        return cls(time.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel any operation bound to this deadline."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds left before expiry, None when unbounded."""
        if self.cancelled:
            return 0.0
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, operation: str = "operation") -> None:
        """Raise OperationCancelledError if the deadline has passed."""
        if self.cancelled:
            raise OperationCancelledError(f"{operation} cancelled")
        if self.expired():
            raise OperationCancelledError(f"{operation} deadline exceeded")


class LogStorage(ABC):
    """Persistence contract for log records."""

    @abstractmethod
    def insert(self, record: LogRecord, deadline: Deadline | None = None) -> None:
        """Append one record.

        Raises:
            StorageError: If the backend rejects the write
            OperationCancelledError: If the deadline elapses first
        """

    @abstractmethod
    def query(
        self, query: LogQuery, deadline: Deadline | None = None
    ) -> tuple[list[LogRecord], int]:
        """Return one page of matching records and the page's record count.

        Raises:
            StorageError: If the backend cannot run the query
            OperationCancelledError: If the deadline elapses first
        """

    @abstractmethod
    def close(self) -> None:
        """Release backend resources. Call at most once."""
