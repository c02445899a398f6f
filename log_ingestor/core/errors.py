"""Core exception classes for the application."""


class StorageError(Exception):
    """Raised when a storage backend fails to insert or query logs."""


class OperationCancelledError(Exception):
    """Raised when an operation's deadline elapses or it is cancelled."""


class InsertionError(Exception):
    """Raised when the ingestion service cannot store a log record."""
