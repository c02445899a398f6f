"""Data models."""

from .log import LogEntry, LogQuery, LogRecord

__all__ = ["LogEntry", "LogQuery", "LogRecord"]
