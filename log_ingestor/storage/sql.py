"""SQL-backed log storage (PostgreSQL in production, SQLite in tests)."""

import logging
import re

from sqlalchemy import and_, func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlmodel import select

from log_ingestor.core.database import (
    create_db_engine,
    create_session_maker,
    create_tables,
    is_postgresql,
    session_scope,
)
from log_ingestor.core.errors import OperationCancelledError, StorageError
from log_ingestor.models import LogEntry, LogQuery, LogRecord
from log_ingestor.storage.base import Deadline, LogStorage
from log_ingestor.storage.matching import page_offset, resolve_pagination

logger = logging.getLogger(__name__)

# SQLSTATE for query_canceled (statement_timeout or pg_cancel_backend)
QUERY_CANCELED_SQLSTATE = "57014"

TEXT_SEARCH_CONFIG = "english"

# Largest OFFSET/LIMIT the drivers bind (signed 64-bit)
MAX_SQL_INTEGER = 2**63 - 1


def is_valid_regex(pattern: str) -> bool:
    try:
        re.compile(pattern)
    except re.error:
        return False
    return True


def _sqlstate(error: SQLAlchemyError) -> str | None:
    orig = getattr(error, "orig", None)
    # psycopg exposes sqlstate, psycopg2 pgcode
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


class SQLLogStorage(LogStorage):
    """Log storage on a relational database.

    Results are ordered by timestamp, newest first. The ``message`` filter is
    a case-insensitive regular expression; a valid ``regex_pattern`` replaces
    it, an invalid one is ignored.
    """

    def __init__(self, database_url: str, env: str | None = None):
        self._engine = create_db_engine(database_url, env=env)
        self._session_maker = create_session_maker(self._engine)

        try:
            create_tables(self._engine)
        except SQLAlchemyError as e:
            self._engine.dispose()
            raise StorageError(f"failed to initialize log storage: {e}") from e

        logger.info(
            f"Connected to {self._engine.url.render_as_string(hide_password=True)}"
        )

    def insert(self, record: LogRecord, deadline: Deadline | None = None) -> None:
        if deadline:
            deadline.check("insert")

        try:
            with session_scope(self._session_maker) as session:
                self._apply_deadline(session, deadline)
                session.add(LogEntry.from_record(record))
        except SQLAlchemyError as e:
            raise self._translate_error(e, "insert") from e

    def query(
        self, query: LogQuery, deadline: Deadline | None = None
    ) -> tuple[list[LogRecord], int]:
        if deadline:
            deadline.check("query")
        resolve_pagination(query)

        offset = page_offset(query.page, query.limit)
        if offset > MAX_SQL_INTEGER:
            return [], 0

        statement = (
            select(LogEntry)
            .where(*self.build_filters(query))
            .order_by(LogEntry.timestamp.desc(), LogEntry.id.desc())
            .offset(offset)
            .limit(min(query.limit, MAX_SQL_INTEGER))
        )

        try:
            with session_scope(self._session_maker) as session:
                self._apply_deadline(session, deadline)
                entries = session.execute(statement).scalars().all()
                records = [entry.to_record() for entry in entries]
        except SQLAlchemyError as e:
            raise self._translate_error(e, "query") from e

        return records, len(records)

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Database connections closed")

    def build_filters(self, query: LogQuery) -> list:
        """Translate a query's filters into SQL WHERE clauses."""
        clauses = []

        equality_filters = (
            (LogEntry.level, query.level),
            (LogEntry.resource_id, query.resource_id),
            (LogEntry.trace_id, query.trace_id),
            (LogEntry.span_id, query.span_id),
            (LogEntry.commit, query.commit),
            (LogEntry.parent_resource_id, query.parent_resource_id),
        )
        for column, value in equality_filters:
            if value:
                clauses.append(column == value)

        if query.start_time is not None:
            clauses.append(LogEntry.timestamp >= query.start_time)
        if query.end_time is not None:
            clauses.append(LogEntry.timestamp <= query.end_time)

        message_pattern = query.message
        if query.regex_pattern and is_valid_regex(query.regex_pattern):
            message_pattern = query.regex_pattern
        if message_pattern:
            clauses.append(self._regex_clause(message_pattern))

        if query.full_text_search:
            search_clause = self._full_text_clause(query.full_text_search)
            if search_clause is not None:
                clauses.append(search_clause)

        return clauses

    def _regex_clause(self, pattern: str):
        if is_postgresql(self._engine):
            return LogEntry.message.regexp_match(pattern, flags="i")
        # SQLite REGEXP only takes inline flags
        return LogEntry.message.regexp_match(f"(?i){pattern}")

    def _full_text_clause(self, search: str):
        if is_postgresql(self._engine):
            return func.to_tsvector(TEXT_SEARCH_CONFIG, LogEntry.message).op("@@")(
                func.plainto_tsquery(TEXT_SEARCH_CONFIG, search)
            )

        # No text index elsewhere: every term must appear in the message
        terms = search.split()
        if not terms:
            return None
        return and_(
            *(LogEntry.message.icontains(term, autoescape=True) for term in terms)
        )

    def _apply_deadline(self, session: Session, deadline: Deadline | None) -> None:
        if deadline is None or not is_postgresql(self._engine):
            return
        remaining = deadline.remaining()
        if remaining is None:
            return
        timeout_ms = max(1, int(remaining * 1000))
        session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))

    @staticmethod
    def _translate_error(error: SQLAlchemyError, operation: str) -> Exception:
        if _sqlstate(error) == QUERY_CANCELED_SQLSTATE:
            return OperationCancelledError(f"{operation} deadline exceeded")
        cause = getattr(error, "orig", None) or error
        return StorageError(str(cause))
