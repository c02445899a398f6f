"""Log record, log query and the persisted log table."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import JSON, Column, DateTime, Index, String, Text, func
from sqlmodel import Field as SQLField
from sqlmodel import SQLModel

# Text format accepted for startTime/endTime query parameters
QUERY_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Zero instant sent by clients whose time type has a zero value
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)

PARENT_RESOURCE_ID_KEY = "parentResourceId"


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_zero_time(value: datetime | None) -> bool:
    """Return True when a timestamp is absent."""
    return value is None or to_utc(value) == ZERO_TIME


class LogRecord(BaseModel):
    """A single stored log entry. Immutable once built."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    level: str = ""
    message: str = ""
    resource_id: str = Field(default="", alias="resourceId")
    timestamp: datetime | None = None
    trace_id: str = Field(default="", alias="traceId")
    span_id: str = Field(default="", alias="spanId")
    commit: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        if is_zero_time(value):
            return None
        return to_utc(value)

    @property
    def parent_resource_id(self) -> str:
        """Parent resource ID from metadata, empty string when missing."""
        return self.metadata.get(PARENT_RESOURCE_ID_KEY, "")


class LogQuery(BaseModel):
    """Filter and pagination request for stored logs.

    Pagination fields are resolved in place by the storage backend when a
    query runs, so a page or limit of 0 becomes 1 or 10 after execution.
    """

    model_config = ConfigDict(populate_by_name=True)

    level: str = ""
    message: str = ""
    resource_id: str = Field(default="", alias="resourceId")
    trace_id: str = Field(default="", alias="traceId")
    span_id: str = Field(default="", alias="spanId")
    commit: str = ""
    parent_resource_id: str = Field(default="", alias="parentResourceId")
    start_time: datetime | None = Field(default=None, alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    regex_pattern: str = Field(default="", alias="regex")
    full_text_search: str = Field(default="", alias="search")
    page: int = 0
    limit: int = 0

    @field_validator("page", "limit", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return 0
        return value

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        if value is None or isinstance(value, datetime):
            return value
        if isinstance(value, str):
            if not value:
                return None
            return datetime.strptime(value, QUERY_TIME_FORMAT).replace(tzinfo=UTC)
        raise ValueError(f"unsupported time value: {value!r}")

    @field_validator("start_time", "end_time")
    @classmethod
    def _time_to_utc(cls, value: datetime | None) -> datetime | None:
        if is_zero_time(value):
            return None
        return to_utc(value)


class LogEntry(SQLModel, table=True):
    """Persisted log row for the SQL storage backend."""

    __tablename__ = "logs"
    __table_args__ = (
        Index(
            "ix_logs_lookup",
            "level",
            "resource_id",
            "trace_id",
            "span_id",
            "commit",
            "timestamp",
        ),
    )

    # Surrogate key, never exposed to callers
    id: int | None = SQLField(default=None, primary_key=True)

    level: str = SQLField(default="", sa_column=Column(String, nullable=False))
    message: str = SQLField(default="", sa_column=Column(Text, nullable=False))
    resource_id: str = SQLField(default="", sa_column=Column(String, nullable=False))
    trace_id: str = SQLField(default="", sa_column=Column(String, nullable=False))
    span_id: str = SQLField(default="", sa_column=Column(String, nullable=False))
    commit: str = SQLField(default="", sa_column=Column(String, nullable=False))
    timestamp: datetime = SQLField(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    # "metadata" is reserved on declarative classes
    log_metadata: dict[str, str] = SQLField(
        default_factory=dict,
        sa_column=Column("metadata", JSON, nullable=False),
    )
    parent_resource_id: str = SQLField(
        default="",
        sa_column=Column(String, nullable=False, index=True),
        description="Copy of metadata.parentResourceId for indexed filtering",
    )

    @classmethod
    def from_record(cls, record: LogRecord) -> "LogEntry":
        """Build a row from a normalized record."""
        return cls(
            level=record.level,
            message=record.message,
            resource_id=record.resource_id,
            trace_id=record.trace_id,
            span_id=record.span_id,
            commit=record.commit,
            # Absent timestamps are stored as the zero instant
            timestamp=record.timestamp or ZERO_TIME,
            log_metadata=dict(record.metadata),
            parent_resource_id=record.parent_resource_id,
        )

    def to_record(self) -> LogRecord:
        """Convert the row back to a LogRecord."""
        return LogRecord(
            level=self.level,
            message=self.message,
            resource_id=self.resource_id,
            timestamp=self.timestamp,
            trace_id=self.trace_id,
            span_id=self.span_id,
            commit=self.commit,
            metadata=dict(self.log_metadata or {}),
        )


# Full-text index over message, PostgreSQL only
Index(
    "ix_logs_message_fts",
    func.to_tsvector("english", LogEntry.__table__.c.message),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")
