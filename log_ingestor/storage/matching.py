"""Record matching and pagination shared by the storage backends."""

from collections.abc import Sequence
from typing import TypeVar

from log_ingestor.models import LogQuery, LogRecord
from log_ingestor.models.log import ZERO_TIME

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

T = TypeVar("T")


def resolve_pagination(query: LogQuery) -> LogQuery:
    """Replace unset or non-positive page/limit on the query with defaults."""
    if query.page <= 0:
        query.page = DEFAULT_PAGE
    if query.limit <= 0:
        query.limit = DEFAULT_LIMIT
    return query


def page_offset(page: int, limit: int) -> int:
    """Index of the first record on a 1-based page."""
    return (page - 1) * limit


def paginate(matches: Sequence[T], page: int, limit: int) -> list[T]:
    """Slice one page out of an ordered list of matches.

    Pages past the end are empty rather than an error.
    """
    start = page_offset(page, limit)
    if start >= len(matches):
        return []
    end = min(start + limit, len(matches))
    return list(matches[start:end])


def contains(text: str, substring: str) -> bool:
    """Case-sensitive literal substring test. An empty substring always matches."""
    if substring == "":
        return True
    return substring in text


def matches_query(record: LogRecord, query: LogQuery) -> bool:
    """Check whether a record satisfies every non-empty filter of a query.

    ``regex_pattern`` and ``full_text_search`` are not evaluated here; only
    backends with a native pattern or text-search engine apply them.
    """
    equality_filters = (
        (query.level, record.level),
        (query.resource_id, record.resource_id),
        (query.trace_id, record.trace_id),
        (query.span_id, record.span_id),
        (query.commit, record.commit),
        (query.parent_resource_id, record.parent_resource_id),
    )
    for wanted, actual in equality_filters:
        if wanted and actual != wanted:
            return False

    # Both bounds inclusive; a record without a timestamp sorts as the zero time
    timestamp = record.timestamp or ZERO_TIME
    if query.start_time is not None and timestamp < query.start_time:
        return False
    if query.end_time is not None and timestamp > query.end_time:
        return False

    if query.message and not contains(record.message, query.message):
        return False

    return True
