"""Tests for SQLLogStorage."""

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import OperationalError

from log_ingestor.core.errors import OperationCancelledError, StorageError
from log_ingestor.models import LogQuery
from log_ingestor.storage import Deadline, SQLLogStorage
from tests.conftest import TIMESTAMP_1, TIMESTAMP_2, create_test_record, sample_records


def test_query_orders_newest_first(sql_storage):
    """Test results are sorted by timestamp descending."""
    for record in sample_records():
        sql_storage.insert(record)

    logs, count = sql_storage.query(LogQuery())

    assert count == 2
    assert [log.timestamp for log in logs] == [TIMESTAMP_2, TIMESTAMP_1]


def test_round_trip_preserves_fields(sql_storage):
    """Test a stored record reads back unchanged, with a UTC timestamp."""
    record = create_test_record(metadata={"parentResourceId": "p-1", "region": "eu"})
    sql_storage.insert(record)

    logs, _ = sql_storage.query(LogQuery())

    assert logs == [record]
    assert logs[0].timestamp.tzinfo is not None


def test_message_filter_is_case_insensitive_pattern(sql_storage):
    """Test the SQL message filter is a case-insensitive regular expression."""
    for record in sample_records():
        sql_storage.insert(record)

    logs, _ = sql_storage.query(LogQuery(message="failed"))
    assert [log.level for log in logs] == ["error"]

    logs, _ = sql_storage.query(LogQuery(message="^user .* successful$"))
    assert [log.level for log in logs] == ["info"]


def test_regex_replaces_message_filter(sql_storage):
    """Test a valid regex pattern takes the place of the message filter."""
    for record in sample_records():
        sql_storage.insert(record)

    logs, _ = sql_storage.query(
        LogQuery(message="Failed", regex_pattern="authentication")
    )

    assert [log.level for log in logs] == ["info"]


def test_invalid_regex_is_ignored(sql_storage):
    """Test an invalid regex pattern falls back to the message filter."""
    for record in sample_records():
        sql_storage.insert(record)

    logs, _ = sql_storage.query(LogQuery(regex_pattern="([unclosed"))
    assert len(logs) == 2

    logs, _ = sql_storage.query(LogQuery(message="DB", regex_pattern="(["))
    assert [log.level for log in logs] == ["error"]


def test_full_text_search_requires_every_term(sql_storage):
    """Test full-text search matches messages containing all terms."""
    for record in sample_records():
        sql_storage.insert(record)

    logs, _ = sql_storage.query(LogQuery(full_text_search="connect db"))
    assert [log.level for log in logs] == ["error"]

    logs, _ = sql_storage.query(LogQuery(full_text_search="connect successful"))
    assert logs == []

    logs, _ = sql_storage.query(LogQuery(full_text_search="   "))
    assert len(logs) == 2


def test_parent_resource_id_filter(sql_storage):
    """Test filtering on metadata.parentResourceId."""
    for record in sample_records():
        sql_storage.insert(record)
    sql_storage.insert(create_test_record(metadata={}))

    logs, _ = sql_storage.query(LogQuery(parent_resource_id="server-6543"))

    assert [log.resource_id for log in logs] == ["server-5678"]


def test_time_range_filter(sql_storage):
    """Test inclusive time bounds in SQL."""
    for record in sample_records():
        sql_storage.insert(record)

    logs, _ = sql_storage.query(LogQuery(start_time=TIMESTAMP_2))
    assert [log.timestamp for log in logs] == [TIMESTAMP_2]

    logs, _ = sql_storage.query(
        LogQuery(end_time=datetime(2023, 9, 15, 8, 30, tzinfo=UTC))
    )
    assert [log.timestamp for log in logs] == [TIMESTAMP_1]


def test_data_survives_reopen(tmp_path):
    """Test records persist across storage instances."""
    url = f"sqlite:///{tmp_path / 'persist.db'}"
    storage = SQLLogStorage(url, env="test")
    storage.insert(create_test_record())
    storage.close()

    reopened = SQLLogStorage(url, env="test")
    try:
        logs, count = reopened.query(LogQuery())
    finally:
        reopened.close()

    assert count == 1
    assert logs[0].message == "Failed to connect to DB"


def test_insert_with_expired_deadline(sql_storage):
    """Test an expired deadline aborts the insert before touching the database."""
    with pytest.raises(OperationCancelledError):
        sql_storage.insert(create_test_record(), deadline=Deadline.after(0))

    _, count = sql_storage.query(LogQuery())
    assert count == 0


def test_database_error_becomes_storage_error(sql_storage, mocker):
    """Test driver errors surface as StorageError."""
    mocker.patch.object(
        sql_storage,
        "_session_maker",
        side_effect=OperationalError("INSERT", {}, Exception("database is locked")),
    )

    with pytest.raises(StorageError) as exc_info:
        sql_storage.insert(create_test_record())

    assert "database is locked" in str(exc_info.value)


def test_query_canceled_becomes_cancellation(sql_storage, mocker):
    """Test a server-side statement timeout surfaces as OperationCancelledError."""
    driver_error = Exception("canceling statement due to statement timeout")
    driver_error.pgcode = "57014"
    mocker.patch.object(
        sql_storage,
        "_session_maker",
        side_effect=OperationalError("SELECT", {}, driver_error),
    )

    with pytest.raises(OperationCancelledError):
        sql_storage.query(LogQuery())


def test_unreachable_database_raises_storage_error(tmp_path):
    """Test construction fails with StorageError when the database cannot be opened."""
    missing_dir = tmp_path / "missing" / "logs.db"

    with pytest.raises(StorageError):
        SQLLogStorage(f"sqlite:///{missing_dir}", env="test")
