"""Tests for InMemoryLogStorage."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from log_ingestor.core.errors import OperationCancelledError
from log_ingestor.models import LogQuery
from log_ingestor.storage import Deadline
from log_ingestor.storage.memory import ReadWriteLock
from tests.conftest import create_test_record, sample_records


def test_query_returns_insertion_order(memory_storage):
    """Test matches come back in the order they were inserted."""
    for i in range(5):
        memory_storage.insert(create_test_record(trace_id=f"trace-{i}"))

    logs, count = memory_storage.query(LogQuery())

    assert count == 5
    assert [log.trace_id for log in logs] == [f"trace-{i}" for i in range(5)]


def test_message_filter_is_case_sensitive(memory_storage):
    """Test the in-memory message filter is a literal, case-sensitive substring."""
    for record in sample_records():
        memory_storage.insert(record)

    logs, _ = memory_storage.query(LogQuery(message="Failed"))
    assert len(logs) == 1

    logs, _ = memory_storage.query(LogQuery(message="failed"))
    assert logs == []

    logs, _ = memory_storage.query(LogQuery(message="F.iled"))
    assert logs == []


def test_stored_records_are_isolated_from_callers(memory_storage):
    """Test mutating a caller's metadata after insert does not change stored data."""
    metadata = {"parentResourceId": "server-0987"}
    memory_storage.insert(create_test_record(metadata=metadata))
    metadata["parentResourceId"] = "changed"

    logs, _ = memory_storage.query(LogQuery())
    logs[0].metadata["parentResourceId"] = "changed again"

    logs, _ = memory_storage.query(LogQuery(parent_resource_id="server-0987"))
    assert len(logs) == 1


def test_concurrent_inserts(memory_storage):
    """Test concurrent inserts neither lose nor duplicate records."""
    total = 200

    def insert(i):
        memory_storage.insert(create_test_record(trace_id=f"trace-{i}"))

    with ThreadPoolExecutor(max_workers=16) as executor:
        list(executor.map(insert, range(total)))

    logs, count = memory_storage.query(LogQuery(limit=total * 2))

    assert count == total
    assert len(memory_storage) == total
    assert {log.trace_id for log in logs} == {f"trace-{i}" for i in range(total)}


def test_concurrent_inserts_and_queries(memory_storage):
    """Test queries running alongside inserts always see whole records."""
    errors = []

    def writer():
        for i in range(100):
            memory_storage.insert(create_test_record(trace_id=f"trace-{i}"))

    def reader():
        for _ in range(100):
            logs, count = memory_storage.query(LogQuery(limit=1000))
            if count != len(logs) or any(log.timestamp is None for log in logs):
                errors.append(count)

    threads = [threading.Thread(target=writer)] + [
        threading.Thread(target=reader) for _ in range(4)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(memory_storage) == 100


def test_insert_with_expired_deadline(memory_storage):
    """Test an already-expired deadline aborts the insert."""
    with pytest.raises(OperationCancelledError):
        memory_storage.insert(create_test_record(), deadline=Deadline.after(0))

    assert len(memory_storage) == 0


def test_query_with_cancelled_deadline(memory_storage):
    """Test a cancelled deadline aborts the query."""
    deadline = Deadline()
    deadline.cancel()

    with pytest.raises(OperationCancelledError):
        memory_storage.query(LogQuery(), deadline=deadline)


def test_insert_times_out_waiting_for_lock(memory_storage):
    """Test an insert blocked behind a reader gives up at its deadline."""
    lock = memory_storage._lock
    assert lock.acquire_read()
    try:
        started = time.monotonic()
        with pytest.raises(OperationCancelledError):
            memory_storage.insert(create_test_record(), deadline=Deadline.after(0.1))
        assert time.monotonic() - started < 2
    finally:
        lock.release_read()

    assert len(memory_storage) == 0


def test_read_write_lock_shared_readers():
    """Test multiple readers can hold the lock together."""
    lock = ReadWriteLock()

    assert lock.acquire_read(timeout=0.1)
    assert lock.acquire_read(timeout=0.1)
    assert not lock.acquire_write(timeout=0.05)

    lock.release_read()
    lock.release_read()
    assert lock.acquire_write(timeout=0.1)
    lock.release_write()


def test_read_write_lock_exclusive_writer():
    """Test a writer excludes readers and other writers."""
    lock = ReadWriteLock()

    assert lock.acquire_write(timeout=0.1)
    assert not lock.acquire_read(timeout=0.05)
    assert not lock.acquire_write(timeout=0.05)

    lock.release_write()
    assert lock.acquire_read(timeout=0.1)
    lock.release_read()


def test_close_is_noop(memory_storage):
    """Test closing in-memory storage keeps its records."""
    memory_storage.insert(create_test_record())

    memory_storage.close()

    assert len(memory_storage) == 1
