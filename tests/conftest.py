"""Pytest configuration and fixtures."""

import os

# Set test environment before settings are loaded
os.environ["APP_ENV"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"

from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from log_ingestor.main import create_app  # noqa: E402
from log_ingestor.models import LogRecord  # noqa: E402
from log_ingestor.storage import InMemoryLogStorage, SQLLogStorage  # noqa: E402

TIMESTAMP_1 = datetime(2023, 9, 15, 8, 0, 0, tzinfo=UTC)
TIMESTAMP_2 = datetime(2023, 9, 15, 9, 0, 0, tzinfo=UTC)


def create_test_record(**overrides) -> LogRecord:
    """Helper function to create a test record with default values."""
    fields = {
        "level": "error",
        "message": "Failed to connect to DB",
        "resource_id": "server-1234",
        "timestamp": TIMESTAMP_1,
        "trace_id": "abc-xyz-123",
        "span_id": "span-456",
        "commit": "5e5342f",
        "metadata": {"parentResourceId": "server-0987"},
    }
    fields.update(overrides)
    return LogRecord(**fields)


def sample_records() -> list[LogRecord]:
    """The error and info records used throughout the storage tests."""
    return [
        create_test_record(),
        create_test_record(
            level="info",
            message="User authentication successful",
            resource_id="server-5678",
            timestamp=TIMESTAMP_2,
            trace_id="def-uvw-789",
            span_id="span-789",
            commit="a1b2c3d",
            metadata={"parentResourceId": "server-6543"},
        ),
    ]


@pytest.fixture(scope="function")
def memory_storage():
    """Fresh in-memory storage."""
    storage = InMemoryLogStorage()
    yield storage
    storage.close()


@pytest.fixture(scope="function")
def sql_storage(tmp_path):
    """SQL storage on a throwaway SQLite database."""
    storage = SQLLogStorage(f"sqlite:///{tmp_path / 'logs.db'}", env="test")
    yield storage
    storage.close()


@pytest.fixture(scope="function", params=["memory", "sql"])
def storage(request):
    """Each storage backend in turn."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture(scope="function")
def test_client(memory_storage):
    """Create a test client backed by in-memory storage."""
    with TestClient(create_app(storage=memory_storage)) as client:
        yield client


@pytest.fixture(scope="function")
def auth_headers():
    """Provide authentication headers for API requests."""
    from log_ingestor.core.config import settings

    return {"X-API-Key": settings.api_secret_key}
