"""Synthetic log record generation for load and demo traffic."""

import random
import string
from datetime import timedelta

from log_ingestor.models import LogRecord
from log_ingestor.models.log import PARENT_RESOURCE_ID_KEY
from log_ingestor.services.ingestion import Clock, utc_now

LEVELS = ["error", "warning", "info", "debug"]

MESSAGES = [
    "Failed to connect to DB",
    "API request timed out",
    "User authentication successful",
    "Cache miss for key",
    "Background job completed",
    "Service started successfully",
    "Memory usage high",
    "CPU usage exceeded threshold",
    "File not found",
    "Network connection lost",
]

RESOURCE_IDS = [
    "server-1234",
    "server-5678",
    "api-gateway-1",
    "worker-process-3",
    "cache-node-2",
]

COMMITS = ["5e5342f", "a1b2c3d", "f4e5d6c", "1a2b3c4", "9z8y7x6"]

PARENT_RESOURCE_IDS = [
    "server-0987",
    "server-6543",
    "api-cluster-1",
    "worker-pool-2",
    "cache-cluster-3",
]

ID_CHARSET = string.ascii_lowercase + string.digits

# Generated timestamps fall within this window before now
TIMESTAMP_WINDOW = timedelta(hours=24)


class LogGenerator:
    """Produces random, realistic-looking log records."""

    def __init__(self, seed: int | None = None, clock: Clock = utc_now):
        self._random = random.Random(seed)
        self._clock = clock

    def _random_id(self, length: int) -> str:
        return "".join(self._random.choice(ID_CHARSET) for _ in range(length))

    def generate(self) -> LogRecord:
        now = self._clock()
        offset = self._random.uniform(0, TIMESTAMP_WINDOW.total_seconds())

        return LogRecord(
            level=self._random.choice(LEVELS),
            message=self._random.choice(MESSAGES),
            resource_id=self._random.choice(RESOURCE_IDS),
            timestamp=now - timedelta(seconds=offset),
            trace_id=f"trace-{self._random_id(6)}",
            span_id=f"span-{self._random_id(3)}",
            commit=self._random.choice(COMMITS),
            metadata={
                PARENT_RESOURCE_ID_KEY: self._random.choice(PARENT_RESOURCE_IDS)
            },
        )

    def generate_batch(self, count: int) -> list[LogRecord]:
        return [self.generate() for _ in range(count)]
