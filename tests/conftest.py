"""
pytest configuration for trade ingestion tests.

Adds src directory to Python path for imports and provides shared fixtures.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from config.config import IngestConfig  # noqa: E402
from core.logging.context import clear_log_context  # noqa: E402


@pytest.fixture
def ingest_config(tmp_path):
    """Test configuration pointing at a CSV under tmp_path."""
    return IngestConfig(
        brokers=["localhost:19092"],
        client_id="trade-ingestor",
        topic="trade-data",
        partitions=1,
        replication_factor=1,
        leader_wait_timeout_ms=200,
        leader_poll_interval_ms=10,
        source_path=str(tmp_path / "trades_data.csv"),
    )


@pytest.fixture
def write_csv(tmp_path):
    """Write CSV text to tmp_path and return its path."""

    def _write(content: str, name: str = "trades_data.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def mock_aiokafka_producer():
    """Create mock AIOKafkaProducer."""
    producer = MagicMock()
    producer.start = AsyncMock()
    producer.stop = AsyncMock()
    producer.flush = AsyncMock()
    producer.send_and_wait = AsyncMock()
    return producer


@pytest.fixture
def mock_admin_client():
    """Create mock AIOKafkaAdminClient with a topic that is immediately ready."""
    admin = MagicMock()
    admin.start = AsyncMock()
    admin.close = AsyncMock()
    admin.create_topics = AsyncMock(return_value=MagicMock(topic_errors=[("trade-data", 0, None)]))
    admin.describe_topics = AsyncMock(
        return_value=[
            {
                "error_code": 0,
                "topic": "trade-data",
                "partitions": [{"error_code": 0, "partition": 0, "leader": 1}],
            }
        ]
    )
    return admin


@pytest.fixture(autouse=True)
def _clear_log_context():
    clear_log_context()
    yield
    clear_log_context()
