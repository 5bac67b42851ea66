# tests/conftest.py
import os

import pytest
import yaml

from lambdas.stream_processor.models import ChangeRecord, get_settings
from lambdas.stream_processor.structured_log import StructuredLogger

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))


@pytest.fixture(scope="session")
def stream_records() -> dict:
    """Raw stream records from sample_stream_records.yml, keyed by scenario name."""
    records_path = os.path.join(TESTS_DIR, 'sample_stream_records.yml')
    if not os.path.exists(records_path):
        pytest.fail(f"Sample stream records not found at: {records_path}")

    with open(records_path, 'r') as f:
        return yaml.safe_load(f)


@pytest.fixture
def change_record(stream_records):
    """Builds a ChangeRecord from a named sample."""
    def _build(name: str) -> ChangeRecord:
        return ChangeRecord.from_stream_record(stream_records[name])
    return _build


@pytest.fixture
def log() -> StructuredLogger:
    return StructuredLogger("stream-processor-test", correlation_id="test-correlation-id")


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def default_log_level(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
