"""
Pytest configuration and shared fixtures.
"""

import pytest

from elb_log_forwarder.config import clear_settings_cache
from tests.samples import FakeBackend, FakeFetcher


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Empty in-memory CloudWatch Logs stand-in."""
    return FakeBackend()


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """Empty in-memory S3 stand-in."""
    return FakeFetcher()


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Ensure cached settings never leak between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every forwarder environment variable."""
    for key in (
        "LOG_GROUP",
        "MESSAGE_FORMAT",
        "LOG_STREAM_NAME_SOURCE",
        "LOG_STREAM_NAME",
        "PARSE_ERROR_POLICY",
        "MAX_BATCH_BYTES",
        "MAX_BATCH_COUNT",
        "LOG_EVENT_OVERHEAD",
        "BACKEND_MAX_RETRIES",
        "LOG_LEVEL",
        "FORWARDER_CONFIG",
    ):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
