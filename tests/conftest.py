"""
Test Configuration for the LinkedIn Job Pipeline

Shared fixtures: in-memory cache/gateway/page doubles and HTML fixtures.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from jobpipeline.core.config import get_settings
from jobpipeline.services.data_service import DataService
from jobpipeline.utils.logger import configure_logging
from tests.fakes import FakeCache, FakeGateway, FakePages

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True, scope="session")
def structured_logging():
    """Route structlog through stdlib logging on stderr before any logger is first used."""
    configure_logging(level="WARNING")


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are lru_cached; tests that touch the environment need a fresh copy."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def load_fixture():
    """Read an HTML fixture by file name."""
    def _load(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")
    return _load


@pytest.fixture
def captured_at():
    return datetime(2025, 1, 20, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def fake_pages():
    return FakePages()


@pytest.fixture
def data_service(fake_cache, fake_gateway):
    return DataService(fake_cache, fake_gateway)
