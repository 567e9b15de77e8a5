"""
Shared test configuration and fixtures for WebFinger tests.

Provides JRD documents, mocked aiohttp sessions, per-test configurations and
Redis clients used across the test files.
"""

import json

import pytest
import pytest_asyncio

from social.graze.webfinger.config import WebFingerConfig, set_default_config
from tests.helpers import JRD_DOCUMENT, make_session

# Try to import Redis testing dependencies
try:
    import fakeredis.aioredis

    FAKEREDIS_AVAILABLE = True
except ImportError:
    fakeredis = None
    FAKEREDIS_AVAILABLE = False


@pytest.fixture
def jrd_document():
    return JRD_DOCUMENT


@pytest.fixture
def jrd_body():
    return json.dumps(JRD_DOCUMENT).encode("utf-8")


@pytest.fixture
def mock_session():
    return make_session()


@pytest.fixture
def config(mock_session):
    """Configuration wired to the mock session with a fresh in-process cache."""
    return WebFingerConfig(session=mock_session)


@pytest.fixture(autouse=True)
def reset_default_config():
    """Keep the shared default configuration from leaking between tests."""
    set_default_config(None)
    yield
    set_default_config(None)


@pytest_asyncio.fixture
async def fake_redis_client():
    """Provide fake Redis client for unit tests."""
    if not FAKEREDIS_AVAILABLE or fakeredis is None:
        pytest.skip("fakeredis not available")

    assert fakeredis is not None, "fakeredis should be available after check"
    client = fakeredis.aioredis.FakeRedis(decode_responses=False)
    yield client
    await client.flushall()
    await client.aclose()
