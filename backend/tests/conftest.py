"""
Natours Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set BEFORE any natours import so the module
       level engine and settings point at a throwaway SQLite file.

Fixture Hierarchy:
    clock:        FakeClock the rate limiter reads instead of time.time
    make_app:     factory building an app with custom settings and limits
    database:     fresh tables per test (engine disposed afterwards)
    client:       production-mode AsyncClient with tables
    dev_client:   development-mode AsyncClient with tables
"""

import os
import tempfile

# Override settings for testing BEFORE any app imports
_TEST_DIR = tempfile.mkdtemp(prefix="natours_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["ENVIRONMENT"] = "production"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("RATE_LIMIT_REDIS_URL", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from natours.config import Settings
from natours.database import Base, engine
from natours.main import create_app
from natours.middleware.rate_limit import FixedWindowRateLimiter, InMemoryRateLimitStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_app(clock):
    """
    Build an app with its own in-memory limiter.

    Usage:
        app = make_app(environment="development", max_requests=3)
    """

    def _make(environment="production", max_requests=100, window_seconds=3600, **overrides):
        app_settings = Settings(environment=environment, **overrides)
        limiter = FixedWindowRateLimiter(
            InMemoryRateLimitStore(),
            max_requests=max_requests,
            window_seconds=window_seconds,
            clock=clock,
        )
        return create_app(app_settings, limiter)

    return _make


@pytest_asyncio.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


def _client_for(app) -> AsyncClient:
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def client(make_app, database):
    async with _client_for(make_app()) as c:
        yield c


@pytest_asyncio.fixture
async def dev_client(make_app, database):
    async with _client_for(make_app(environment="development")) as c:
        yield c


@pytest.fixture
def tour_payload():
    return {
        "name": "The Forest Hiker",
        "duration": 5,
        "maxGroupSize": 25,
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
    }
