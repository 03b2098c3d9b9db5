"""Pytest configuration and fixtures."""

import pytest
from httpx import AsyncClient, ASGITransport

from config import Config
from shortener.analytics import AnalyticsAggregator
from shortener.database.memory import InMemoryLinkStore
from shortener.rate_limiter import RateLimiter
from shortener.service import LinkService
from shortener.shortcode import ShortCodeGenerator
from shortener.common.logging_config import setup_logging
from web_app import create_app


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
async def test_db(logger):
    """Create test database instance."""
    db = InMemoryLinkStore(logger=logger)
    
    yield db
    
    await db.close()


@pytest.fixture
def short_code_generator():
    """Create short code generator."""
    return ShortCodeGenerator()


@pytest.fixture
async def service(test_db, short_code_generator, logger):
    """Create service instance."""
    service = LinkService(
        db=test_db,
        cache=None,  # No cache for tests
        short_code_generator=short_code_generator,
        logger=logger,
    )
    
    yield service
    
    await service.drain()


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]


def make_config(**overrides) -> Config:
    """Test configuration: generous rate limits, no auth, in-memory store."""
    settings = {
        "database_url": "memory://",
        "base_url": "http://testserver",
        "rate_limit": 1000,
        "rate_limit_burst": 1000,
        "auth_token": None,
    }
    settings.update(overrides)
    return Config(**settings)


@pytest.fixture
def make_app(service, logger):
    """Factory building an app around the shared service."""
    def _make(**overrides):
        config = make_config(**overrides)
        return create_app(
            service_instance=service,
            config=config,
            rate_limiter=RateLimiter(config.rate_limit, config.rate_limit_burst),
            analytics=AnalyticsAggregator(service, logger=logger),
            logger=logger,
        )
    return _make


@pytest.fixture
def app(make_app):
    """Create test FastAPI app."""
    return make_app()


@pytest.fixture
async def client(app):
    """Create test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
