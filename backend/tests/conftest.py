"""Pytest configuration and fixtures"""
import os
from unittest.mock import AsyncMock

import pytest

# Set test environment variables before the app settings are loaded
os.environ.setdefault("POSTGRES_SERVER", "localhost")
os.environ.setdefault("POSTGRES_DB", "comercia_test")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("OPENAI_API_KEY", "")

from fastapi.testclient import TestClient  # noqa: E402

from app.api import deps  # noqa: E402
from app.core.config import settings as app_settings  # noqa: E402
from app.services.cart_service import CartService  # noqa: E402
from app.services.product_cache import CatalogCacheManager  # noqa: E402
from app.services.product_service import ProductService  # noqa: E402

from fakes import FakeRedis  # noqa: E402
from factories import make_product  # noqa: E402


@pytest.fixture
def fake_redis():
    """In-memory Redis"""
    return FakeRedis()


@pytest.fixture
def settings():
    return app_settings


@pytest.fixture
def cache(fake_redis):
    return CatalogCacheManager(fake_redis, ttl_seconds=86400, recent_limit=100)


@pytest.fixture
def product_service(cache):
    return ProductService(cache)


@pytest.fixture
def cart_service(fake_redis, settings):
    return CartService(fake_redis, settings)


@pytest.fixture
def mock_db():
    """Mock async SQLAlchemy session"""
    db = AsyncMock()
    db.add = lambda *args, **kwargs: None
    return db


@pytest.fixture
def sample_product():
    return make_product()


@pytest.fixture
def client(fake_redis, mock_db):
    """Test client with PostgreSQL and Redis replaced"""
    from app.main import app

    async def override_get_db():
        yield mock_db

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_redis] = lambda: fake_redis
    yield TestClient(app)
    app.dependency_overrides.clear()
