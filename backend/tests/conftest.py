"""
Pytest configuration and fixtures.
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from civicconnect.services.role_resolver import Actor
from civicconnect.storage import MemoryStorage
from tests.factories import make_org_actor, make_user_actor


@pytest.fixture
def storage() -> MemoryStorage:
    """Fresh in-memory store seeded with the organization directory."""
    return MemoryStorage()


@pytest.fixture
def citizen() -> Actor:
    return make_user_actor()


@pytest.fixture
def pwd_org() -> Actor:
    return make_org_actor("pwd")


@pytest_asyncio.fixture
async def sql_session() -> AsyncGenerator[AsyncSession, None]:
    """AsyncSession over a private in-memory SQLite database."""
    from civicconnect.core.database import Base
    import civicconnect.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def api_client(storage) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX AsyncClient against the FastAPI app backed by ``MemoryStorage``."""
    from civicconnect.main import app
    from civicconnect.api.deps import get_role_cache, get_storage
    from civicconnect.core.rate_limiter import limiter

    async def override_storage():
        return storage

    async def override_role_cache():
        return None

    limiter.reset()
    app.dependency_overrides[get_storage] = override_storage
    app.dependency_overrides[get_role_cache] = override_role_cache

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_storage, None)
        app.dependency_overrides.pop(get_role_cache, None)

