import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from searchable.database import Base, get_db, register_sqlite_functions
from searchable.main import app
from searchable.models.user import User
from searchable.models.post import Post
from searchable.core import query_builder

from scenario_tables import scenario_metadata


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Create a fresh in-memory database engine per test."""
    engine = register_sqlite_functions(create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    ))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.run_sync(scenario_metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture(autouse=True)
def clear_builder_caches():
    """Keep cached builders from leaking between tests."""
    query_builder._builders.clear()
    query_builder._model_builders.clear()
    yield
    query_builder._builders.clear()
    query_builder._model_builders.clear()


@pytest_asyncio.fixture
async def seeded_users(db_session: AsyncSession):
    """Users with posts covering the different match tiers."""
    users = [
        User(id="u-john", email="jsmith@example.com", first_name="John", last_name="Smith",
             bio="Backend developer"),
        User(id="u-johnny", email="jb@example.com", first_name="Johnny", last_name="Bravo",
             bio="Likes gyms"),
        User(id="u-doe", email="doe@example.com", first_name="John Doe", last_name="Unknown",
             bio=None),
        User(id="u-ann", email="ann@example.com", first_name="Ann", last_name="Lee",
             bio="Writes about databases"),
    ]
    posts = [
        Post(id="p-1", user_id="u-ann", title="Johnson and the query planner"),
        Post(id="p-2", user_id="u-ann", title="Johnstown flood notes"),
        Post(id="p-3", user_id="u-john", title="Indexes"),
    ]
    db_session.add_all(users)
    await db_session.flush()
    db_session.add_all(posts)
    await db_session.commit()
    return users


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an HTTP client bound to the test database."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
