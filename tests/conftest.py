import random
from datetime import datetime, timezone

import pytest
from builders import make_race, make_result
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from powercards.api.dependencies import get_now, get_resolver
from powercards.db import add_league_member, create_league, sync_cards, upsert_race
from powercards.db.database import get_session
from powercards.main import app
from powercards.models import failure as failure_module
from powercards.models.db import Base
from powercards.models.race import RaceResult
from powercards.services.activation import ActivationResolver
from powercards.services.card_catalog import DEFAULT_CARDS

# Ten days before the round 3 lock
API_NOW = datetime(2026, 4, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clear_finalized_responses():
    """Clear the finalized responses set between tests.

    This prevents test isolation issues where Python reuses memory
    addresses for new objects, causing id() collisions with previously
    finalized responses.
    """
    failure_module._finalized_responses.clear()
    yield
    failure_module._finalized_responses.clear()


@pytest.fixture
def race_result() -> RaceResult:
    """Round 3 of 2026 with every car classified."""
    return make_result()


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def league(session_factory) -> str:
    """Seed the catalog, league-1 (2026) with alice and bob, and round 3."""
    async with session_factory() as session:
        await sync_cards(session, DEFAULT_CARDS)
        await create_league(session, "league-1", 2026, name="Test League")
        await add_league_member(session, "league-1", "alice")
        await add_league_member(session, "league-1", "bob")
        await upsert_race(session, make_race())
        await session.commit()
    return "league-1"


@pytest.fixture
async def client(session_factory):
    """Provide an async test client with overridden database session, clock and dice."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_now] = lambda: API_NOW
    app.dependency_overrides[get_resolver] = lambda: ActivationResolver(random.Random(0))

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
