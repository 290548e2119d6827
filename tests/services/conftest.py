"""Service test fixtures — both store backends, external-service fakes, FastAPI test client.

Invariants:
    - Every test gets a fresh store (in-memory dict or in-memory SQLite)
    - `store` is parametrized over both backends so contract tests run twice
    - External services are replaced by fakes; no network calls
    - In-memory flow states are cleared after every client test

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for the store
      contract (PostgreSQL-specific features not exercised here)
    - Providers overridden through app.dependency_overrides (lifespan not run)
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from httpx import ASGITransport, AsyncClient

from brain_dump.api import dependencies
from brain_dump.api.routes import sessions as sessions_routes
from brain_dump.db.base import Base
from brain_dump.infrastructure.database import DatabaseSessionManager
from brain_dump.infrastructure.memory_store import InMemoryReflectionStore
from brain_dump.infrastructure.sql_store import SqlReflectionStore
from brain_dump.main import app
from brain_dump.services.narration import NarrationDispatcher
from brain_dump.services.reflection_flow import ReflectionFlow
from tests.services.fakes import FakeAssistant, FakeNarrator, FakeTranscriber


# -- Stores -----------------------------------------------------------------------


@pytest.fixture
async def sql_store():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    store = SqlReflectionStore(DatabaseSessionManager.from_engine(engine))
    yield store
    await engine.dispose()


@pytest.fixture
def memory_store():
    return InMemoryReflectionStore()


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_store, sql_store):
    return memory_store if request.param == "memory" else sql_store


# -- Services ---------------------------------------------------------------------


@pytest.fixture
def assistant():
    return FakeAssistant()


@pytest.fixture
def narrator():
    return FakeNarrator()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def narration(narrator):
    return NarrationDispatcher(narrator)


@pytest.fixture
def flow(store, assistant, narration):
    return ReflectionFlow(store, assistant, narration)


# -- HTTP client -------------------------------------------------------------------


@pytest.fixture
async def client(memory_store, assistant, narrator, transcriber, narration):
    """FastAPI test client with every provider overridden."""
    app.dependency_overrides[dependencies.get_store] = lambda: memory_store
    app.dependency_overrides[dependencies.get_assistant] = lambda: assistant
    app.dependency_overrides[dependencies.get_narrator] = lambda: narrator
    app.dependency_overrides[dependencies.get_transcriber] = lambda: transcriber
    app.dependency_overrides[dependencies.get_narration] = lambda: narration

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    await narration.drain()
    app.dependency_overrides.clear()
    sessions_routes.clear_flow_states()
