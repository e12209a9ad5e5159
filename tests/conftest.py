"""
Top-level pytest configuration.

Provides:
  - A fresh in-memory SQLite database (aiosqlite) per test with all tables created.
  - A session factory / ApplicationStore bound to that database.
  - A per-test UpdateBroadcaster so subscriptions never leak between tests.
  - An async_client fixture wired to the FastAPI app with the store and
    broadcaster dependencies overridden.
  - Actor and bearer-token fixtures for each role.
"""

from __future__ import annotations

import os
import uuid
from typing import AsyncGenerator

# ---------------------------------------------------------------------------
# Environment must be set BEFORE any recruitflow module is imported so that
# pydantic-settings picks up the test values.
# ---------------------------------------------------------------------------
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_DB", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-32c")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("BROADCAST_BACKEND", "memory")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from recruitflow.core.broadcaster import UpdateBroadcaster
from recruitflow.core.database import Base, create_engine_for, create_session_factory
from recruitflow.core.security import create_actor_token
from recruitflow.models.actor import Actor, ActorRole
from recruitflow.repositories.application_store import ApplicationStore

# Force all model modules to load so their tables register on Base.metadata
import recruitflow.models  # noqa: F401

TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)


# ---------------------------------------------------------------------------
# Per-test engine. The store opens and commits its own sessions, so isolation
# comes from a brand-new in-memory database rather than an outer rollback.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine():
    test_engine = create_engine_for(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        pool_pre_ping=False,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory) -> ApplicationStore:
    return ApplicationStore(session_factory)


@pytest.fixture
def event_broadcaster() -> UpdateBroadcaster:
    return UpdateBroadcaster(queue_size=10, send_timeout=0.5)


# ---------------------------------------------------------------------------
# Actors and tokens
# ---------------------------------------------------------------------------
@pytest.fixture
def applicant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def applicant_actor(applicant_id) -> Actor:
    return Actor(identity=str(applicant_id), role=ActorRole.APPLICANT, display_name="Casey Candidate")


@pytest.fixture
def hr_actor() -> Actor:
    return Actor(identity="hr-1", role=ActorRole.HR, display_name="Harper Recruiter")


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(identity="admin-1", role=ActorRole.ADMIN, display_name="Alex Admin")


def auth_headers_for(actor: Actor) -> dict:
    return {"Authorization": f"Bearer {create_actor_token(actor)}"}


@pytest.fixture
def hr_headers(hr_actor) -> dict:
    return auth_headers_for(hr_actor)


@pytest.fixture
def admin_headers(admin_actor) -> dict:
    return auth_headers_for(admin_actor)


@pytest.fixture
def applicant_headers(applicant_actor) -> dict:
    return auth_headers_for(applicant_actor)


# ---------------------------------------------------------------------------
# Seeded application
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def application(store: ApplicationStore, applicant_id):
    """Persisted application in the initial status, owned by applicant_actor."""
    return await store.create(job_id=uuid.uuid4(), applicant_id=applicant_id)


# ---------------------------------------------------------------------------
# Override FastAPI dependencies to use the test store and broadcaster.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def async_client(
    store: ApplicationStore,
    event_broadcaster: UpdateBroadcaster,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an httpx AsyncClient backed by the FastAPI app.

    Transitions committed through the client are published to the per-test
    event_broadcaster, so tests can subscribe to it directly.
    """
    from recruitflow.api.deps import get_broadcaster, get_event_publisher, get_store
    from recruitflow.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_broadcaster] = lambda: event_broadcaster
    app.dependency_overrides[get_event_publisher] = lambda: event_broadcaster

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_auth_headers():
    """Build bearer headers for an arbitrary actor."""
    return auth_headers_for
