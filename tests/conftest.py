"""
ChallengeHub Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── engine:          in-memory aiosqlite engine with all tables created
    ├── session_factory: sessions bound to that engine
    ├── db_session:      one session for service-level tests
    ├── world:           seeded profiles + one active challenge
    ├── world_builder:   the seeding coroutine, for tests that bring their own engine
    ├── service:         a fresh SolutionService
    ├── mock_db_session: mock async session (race-diagnosis tests)
    ├── auth_headers:    Bearer headers for a profile (route tests)
    └── test_client:     HTTPX AsyncClient wired to the app and the test engine
"""

import os

# Override settings for testing BEFORE any challengehub imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from challengehub.config import settings
from challengehub.database import Base
from challengehub.models.challenge import Challenge, ChallengeStatus
from challengehub.models.profile import Profile, UserRole
from challengehub.models.solution import Solution  # noqa: F401  (registers the table)
from challengehub.schemas.solution import SolutionContent
from challengehub.services.solution_service import SolutionService


@dataclass
class World:
    """Seeded identities: two of each role and one active challenge owned by `company`."""

    student: Profile
    other_student: Profile
    architect: Profile
    other_architect: Profile
    company: Profile
    other_company: Profile
    challenge: Challenge


async def create_world(session: AsyncSession) -> World:
    def profile(role: UserRole, name: str) -> Profile:
        return Profile(id=uuid4(), user_id=uuid4(), role=role, display_name=name)

    student = profile(UserRole.STUDENT, "Ada")
    other_student = profile(UserRole.STUDENT, "Grace")
    architect = profile(UserRole.ARCHITECT, "Barbara")
    other_architect = profile(UserRole.ARCHITECT, "Donald")
    company = profile(UserRole.COMPANY, "Initech")
    other_company = profile(UserRole.COMPANY, "Globex")
    session.add_all([student, other_student, architect, other_architect, company, other_company])
    await session.flush()

    challenge = Challenge(
        id=uuid4(),
        company_id=company.id,
        title="Build a rate limiter",
        description="Token bucket, please.",
        status=ChallengeStatus.ACTIVE,
        deadline=datetime.now(timezone.utc) + timedelta(days=7),
        max_winners=1,
    )
    session.add(challenge)
    await session.commit()

    return World(
        student=student,
        other_student=other_student,
        architect=architect,
        other_architect=other_architect,
        company=company,
        other_company=other_company,
        challenge=challenge,
    )


def make_content(**overrides) -> SolutionContent:
    """A valid submission body; override any field."""
    fields = {
        "title": "X",
        "description": "My approach",
        "submission_url": "http://a",
        "tags": ["python"],
    }
    fields.update(overrides)
    return SolutionContent(**fields)


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """
    A fresh in-memory database per test.

    StaticPool keeps every session on the one connection that holds the
    in-memory database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def world(db_session) -> World:
    return await create_world(db_session)


@pytest.fixture
def world_builder() -> Callable:
    return create_world


@pytest.fixture
def service() -> SolutionService:
    return SolutionService()


@pytest.fixture
def content_factory() -> Callable[..., SolutionContent]:
    return make_content


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute = AsyncMock(side_effect=[update_result, load_result])
        await service.claim_for_review(mock_db_session, solution_id, architect_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

def make_token(user_id, role: str, secret: Optional[str] = None, **claims) -> str:
    payload = {"sub": str(user_id), "role": role, **claims}
    return jwt.encode(payload, secret or settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
def auth_headers() -> Callable[[Profile], Dict[str, str]]:
    """Bearer headers for a seeded profile: auth_headers(world.student)."""

    def build(profile: Profile) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(profile.user_id, profile.role.value)}"}

    return build


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    The request session dependency is overridden to use the test engine,
    keeping the production commit/rollback contract.
    """
    from challengehub.database import get_db_session
    from challengehub.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
