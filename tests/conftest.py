"""Pytest configuration and fixtures for the Open Letter API test suite.

Provides:
- Test database with table truncation cleanup per test
- Mock authentication (JWT bypass)
- Disabled rate limiting
- Mocked confirmation email task
- Model factory fixtures for Letter and Signature
"""

import uuid
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import datetime
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from openletter.core.auth import get_current_user, get_optional_user
from openletter.core.config import settings
from openletter.core.database import get_async_session
from openletter.core.deps import get_db
from openletter.core.rate_limit import limiter
from openletter.core.security import hash_password
from openletter.main import app
from openletter.models.base import Base
from openletter.models.letter import Letter
from openletter.models.signature import Signature
from openletter.services.letter_service import LetterService
from openletter.services.signature_service import SignatureService

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TEST_USER_ID = "test-user-id"
TEST_USER_EMAIL = "author@example.com"
OTHER_USER_ID = "other-user-id"
TEST_SECRET = "test-secret-key"
TEST_PASSWORD = "correct horse battery"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False

# ---------------------------------------------------------------------------
# Session-scoped engine & table setup
# ---------------------------------------------------------------------------

_test_engine: Any = None
_test_session_factory: Any = None
_base_url = str(settings.database_url)
_TEST_DATABASE_URL = (
    _base_url
    if _base_url.endswith("/openletter_test")
    else _base_url.replace("/openletter", "/openletter_test")
)

# Tables to truncate after each test (reverse dependency order)
_TABLES_TO_TRUNCATE = [
    "signatures",
    "letters",
]


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def _create_tables() -> AsyncGenerator[None, None]:
    """Create all tables once per test session in the openletter_test database.

    Uses NullPool to avoid asyncpg connection-loop affinity issues with
    starlette's BaseHTTPMiddleware (which spawns sub-tasks).
    """
    global _test_engine, _test_session_factory  # noqa: PLW0603
    _test_engine = create_async_engine(
        _TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=NullPool,
    )
    _test_session_factory = async_sessionmaker(
        _test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with _test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await _test_engine.dispose()


# ---------------------------------------------------------------------------
# Per-test database session + cleanup
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(loop_scope="session")
async def db_session(_create_tables: None) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for test setup and service tests.

    Cleanup is handled by the ``_cleanup_tables`` autouse fixture.
    """
    async with _test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(autouse=True, loop_scope="session")
async def _cleanup_tables() -> AsyncGenerator[None, None]:
    """Truncate all tables after each test to restore a clean state."""
    yield
    if _test_engine is not None:
        async with _test_engine.begin() as conn:
            await conn.execute(text(f"TRUNCATE {', '.join(_TABLES_TO_TRUNCATE)} CASCADE"))


# ---------------------------------------------------------------------------
# Services bound to the test session
# ---------------------------------------------------------------------------


@pytest.fixture
def letter_service(db_session: AsyncSession) -> LetterService:
    return LetterService(db_session, TEST_SECRET, password_iterations=1_000)


@pytest.fixture
def signature_service(db_session: AsyncSession) -> SignatureService:
    return SignatureService(db_session, TEST_SECRET)


# ---------------------------------------------------------------------------
# Auth mock
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_user() -> dict[str, Any]:
    """Return the default authenticated test user payload (mimics decoded JWT)."""
    return {
        "sub": TEST_USER_ID,
        "email": TEST_USER_EMAIL,
    }


# ---------------------------------------------------------------------------
# Confirmation email task
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_confirmation_task() -> Generator[MagicMock, None, None]:
    """Patch the Celery task so signing never talks to a broker."""
    with patch("openletter.workers.tasks.signatures.send_confirmation_email") as mock_task:
        mock_task.delay = MagicMock()
        yield mock_task


# ---------------------------------------------------------------------------
# Authenticated client (overrides DB and Auth)
# ---------------------------------------------------------------------------


def _override_session_factory() -> Callable[[], AsyncGenerator[AsyncSession, None]]:
    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with _test_session_factory() as s:
            yield s

    return _override_session


@pytest_asyncio.fixture(loop_scope="session")
async def client(
    db_session: AsyncSession,  # noqa: ARG001  # Ensures _create_tables runs
    auth_user: dict[str, Any],
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client authenticated as TEST_USER_ID."""

    async def _override_user() -> dict[str, Any]:
        return auth_user

    async def _override_optional_user() -> dict[str, Any] | None:
        return auth_user

    override_session = _override_session_factory()
    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_db] = override_session
    app.dependency_overrides[get_current_user] = _override_user
    app.dependency_overrides[get_optional_user] = _override_optional_user

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Anonymous client (overrides DB only - no auth bypass)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(loop_scope="session")
async def unauthed_client(
    db_session: AsyncSession,  # noqa: ARG001  # Ensures _create_tables runs
) -> AsyncGenerator[AsyncClient, None]:
    """Anonymous async test client, like a visitor signing a letter."""
    override_session = _override_session_factory()
    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_db] = override_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Lightweight client (no DB, no auth - for stateless endpoint tests)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(loop_scope="session")
async def plain_client() -> AsyncGenerator[AsyncClient, None]:
    """Minimal async test client with NO dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def letter_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Letter rows with a valid token.

    The token is derived from ``settings.secret_key`` so letters created
    here validate through the API as well.
    """

    async def _create(
        *,
        slug: str | None = None,
        locale: str = "en",
        title: str = "Test Letter",
        text: str | None = "<p>We, the undersigned, ask for change.</p>",
        image: str | None = None,
        type: str = "letter",
        user_id: str | None = TEST_USER_ID,
        password: str | None = None,
        parent_letter_id: uuid.UUID | None = None,
        featured_at: datetime | None = None,
        created_at: datetime | None = None,
    ) -> Letter:
        letter = Letter(
            slug=slug or f"test-letter-{uuid.uuid4().hex[:8]}",
            locale=locale,
            title=title,
            text=text,
            image=image,
            type=type,
            user_id=user_id,
            password=hash_password(password, iterations=1_000) if password else None,
            parent_letter_id=parent_letter_id,
            featured_at=featured_at,
        )
        if created_at is not None:
            letter.created_at = created_at
        letter.refresh_token(settings.secret_key)
        db_session.add(letter)
        await db_session.commit()
        await db_session.refresh(letter)
        return letter

    return _create


@pytest.fixture
def signature_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Signature rows."""

    async def _create(
        *,
        letter_id: uuid.UUID,
        name: str = "Jane Signer",
        email: str | None = None,
        occupation: str | None = "Teacher",
        city: str | None = "Brussels",
        organization: str | None = None,
        share_email: bool = False,
        is_verified: bool = True,
        created_at: datetime | None = None,
    ) -> Signature:
        signature = Signature(
            letter_id=letter_id,
            name=name,
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            occupation=occupation,
            city=city,
            organization=organization,
            share_email=share_email,
            is_verified=is_verified,
        )
        if created_at is not None:
            signature.created_at = created_at
        db_session.add(signature)
        await db_session.commit()
        await db_session.refresh(signature)
        return signature

    return _create


# ---------------------------------------------------------------------------
# Convenience fixtures (pre-built models)
# ---------------------------------------------------------------------------


@pytest.fixture
async def letter(letter_factory: Callable[..., Any]) -> Letter:
    """An English letter owned by the test user."""
    return await letter_factory(slug="stop-x-1a2b3c4d", title="Stop X")


@pytest.fixture
async def bilingual_letter(letter_factory: Callable[..., Any]) -> dict[str, Letter]:
    """The same letter in English and French, keyed by locale."""
    en = await letter_factory(slug="save-y-5e6f7a8b", locale="en", title="Save Y")
    fr = await letter_factory(
        slug="save-y-5e6f7a8b",
        locale="fr",
        title="Sauvez Y",
        text="<p>Nous, soussignés, demandons du changement.</p>",
    )
    return {"en": en, "fr": fr}
