import socket
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from modelhub.core.config import settings
from modelhub.ledger import MockCoinLedger
from modelhub.models.base import Base
from modelhub.services.coin_gateway import ActorContext

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Test identities (consistent across tests for predictable auth)
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TEST_ACTOR_ID = uuid.UUID("00000000-0000-0000-0000-00000000a001")

# Security: test-only secrets. Production uses real secrets from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow
TEST_DEEP_LINK_SECRET = "0123456789abcdef" * 4  # nosec B105  # gitleaks:allow


def create_test_jwt(
    user_id: uuid.UUID = TEST_USER_ID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: User UUID to encode in the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with a fresh schema.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.exec_driver_sql("CREATE EXTENSION IF NOT EXISTS pgcrypto")
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# Ledger / API Test Fixtures
# =============================================================================


@pytest.fixture
def mock_ledger() -> MockCoinLedger:
    """Fresh in-memory ledger with the test actor provisioned (fan, 0 coins)."""
    ledger = MockCoinLedger()
    ledger.add_actor(TEST_ACTOR_ID, actor_type="fan", balance=0)
    return ledger


@pytest.fixture
def current_actor() -> ActorContext:
    """Actor the api_client authenticates as. Override per test class."""
    return ActorContext(actor_id=TEST_ACTOR_ID, actor_type="fan")


def _mock_db_session() -> AsyncMock:
    session = AsyncMock(spec=AsyncSession)
    # Revocation lookups find no token_invalidated_before
    session.execute.return_value = MagicMock(
        scalar_one_or_none=MagicMock(return_value=None)
    )
    return session


@pytest_asyncio.fixture
async def api_client(
    mock_ledger: MockCoinLedger,
    current_actor: ActorContext,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with identity and ledger dependencies overridden.

    Sets up:
    - get_db yields a mock session (no database needed)
    - get_current_actor returns current_actor
    - get_coin_ledger returns mock_ledger (a serializing in-memory ledger)

    Yields:
        AsyncClient for making API requests as current_actor.
    """
    from modelhub.api.deps import get_coin_ledger, get_current_actor
    from modelhub.core.database import get_db
    from modelhub.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield _mock_db_session()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_actor] = lambda: current_actor
    app.dependency_overrides[get_coin_ledger] = lambda: mock_ledger

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def unauthenticated_client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client without authentication.

    Auth is enabled but no JWT cookie is provided.

    Yields:
        AsyncClient with no auth cookie.
    """
    from modelhub.core.database import get_db
    from modelhub.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield _mock_db_session()

    app.dependency_overrides[get_db] = override_get_db

    original_auth_enabled = settings.auth_enabled
    original_auth_secret = settings.auth_secret
    settings.auth_enabled = True
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    settings.auth_enabled = original_auth_enabled
    settings.auth_secret = original_auth_secret
    app.dependency_overrides.clear()


@pytest.fixture
def deep_link_secret() -> Iterator[str]:
    """Configure DEEP_LINK_SECRET for the duration of a test."""
    original = settings.deep_link_secret
    settings.deep_link_secret = SecretStr(TEST_DEEP_LINK_SECRET)
    yield TEST_DEEP_LINK_SECRET
    settings.deep_link_secret = original


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disable for other tests to avoid
    flaky failures from rate limit triggers.
    """
    from modelhub.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled
