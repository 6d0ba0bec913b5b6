"""Shared test fixtures."""

import os

# Settings are read at import time; these must be set before any src import.
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("LEDGER_STORE", "memory")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from collections.abc import AsyncIterator, Callable  # noqa: E402
from unittest.mock import AsyncMock, MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.main import app  # noqa: E402
from src.rl_common.auth import Principal  # noqa: E402
from src.rl_common.enums import Role  # noqa: E402
from src.rl_gateway.auth.jwt_handler import create_access_token  # noqa: E402
from src.rl_ledger.infrastructure.memory_store import InMemoryLedgerStore  # noqa: E402
from src.rl_ledger.infrastructure.store_factory import get_ledger_store  # noqa: E402


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
def user() -> Principal:
    return Principal(user_id="user-1", role=Role.USER)


@pytest.fixture
def fake_redis() -> MagicMock:
    """Redis double: empty cache, counters start at 1."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.incr = AsyncMock(return_value=1)
    redis.expire = AsyncMock(return_value=True)
    redis.ttl = AsyncMock(return_value=60)
    return redis


@pytest.fixture
async def client(
    store: InMemoryLedgerStore, fake_redis: MagicMock
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to a fresh in-memory ledger store."""
    app.dependency_overrides[get_ledger_store] = lambda: store
    transport = ASGITransport(app=app)
    with patch(
        "src.rl_admin.application.service.get_redis",
        AsyncMock(return_value=fake_redis),
    ):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build Bearer headers: auth_headers("user-1", Role.ADMIN)."""

    def _build(user_id: str, role: Role = Role.USER) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}

    return _build
