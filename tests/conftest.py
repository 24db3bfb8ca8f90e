"""Test fixtures — a fresh SQLite database per test, fixed secrets, fast bcrypt.

Learn: The environment is set BEFORE the app is imported, because
Settings (and the module-level engine) read it at import time:
- SQLite via aiosqlite instead of Postgres, Redis pointed at a dead port
- bcrypt cost 4 (the minimum) so hashing doesn't dominate test time
- distinct, fixed token secrets

Each test gets its own database file with all tables created; get_db is
overridden to hand that session to the routes.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

_TMP = tempfile.mkdtemp(prefix="videotube-tests-")
os.environ["VIDEOTUBE_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/health.db"
os.environ["VIDEOTUBE_REDIS_URL"] = "redis://127.0.0.1:1/0"
os.environ["VIDEOTUBE_ENVIRONMENT"] = "development"
os.environ["VIDEOTUBE_BCRYPT_ROUNDS"] = "4"
os.environ["VIDEOTUBE_ACCESS_TOKEN_SECRET"] = "test-access-secret-0123456789abcdef"
os.environ["VIDEOTUBE_REFRESH_TOKEN_SECRET"] = "test-refresh-secret-0123456789abcdef"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402

from videotube.db.engine import get_db  # noqa: E402
from videotube.db.models import Base  # noqa: E402
from videotube.main import app  # noqa: E402

PASSWORD = "password_123"


class FrozenClock:
    """Clock for SessionAuthority that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock():
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc))


@pytest_asyncio.fixture()
async def db_session(tmp_path):
    """Per-test session on a brand-new SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client with the app's get_db overridden to the test session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def register(client):
    """Register a user through the API; returns the created user JSON."""
    async def _register(username: str = "alice", password: str = PASSWORD, **extra):
        body = {
            "username": username,
            "email": extra.pop("email", f"{username}@example.com"),
            "fullname": extra.pop("fullname", f"{username.title()} Tester"),
            "avatar": extra.pop("avatar", f"https://cdn.example.com/{username}.png"),
            "password": password,
            **extra,
        }
        r = await client.post("/api/v1/users/register", json=body)
        assert r.status_code == 201, r.text
        return r.json()

    return _register


@pytest.fixture()
def login(client, register):
    """Register + log in; returns the login response JSON."""
    async def _login(username: str = "alice", password: str = PASSWORD):
        await register(username, password)
        r = await client.post(
            "/api/v1/users/login",
            json={"username": username, "password": password},
        )
        assert r.status_code == 200, r.text
        # Tests pass tokens explicitly; don't let login cookies leak into them
        client.cookies.clear()
        return r.json()

    return _login