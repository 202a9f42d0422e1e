import os

# hardtrack.database builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from hardtrack.config import settings
from hardtrack.database import Base, get_db
from hardtrack.main import app
from hardtrack.utils.dates import local_today


def make_token(user_id: str, email: str = None) -> str:
    claims = {"sub": user_id, "exp": datetime.now(timezone.utc) + timedelta(hours=1)}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, f'{user_id}@example.com')}"}


@pytest.fixture
def today():
    # profiles are provisioned with the default timezone
    return local_today(settings.DEFAULT_TIMEZONE)


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return auth("alice")


@pytest.fixture
def bob():
    return auth("bob")


@pytest.fixture
def carol():
    return auth("carol")


@pytest.fixture
def make_challenge(client):
    async def _make(headers, start, **extra):
        resp = await client.post("/challenges", json={"start_date": str(start), **extra}, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make
