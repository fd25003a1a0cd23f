"""Test fixtures — a fresh app per test over a throwaway SQLite store.

Learn: Testing pattern for async FastAPI + SQLAlchemy:

1. Env vars are set before chatgate is imported, so the settings
   singleton picks up cheap bcrypt rounds and a fake LLM key.
2. Each test gets its own SQLite file (tmp_path) with tables created,
   wrapped in a SqlUserStore and handed to create_app().
3. The LLM provider is an httpx.MockTransport: no network, and the
   test can inspect exactly what we sent upstream.
4. Rate limiting is off by default; tests that turn it on hand the app
   a FakeRedis holding the counters.
"""

import os

os.environ["CHATGATE_BCRYPT_ROUNDS"] = "4"
os.environ["CHATGATE_RATE_LIMIT_ENABLED"] = "false"
os.environ["CHATGATE_LLM_API_KEY"] = "test-llm-key"
os.environ["CHATGATE_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["CHATGATE_JWT_SECRET"] = "test-jwt-secret-0123456789abcdef"
os.environ["CHATGATE_ENVIRONMENT"] = "development"

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from chatgate.db.engine import build_engine, build_session_factory, init_db
from chatgate.main import create_app
from chatgate.services.user_store import SqlUserStore


def completion(content):
    """An OpenAI-style chat completion body."""
    return {
        "id": "gen-test",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}}
        ],
    }


class FakeLLM:
    """Stands in for the LLM provider; records every request it gets."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body = completion("Hello from the assistant")
        self.raise_error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture()
def fake_llm():
    return FakeLLM()


class FakeRedis:
    """The slice of redis.asyncio.Redis the rate limiter uses."""

    def __init__(self):
        self.values: dict[str, int] = {}
        self.ttls: dict[str, int] = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("Error 111 connecting to localhost:6379.")

    async def incr(self, key):
        self._check()
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    async def expire(self, key, seconds):
        self._check()
        self.ttls[key] = seconds
        return True


@pytest.fixture()
def fake_redis():
    return FakeRedis()


@pytest_asyncio.fixture()
async def sql_store(tmp_path):
    """SqlUserStore over a fresh SQLite file with the schema created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'users.db'}")
    await init_db(engine)
    try:
        yield SqlUserStore(build_session_factory(engine))
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def app(sql_store, fake_llm):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_llm.handler))
    application = create_app(user_store=sql_store, http_client=http_client)
    yield application
    await http_client.aclose()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def registered(client):
    """A registered user: (credentials, response body)."""
    creds = {"email": "ada@example.com", "password": "correct horse", "name": "Ada"}
    r = await client.post("/auth/register", json=creds)
    assert r.status_code == 201
    return creds, r.json()


@pytest_asyncio.fixture()
async def auth_headers(registered):
    _, body = registered
    return {"Authorization": f"Bearer {body['token']}"}
