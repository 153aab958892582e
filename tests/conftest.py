from __future__ import annotations

import fakeredis
import pytest
from fastapi.testclient import TestClient

from backend.app.config import Settings
from backend.app.keyspace import Keyspace
from backend.app.main import create_app
from backend.app.redis_gate import RedisGate

ADMIN_USERNAME = "Admin"
ADMIN_PASSWORD = "correct horse battery staple"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="test",
        host="127.0.0.1",
        port=4000,
        redis_url="redis://unused:6379/0",
        auth_secret="test-auth-secret",
        analytics_secret="test-analytics-secret",
        analytics_prefix="test:",
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        github_token=None,
        github_username="octocat",
        bcrypt_rounds=4,
    )


@pytest.fixture
def keys(settings) -> Keyspace:
    return Keyspace(settings.analytics_prefix)


@pytest.fixture
def redis_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest.fixture
def redis_sync(redis_server) -> fakeredis.FakeRedis:
    """Synchronous view on the same data the app writes, for assertions."""
    return fakeredis.FakeRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def redis_factory(redis_server):
    def factory():
        return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)

    return factory


@pytest.fixture
def make_gate(redis_factory):
    """Build a gate inside the running event loop of an ``asyncio.run`` test."""

    def build() -> RedisGate:
        return RedisGate(redis_factory)

    return build


@pytest.fixture
def app(settings, redis_factory):
    return create_app(settings, redis_factory=redis_factory)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client):
    def post_login(username: str = ADMIN_USERNAME, password: str = ADMIN_PASSWORD):
        return client.post(
            "/api/admin/auth/v1/login",
            json={"username": username, "password": password},
        )

    return post_login


@pytest.fixture
def admin_client(client, login):
    response = login()
    assert response.status_code == 200
    return client
