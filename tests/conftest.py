import asyncio
from typing import Optional

import httpx
import pytest

from authflow.client import build_client
from authflow.config import Settings
from authflow.models import UserSession

API = "http://api.test"
AUTH = "http://auth.test"


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis (only what RedisRepo uses)."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.closed = False

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, key):
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    async def aclose(self):
        self.closed = True


class Backend:
    """Fake API + auth server.

    Protected routes accept only ``valid_token``. ``/auth/refresh`` answers
    with ``refresh_status``/``refresh_body`` after ``refresh_delay`` seconds,
    so concurrent 401s pile up while the refresh is in flight.
    """

    def __init__(self, valid_token: str = "new-access"):
        self.valid_token = valid_token
        self.refresh_calls = []
        self.api_calls = []
        self.refresh_delay = 0.01
        self.refresh_status = 200
        self.refresh_body = {"accessToken": "new-access", "refreshToken": "new-refresh", "user": {"_id": "u1"}}
        self.route_status = {}

    async def handle_auth(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/auth/refresh":
            self.refresh_calls.append(request)
            await asyncio.sleep(self.refresh_delay)
            return httpx.Response(self.refresh_status, json=self.refresh_body)
        if request.url.path == "/auth/logout":
            return httpx.Response(200, json={"message": "Logged out successfully"})
        if request.url.path == "/auth":
            return httpx.Response(
                200, json={"accessToken": "login-access", "refreshToken": "login-refresh", "user": {"_id": "u1"}}
            )
        return httpx.Response(404)

    async def handle_api(self, request: httpx.Request) -> httpx.Response:
        self.api_calls.append(request)
        auth = request.headers.get("Authorization")
        if auth != f"Bearer {self.valid_token}":
            return httpx.Response(401, json={"message": "Unauthorized"})
        status = self.route_status.get(request.url.path, 200)
        return httpx.Response(status, json={"path": request.url.path})

    def api_calls_to(self, path: str):
        return [r for r in self.api_calls if r.url.path == path]


@pytest.fixture
def backend():
    return Backend()


@pytest.fixture
def settings():
    return Settings(API_BASE_URL=API, AUTH_BASE_URL=AUTH, REDIS_ENABLED=0)


@pytest.fixture
def make_client(backend, settings):
    def _make(session: Optional[UserSession] = None, redis_client=None):
        return build_client(
            settings,
            session=session,
            transport=httpx.MockTransport(backend.handle_api),
            auth_transport=httpx.MockTransport(backend.handle_auth),
            redis_client=redis_client,
        )

    return _make


@pytest.fixture
def expired_session():
    return UserSession(access_token="old-access", refresh_token="old-refresh", is_logged=True, user={"_id": "u1"})


@pytest.fixture
def fake_redis():
    return FakeRedis()
