from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .auth_client import AuthClient
from .config import Settings, get_settings
from .errors import FailureKind, RequestFailed
from .interceptors import attach_bearer, classify_failure
from .models import UserSession
from .redis_repo import RedisRepo
from .refresh import RefreshCoordinator
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class AuthedClient:
    """HTTP client that authenticates every request with the session's bearer token.

    A 401 on a request made while logged in is recovered once: the client
    waits for the coordinator's refresh and replays the request with the
    new token. Whatever the replay yields is final.
    """

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore,
        coordinator: RefreshCoordinator,
        auth_client: AuthClient,
        timeout_sec: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        redis_repo: Optional[RedisRepo] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout_sec
        self.store = session_store
        self.coordinator = coordinator
        self.auth = auth_client
        self.redis_repo = redis_repo
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        original = self._client.build_request(method, self._url(path), **kwargs)
        # buffer the body once so a replay resends the same bytes
        await original.aread()
        return await self._dispatch(original, attempt=0, token=self.store.access_token)

    async def _dispatch(self, original: httpx.Request, attempt: int, token: Optional[str]) -> httpx.Response:
        # each attempt sends its own copy, only the bearer differs
        req = httpx.Request(
            original.method,
            original.url,
            headers=original.headers,
            content=original.content,
            extensions=original.extensions,
        )
        attach_bearer(req, token)
        try:
            r = await self._client.send(req)
        except httpx.TransportError as e:
            if attempt == 0:
                raise
            raise RequestFailed(FailureKind.RESUBMISSION_FAILED, f"replay of {req.method} {req.url.path} failed: {e}") from e
        if r.status_code < 400:
            return r

        kind = classify_failure(r, attempt, self.store.is_logged)
        if kind is not None:
            logger.debug("%s %s failed: %s (status=%s)", req.method, req.url.path, kind.value, r.status_code)
            raise RequestFailed(kind, response=r)

        logger.debug("%s %s got 401, waiting for a fresh token", req.method, req.url.path)
        new_token = await self.coordinator.fresh_token()
        return await self._dispatch(original, attempt + 1, new_token)

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    async def login(self, username: str, password: str) -> UserSession:
        res = await self.auth.login(username, password)
        await self.store.login(res.access_token, res.refresh_token, res.user)
        return self.store.session

    async def logout(self) -> bool:
        # the local session is cleared even if the server is unreachable
        try:
            return await self.auth.logout(self.store.access_token)
        finally:
            await self.store.clear()

    async def aclose(self) -> None:
        await self._client.aclose()
        await self.auth.aclose()
        if self.redis_repo is not None:
            await self.redis_repo.aclose()

    async def __aenter__(self) -> "AuthedClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}{path}"


def build_client(
    settings: Optional[Settings] = None,
    session: Optional[UserSession] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    auth_transport: Optional[httpx.AsyncBaseTransport] = None,
    redis_client: Optional[Any] = None,
) -> AuthedClient:
    settings = settings or get_settings()
    store = SessionStore(session)

    repo = None
    if settings.REDIS_ENABLED or redis_client is not None:
        repo = RedisRepo(
            settings.REDIS_HOST,
            settings.REDIS_PORT,
            settings.SESSION_TTL_SEC,
            key=settings.SESSION_KEY,
            client=redis_client,
        )
        store.subscribe(repo.on_session_event)

    auth = AuthClient(
        settings.AUTH_BASE_URL,
        settings.HTTP_TIMEOUT_SEC,
        transport=auth_transport or transport,
        login_path=settings.LOGIN_PATH,
        refresh_path=settings.REFRESH_PATH,
        logout_path=settings.LOGOUT_PATH,
    )
    coordinator = RefreshCoordinator(store, auth)
    return AuthedClient(
        settings.API_BASE_URL,
        store,
        coordinator,
        auth,
        timeout_sec=settings.HTTP_TIMEOUT_SEC,
        transport=transport,
        redis_repo=repo,
    )
