from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .errors import LoginFailed, RefreshFailed
from .models import LoginResult, RefreshResult

logger = logging.getLogger(__name__)


class AuthClient:
    """Calls of the credential-issuing backend.

    Uses its own httpx client: refresh calls never go through the
    authenticated pipeline, so a failing refresh cannot trigger another one.
    """

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        login_path: str = "/auth",
        refresh_path: str = "/auth/refresh",
        logout_path: str = "/auth/logout",
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout_sec
        self.login_path = login_path
        self.refresh_path = refresh_path
        self.logout_path = logout_path
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def refresh(self, refresh_token: str) -> RefreshResult:
        try:
            r = await self._client.post(f"{self.base_url}{self.refresh_path}", json={"refreshToken": refresh_token})
        except httpx.HTTPError as e:
            raise RefreshFailed("transport", f"refresh call failed: {e}") from e

        if not r.is_success:
            raise RefreshFailed("status", f"refresh rejected with status {r.status_code}", response=r)

        try:
            data = r.json()
        except ValueError as e:
            raise RefreshFailed("malformed", "refresh response is not JSON", response=r) from e
        if not isinstance(data, dict):
            raise RefreshFailed("malformed", "refresh response is not an object", response=r)
        try:
            return RefreshResult.model_validate(data)
        except ValidationError as e:
            raise RefreshFailed("malformed", "refresh response has no access token", response=r) from e

    async def login(self, username: str, password: str) -> LoginResult:
        try:
            r = await self._client.post(
                f"{self.base_url}{self.login_path}",
                json={"username": username, "password": password},
            )
        except httpx.HTTPError as e:
            raise LoginFailed(f"login call failed: {e}") from e
        if not r.is_success:
            raise LoginFailed(_message(r) or "login rejected", status_code=r.status_code)
        try:
            return LoginResult.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise LoginFailed("malformed login response", status_code=r.status_code) from e

    async def logout(self, access_token: Optional[str] = None) -> bool:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        try:
            r = await self._client.post(f"{self.base_url}{self.logout_path}", headers=headers)
            return r.status_code < 400
        except httpx.HTTPError as e:
            logger.warning("logout call failed: %s", e)
            return False

    async def aclose(self) -> None:
        await self._client.aclose()


def _message(r: httpx.Response) -> Optional[str]:
    try:
        data: Dict[str, Any] = r.json()
    except ValueError:
        return None
    return data.get("message") if isinstance(data, dict) else None
