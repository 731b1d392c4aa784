from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as redis
from pydantic import ValidationError

from .models import SessionEvent, UserSession


class RedisRepo:
    """Keeps the session in redis so the rest of the application can pick it up.

    Subscribe ``on_session_event`` to a SessionStore: refreshed and
    logged-in sessions are written, a logout deletes the key.
    """

    def __init__(self, host: str, port: int, ttl_sec: int, key: str = "authflow:session", client: Optional[Any] = None):
        # a client passed in belongs to the caller and is left open
        self._owns_client = client is None
        self.r = client if client is not None else redis.Redis(host=host, port=port, decode_responses=True)
        self.ttl = ttl_sec
        self.key = key

    async def set(self, session: UserSession) -> None:
        await self.r.set(self.key, session.model_dump_json(), ex=self.ttl)

    async def get(self) -> Optional[UserSession]:
        raw = await self.r.get(self.key)
        if not raw:
            return None
        try:
            return UserSession.model_validate_json(raw)
        except ValidationError:
            return None

    async def delete(self) -> None:
        await self.r.delete(self.key)

    async def on_session_event(self, event: SessionEvent) -> None:
        if event.kind == "logged_out":
            await self.delete()
            return
        await self.set(
            UserSession(
                access_token=event.access_token,
                refresh_token=event.refresh_token,
                user=event.user,
                is_logged=True,
            )
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.r.aclose()
