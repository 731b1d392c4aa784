"""Single-flight token refresh.

At most one refresh call is outstanding per coordinator. Callers that need
a token while a call is in flight queue up as waiters and receive exactly
the outcome of that call: the same new access token, or the same
RefreshFailed instance.

The state flag is the lock. It flips to IN_FLIGHT in the same synchronous
step that decides to issue the call, before the first ``await``, so two
tasks that hit a 401 back to back can never both start a refresh. It flips
back to IDLE only after the waiter queue has been drained, so a caller
arriving later starts a new cycle instead of attaching to a settled one.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import List, Optional, Protocol

from .errors import RefreshFailed
from .models import RefreshResult
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class Refresher(Protocol):
    async def refresh(self, refresh_token: str) -> RefreshResult: ...


class RefreshCoordinator:
    def __init__(self, session_store: SessionStore, refresher: Refresher):
        self.store = session_store
        self.refresher = refresher
        self._state = RefreshState.IDLE
        self._waiters: List[asyncio.Future[str]] = []
        self.cycles = 0
        self.refresh_calls = 0

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def pending(self) -> int:
        return len(self._waiters)

    async def fresh_token(self) -> str:
        """Return a newly minted access token or raise RefreshFailed."""
        if self._state is RefreshState.IN_FLIGHT:
            fut: asyncio.Future[str] = asyncio.get_running_loop().create_future()
            self._waiters.append(fut)
            logger.debug("refresh in flight, queued waiter #%d", len(self._waiters))
            return await fut

        self._state = RefreshState.IN_FLIGHT
        self.cycles += 1
        try:
            return await self._run_cycle()
        finally:
            # only reached with waiters left if the cycle never settled (cancelled)
            if self._waiters:
                self._settle(None, RefreshFailed("cancelled"))
            self._state = RefreshState.IDLE

    async def _run_cycle(self) -> str:
        refresh_token = self.store.refresh_token
        logger.info("refreshing access token (cycle %d)", self.cycles)
        try:
            if not refresh_token:
                raise RefreshFailed("missing_refresh_token", "no refresh token available")
            self.refresh_calls += 1
            result = await self.refresher.refresh(refresh_token)
        except Exception as e:
            failure = e if isinstance(e, RefreshFailed) else RefreshFailed("unexpected", str(e))
            if failure is not e:
                failure.__cause__ = e
            logger.warning("token refresh failed (%s), logging out", failure.reason)
            # waiters may rely on the session being cleared when they see the error
            await self.store.clear()
            self._settle(None, failure)
            raise failure

        await self.store.apply_refresh(result)
        self._settle(result.access_token, None)
        logger.info("access token refreshed")
        return result.access_token

    def _settle(self, token: Optional[str], error: Optional[BaseException]) -> None:
        waiters, self._waiters = self._waiters, []
        for fut in waiters:
            if fut.done():
                continue
            if error is not None:
                fut.set_exception(error)
            else:
                fut.set_result(token)
