from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .models import RefreshResult, SessionEvent, UserSession

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionEvent], Union[None, Awaitable[None]]]


class SessionStore:
    """The single session of one client: tokens, user and the logged-in flag.

    Written only by login/logout actions and by the refresh coordinator.
    Every change is broadcast to the subscribed listeners (UI state,
    persistence) as a SessionEvent.
    """

    def __init__(self, session: Optional[UserSession] = None):
        self._session = session.model_copy() if session else UserSession()
        self._listeners: List[SessionListener] = []

    @property
    def session(self) -> UserSession:
        return self._session.model_copy()

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._session.refresh_token

    @property
    def is_logged(self) -> bool:
        return self._session.is_logged

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def login(self, access_token: str, refresh_token: str, user: Optional[Dict[str, Any]] = None) -> None:
        s = self._session
        s.access_token = access_token
        s.refresh_token = refresh_token
        s.user = user
        s.is_logged = True
        logger.info("session logged in")
        await self._notify(SessionEvent.from_session("logged_in", s))

    async def apply_refresh(self, result: RefreshResult) -> None:
        s = self._session
        s.access_token = result.access_token
        # omitted fields mean "unchanged"
        if result.refresh_token:
            s.refresh_token = result.refresh_token
        if result.user is not None:
            s.user = result.user
        await self._notify(SessionEvent.from_session("refreshed", s))

    async def clear(self) -> bool:
        """Logout cascade. Returns False when there was nothing to clear."""
        s = self._session
        if not s.is_logged and s.access_token is None and s.refresh_token is None:
            return False
        s.access_token = None
        s.refresh_token = None
        s.user = None
        s.is_logged = False
        logger.warning("session cleared, user logged out")
        await self._notify(SessionEvent.logged_out())
        return True

    async def _notify(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                res = listener(event)
                if inspect.isawaitable(res):
                    await res
            except Exception:
                logger.exception("session listener failed on %s event", event.kind)
