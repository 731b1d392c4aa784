"""Failure taxonomy of the authenticated request pipeline.

Every failure is classified once, where the response comes back, and the
kind travels with the exception. Callers branch on ``kind`` instead of
inspecting status codes or messages again.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import httpx


class FailureKind(str, Enum):
    NON_AUTH = "non_auth"
    ALREADY_RETRIED = "already_retried"
    NO_SESSION = "no_session"
    REFRESH_FAILED = "refresh_failed"
    RESUBMISSION_FAILED = "resubmission_failed"


class AuthFlowError(Exception):
    """Base class for every error raised by authflow."""


class RequestFailed(AuthFlowError):
    """A request ended in a failure that reaches the original caller.

    ``response`` is the failed response when there is one; for non-auth
    failures it is the untouched response of the original dispatch.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str = "",
        response: Optional[httpx.Response] = None,
        status_code: Optional[int] = None,
    ):
        if status_code is None and response is not None:
            status_code = response.status_code
        super().__init__(message or f"{kind.value} (status={status_code})")
        self.kind = kind
        self.response = response
        self.status_code = status_code


class RefreshFailed(RequestFailed):
    """The refresh cycle could not mint a new access token.

    ``reason`` is one of ``missing_refresh_token``, ``transport``,
    ``status``, ``malformed`` or ``cancelled``. All waiters of one cycle
    receive the same instance.
    """

    def __init__(
        self,
        reason: str,
        message: str = "",
        response: Optional[httpx.Response] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            FailureKind.REFRESH_FAILED,
            message or f"token refresh failed: {reason}",
            response=response,
            status_code=status_code,
        )
        self.reason = reason


class LoginFailed(AuthFlowError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
