from __future__ import annotations

from typing import Optional

import httpx

from .errors import FailureKind

UNAUTHORIZED = 401

# attempt 0 is the original dispatch, 1 the single replay after a refresh
MAX_REPLAYS = 1


def attach_bearer(request: httpx.Request, access_token: Optional[str]) -> httpx.Request:
    if access_token:
        request.headers["Authorization"] = f"Bearer {access_token}"
    return request


def classify_failure(response: httpx.Response, attempt: int, is_logged: bool) -> Optional[FailureKind]:
    """Decide what a response means for the pipeline.

    Returns None both for successful responses and for a 401 that may be
    recovered by a refresh; callers tell the two apart with ``is_auth_failure``.
    """
    if response.status_code < 400:
        return None
    if not is_auth_failure(response):
        return FailureKind.RESUBMISSION_FAILED if attempt >= MAX_REPLAYS else FailureKind.NON_AUTH
    if attempt >= MAX_REPLAYS:
        return FailureKind.ALREADY_RETRIED
    if not is_logged:
        return FailureKind.NO_SESSION
    return None


def is_auth_failure(response: httpx.Response) -> bool:
    return response.status_code == UNAUTHORIZED
