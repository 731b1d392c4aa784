import httpx

from authflow.errors import FailureKind
from authflow.interceptors import attach_bearer, classify_failure, is_auth_failure


def make_request():
    return httpx.Request("GET", "http://api.test/books")


def test_attach_bearer_sets_header():
    req = attach_bearer(make_request(), "tok")
    assert req.headers["Authorization"] == "Bearer tok"


def test_attach_bearer_without_token_leaves_request_alone():
    req = attach_bearer(make_request(), None)
    assert "Authorization" not in req.headers


def test_success_is_not_a_failure():
    assert classify_failure(httpx.Response(204), attempt=0, is_logged=True) is None


def test_recoverable_401():
    r = httpx.Response(401)
    assert is_auth_failure(r)
    assert classify_failure(r, attempt=0, is_logged=True) is None


def test_401_taxonomy():
    r = httpx.Response(401)
    assert classify_failure(r, attempt=1, is_logged=True) is FailureKind.ALREADY_RETRIED
    assert classify_failure(r, attempt=0, is_logged=False) is FailureKind.NO_SESSION


def test_other_statuses():
    assert classify_failure(httpx.Response(500), attempt=0, is_logged=True) is FailureKind.NON_AUTH
    assert classify_failure(httpx.Response(403), attempt=1, is_logged=True) is FailureKind.RESUBMISSION_FAILED
    assert not is_auth_failure(httpx.Response(403))
