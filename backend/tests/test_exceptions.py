"""Tests for the error classes and exception handlers."""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from blog_api.core.exceptions import (
    AppException,
    AssistantProviderError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)


def _make_request(origin: str = "") -> MagicMock:
    """Build a minimal mock Starlette Request."""
    req = MagicMock()
    req.headers = {"origin": origin} if origin else {}
    req.url = "http://test/path"
    return req


@pytest.fixture(autouse=True)
def _patch_settings():
    """Patch get_settings so CORS origin check works."""
    mock_settings = MagicMock()
    mock_settings.cors_origins = ["http://allowed.example.com"]
    with patch("blog_api.core.config.get_settings", return_value=mock_settings):
        yield


# =============================================================================
# AppException basics
# =============================================================================

class TestAppException:

    def test_carries_status_and_message(self):
        err = AppException("boom", status_code=418)
        assert err.status_code == 418
        assert err.message == "boom"

    def test_default_status_is_500(self):
        assert AppException("x").status_code == 500

    def test_subclass_status_codes(self):
        assert AuthenticationError().status_code == 401
        assert AuthorizationError().status_code == 403
        assert NotFoundError("Item").status_code == 404
        assert ConflictError().status_code == 409
        assert ValidationError("bad").status_code == 422
        assert InvalidStateError("nope").status_code == 400
        assert RateLimitError().status_code == 429
        assert AssistantProviderError("down").status_code == 502
        assert ServiceUnavailableError().status_code == 503

    def test_not_found_message(self):
        assert NotFoundError("Post").message == "Post not found"


# =============================================================================
# app_exception_handler
# =============================================================================

class TestAppExceptionHandler:

    async def test_error_envelope(self):
        exc = ValidationError("Unknown category", {"category_id": 3})
        resp = await app_exception_handler(_make_request(), exc)

        assert resp.status_code == 422
        assert json.loads(resp.body) == {
            "error": {"message": "Unknown category", "details": {"category_id": 3}}
        }

    async def test_429_includes_retry_after(self):
        resp = await app_exception_handler(_make_request(), RateLimitError(retry_after=30))

        assert resp.status_code == 429
        assert resp.headers.get("Retry-After") == "30"
        assert json.loads(resp.body)["error"]["details"] == {"retry_after": 30}

    async def test_extra_headers_forwarded(self):
        exc = RateLimitError(retry_after=5, headers={"X-RateLimit-Remaining": "0"})
        resp = await app_exception_handler(_make_request(), exc)
        assert resp.headers.get("X-RateLimit-Remaining") == "0"

    async def test_non_429_has_no_retry_after(self):
        resp = await app_exception_handler(_make_request(), AppException("err", status_code=400))
        assert "Retry-After" not in resp.headers

    async def test_cors_headers_for_allowed_origin(self):
        req = _make_request(origin="http://allowed.example.com")
        resp = await app_exception_handler(req, NotFoundError("Post"))
        assert resp.headers.get("Access-Control-Allow-Origin") == "http://allowed.example.com"


# =============================================================================
# http_exception_handler
# =============================================================================

class TestHttpExceptionHandler:

    async def test_returns_status_and_body(self):
        exc = HTTPException(status_code=403, detail="forbidden")
        resp = await http_exception_handler(_make_request(), exc)
        assert resp.status_code == 403
        assert b"forbidden" in resp.body

    async def test_no_cors_for_unknown_origin(self):
        req = _make_request(origin="http://evil.example.com")
        resp = await http_exception_handler(req, HTTPException(status_code=400, detail="bad"))
        assert "Access-Control-Allow-Origin" not in resp.headers


# =============================================================================
# unhandled_exception_handler
# =============================================================================

class TestUnhandledExceptionHandler:

    async def test_generic_message(self):
        resp = await unhandled_exception_handler(_make_request(), RuntimeError("secret"))
        body = bytes(resp.body)
        assert resp.status_code == 500
        assert b"internal error" in body.lower()
        assert b"secret" not in body
