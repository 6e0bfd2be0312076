"""Tests for the fixed-window rate limiter and its FastAPI dependency."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import API, FakeClock, FakeRedis
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from blog_api.core.exceptions import (
    AppException,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    app_exception_handler,
)
from blog_api.services.cache import KeyValueStore
from blog_api.services.rate_limit import (
    RateLimiter,
    client_address,
    create_rate_limit_dependency,
    notification_modify_limiter,
    user_or_address,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _limiter(clock: FakeClock, max_requests: int = 3, **kwargs) -> RateLimiter:
    return RateLimiter(window_ms=60_000, max_requests=max_requests, clock=clock, **kwargs)


def _request(headers: dict[str, str] | None = None, host: str = "10.0.0.1") -> MagicMock:
    request = MagicMock()
    request.headers = headers or {}
    request.client.host = host
    request.state = MagicMock(spec=[])
    return request


def _limited_app(store: KeyValueStore, limiter: RateLimiter) -> FastAPI:
    app = FastAPI()
    app.state.services = MagicMock(store=store)
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    dep = [Depends(create_rate_limit_dependency(limiter))]

    @app.get("/ok", dependencies=dep)
    async def ok() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/unavailable", dependencies=dep)
    async def unavailable() -> None:
        raise ServiceUnavailableError()

    @app.get("/missing", dependencies=dep)
    async def missing() -> None:
        raise NotFoundError("Thing")

    @app.get("/degraded", dependencies=dep)
    async def degraded() -> JSONResponse:
        return JSONResponse({"status": "degraded"}, status_code=503)

    return app


# ---------------------------------------------------------------------------
# Limiter
# ---------------------------------------------------------------------------

class TestRateLimiter:

    async def test_counts_down_then_rejects(self, store: KeyValueStore, clock: FakeClock):
        clock.now = 1_700_000_010.0
        limiter = _limiter(clock)

        remaining = [(await limiter.hit(store, "ip:1")).remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

        with pytest.raises(RateLimitError) as exc_info:
            await limiter.hit(store, "ip:1")
        # window [1_699_999_980, 1_700_000_040) in seconds
        assert exc_info.value.details["retry_after"] == 30
        assert exc_info.value.headers["Retry-After"] == "30"
        assert exc_info.value.headers["X-RateLimit-Remaining"] == "0"

    async def test_next_window_starts_fresh(self, store: KeyValueStore, clock: FakeClock):
        limiter = _limiter(clock)
        for _ in range(3):
            await limiter.hit(store, "ip:1")

        clock.advance(60)

        result = await limiter.hit(store, "ip:1")
        assert result.remaining == 2

    async def test_identities_are_independent(self, store: KeyValueStore, clock: FakeClock):
        limiter = _limiter(clock, max_requests=1)
        await limiter.hit(store, "ip:1")
        assert (await limiter.hit(store, "ip:2")).remaining == 0

    async def test_key_and_reset(self, store: KeyValueStore, clock: FakeClock):
        clock.now = 1_700_000_010.5
        result = await _limiter(clock).hit(store, "user:4")

        assert result.key == "rate_limit:user:4:1699999980000"
        assert result.reset_ms == 1_700_000_040_000
        assert result.headers == {
            "X-RateLimit-Limit": "3",
            "X-RateLimit-Remaining": "2",
            "X-RateLimit-Reset": "1700000040000",
        }

    async def test_counter_expires_with_window(
        self, store: KeyValueStore, fake_redis: FakeRedis, clock: FakeClock
    ):
        clock.now = 1_700_000_010.0
        await _limiter(clock).hit(store, "ip:1")

        _, expires_at = fake_redis.data["rate_limit:ip:1:1699999980000"]
        assert expires_at == 1_700_000_040.0

    async def test_store_failure_fails_open(self, clock: FakeClock):
        broken = MagicMock()
        broken.get = AsyncMock(side_effect=RuntimeError("down"))
        assert await _limiter(clock).hit(broken, "ip:1") is None

    async def test_release_decrements(self, store: KeyValueStore, clock: FakeClock):
        limiter = _limiter(clock)
        await limiter.hit(store, "ip:1")
        result = await limiter.hit(store, "ip:1")

        await limiter.release(store, result)

        assert await store.get(result.key) == 1

    def test_rejects_bad_configuration(self):
        with pytest.raises(ValueError):
            RateLimiter(window_ms=0, max_requests=1)


class TestKeyGenerators:

    def test_forwarded_for_first_hop(self):
        request = _request({"X-Forwarded-For": "203.0.113.9, 10.0.0.2"})
        assert client_address(request) == "ip:203.0.113.9"

    def test_socket_peer(self):
        assert client_address(_request()) == "ip:10.0.0.1"

    def test_user_identity_preferred(self):
        request = _request()
        request.state.user = MagicMock(user_id=12)
        assert user_or_address(request) == "user:12"

    def test_anonymous_falls_back_to_address(self):
        assert user_or_address(_request()) == "ip:10.0.0.1"


# ---------------------------------------------------------------------------
# Dependency
# ---------------------------------------------------------------------------

class TestRateLimitDependency:

    async def test_sets_headers_and_rejects(self, store: KeyValueStore, clock: FakeClock):
        app = _limited_app(store, _limiter(clock, max_requests=2))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://t") as ac:
            first = await ac.get("/ok")
            await ac.get("/ok")
            third = await ac.get("/ok")

        assert first.status_code == 200
        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert third.status_code == 429
        assert third.json()["error"]["details"]["retry_after"] > 0
        assert int(third.headers["Retry-After"]) > 0

    async def test_unavailable_store_lets_everything_through(self, clock: FakeClock):
        app = _limited_app(KeyValueStore(), _limiter(clock, max_requests=1))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://t") as ac:
            responses = [await ac.get("/ok") for _ in range(3)]

        assert [r.status_code for r in responses] == [200, 200, 200]
        assert "X-RateLimit-Limit" not in responses[0].headers

    async def test_disabled_by_settings(self, store: KeyValueStore, clock: FakeClock):
        app = _limited_app(store, _limiter(clock, max_requests=1))
        with patch("blog_api.services.rate_limit.get_settings") as mock_settings:
            mock_settings.return_value.rate_limit_enabled = False
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://t") as ac:
                responses = [await ac.get("/ok") for _ in range(3)]

        assert all(r.status_code == 200 for r in responses)

    async def test_server_errors_are_not_counted(self, store: KeyValueStore, clock: FakeClock):
        limiter = _limiter(clock, max_requests=2, skip_failed_requests=True)
        app = _limited_app(store, limiter)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://t") as ac:
            for _ in range(3):
                assert (await ac.get("/unavailable")).status_code == 503
            resp = await ac.get("/ok")

        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Remaining"] == "1"

    async def test_client_errors_are_counted(self, store: KeyValueStore, clock: FakeClock):
        limiter = _limiter(clock, max_requests=2, skip_failed_requests=True)
        app = _limited_app(store, limiter)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://t") as ac:
            await ac.get("/missing")
            await ac.get("/missing")
            resp = await ac.get("/ok")

        assert resp.status_code == 429

    async def test_returned_server_error_responses_are_counted(
        self, store: KeyValueStore, clock: FakeClock
    ):
        limiter = _limiter(clock, max_requests=2, skip_failed_requests=True)
        app = _limited_app(store, limiter)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://t") as ac:
            assert (await ac.get("/degraded")).status_code == 503
            assert (await ac.get("/degraded")).status_code == 503
            resp = await ac.get("/ok")

        assert resp.status_code == 429


# ---------------------------------------------------------------------------
# Admin notification endpoints
# ---------------------------------------------------------------------------

async def test_cleanup_endpoint_is_limited_per_admin(
    client: AsyncClient,
    admin_headers: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
):
    monkeypatch.setattr(notification_modify_limiter, "clock", FakeClock(1_700_000_010.0))

    statuses = []
    for _ in range(31):
        resp = await client.post(f"{API}/admin/notifications/cleanup", headers=admin_headers)
        statuses.append(resp.status_code)

    assert statuses[:30] == [200] * 30
    assert statuses[30] == 429
    assert resp.json()["error"]["details"]["retry_after"] == 30
    assert resp.headers["Retry-After"] == "30"


async def test_read_endpoint_reports_remaining(client: AsyncClient, admin_headers: dict[str, str]):
    resp = await client.get(f"{API}/admin/notifications", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.headers["X-RateLimit-Limit"] == "100"
    assert resp.headers["X-RateLimit-Remaining"] == "99"
