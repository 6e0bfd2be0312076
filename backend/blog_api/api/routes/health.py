"""Health, liveness and readiness endpoints.

The database is the only hard dependency. A missing or failing key-value
store leaves the API serving uncached and unthrottled, which is reported as
``degraded`` rather than ``unhealthy``.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from blog_api.api.deps import Services
from blog_api.api.schemas import HealthResponse, ServiceHealth
from blog_api.core.config import get_settings
from blog_api.db.session import check_db_health

router = APIRouter(tags=["Health"])

PROBE_TIMEOUT_SECONDS = 5.0

_CACHE_DETAILS = {"type": "redis", "provider": "upstash"}
_CACHE_DISABLED_DETAILS = {"type": "redis", "provider": "not configured"}


@dataclass
class ProbeResult:
    ok: bool
    latency_ms: float
    error: str | None = None

    def as_service(self, failed_status: str, details: dict[str, Any]) -> ServiceHealth:
        if self.error:
            details = {**details, "error": self.error}
        return ServiceHealth(
            status="healthy" if self.ok else failed_status,
            latency_ms=self.latency_ms,
            details=details,
        )


async def _probe(check: Callable[[], Awaitable[bool]]) -> ProbeResult:
    start = time.perf_counter()
    error: str | None = None
    try:
        ok = await asyncio.wait_for(check(), timeout=PROBE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        ok, error = False, f"Health check timed out after {PROBE_TIMEOUT_SECONDS}s"
    except Exception as e:
        ok, error = False, str(e)
    return ProbeResult(ok, round((time.perf_counter() - start) * 1000, 2), error)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", response_model=HealthResponse, summary="Dependency health")
async def health_check(services: Services) -> HealthResponse:
    """
    Report each dependency and an overall status.

    - **database**: a failure makes the API `unhealthy`
    - **cache**: failing or not configured makes it `degraded`
    - **assistant**: `degraded` when no provider key is configured
    """
    store = services.store
    assistant = services.assistant

    if store.is_available:
        db, cache_probe = await asyncio.gather(_probe(check_db_health), _probe(store.check_health))
        cache = cache_probe.as_service("degraded", _CACHE_DETAILS)
    else:
        db = await _probe(check_db_health)
        cache = ServiceHealth(status="disabled", details=_CACHE_DISABLED_DETAILS)

    results = {
        "database": db.as_service("unhealthy", {"type": "sql"}),
        "cache": cache,
        "assistant": ServiceHealth(
            status="healthy" if assistant.client is not None else "degraded",
            details={"models": assistant.models, "active_sessions": assistant.session_count},
        ),
    }

    if not db.ok:
        overall = "unhealthy"
    elif cache.status != "healthy":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc),
        version=get_settings().app_version,
        services=results,
    )


@router.get("/health/live", summary="Liveness probe")
async def liveness() -> dict[str, str]:
    return {"status": "ok", "timestamp": _now()}


@router.get("/health/ready", summary="Readiness probe")
async def readiness() -> JSONResponse:
    """200 once the database answers, 503 otherwise. The cache is not consulted."""
    db = await _probe(check_db_health)
    if db.ok:
        return JSONResponse({"status": "ready", "timestamp": _now()})

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "not_ready",
            "reason": "database_unavailable",
            "message": db.error or "Database connection failed",
            "timestamp": _now(),
        },
    )


@router.get("/health/cache", summary="Key-value store health")
async def cache_health(services: Services) -> dict[str, Any]:
    """Always 200: without the store the API keeps serving, uncached."""
    store = services.store
    if not store.is_available:
        return {
            "service": "cache",
            **_CACHE_DISABLED_DETAILS,
            "status": "disabled",
            "message": "Cache is not configured or unreachable; responses are not cached",
            "timestamp": _now(),
        }

    probe = await _probe(store.check_health)
    body: dict[str, Any] = {
        "service": "cache",
        **_CACHE_DETAILS,
        "status": "healthy" if probe.ok else "degraded",
        "latency_ms": probe.latency_ms,
        "timestamp": _now(),
    }
    if probe.error:
        body["error"] = probe.error
    return body
