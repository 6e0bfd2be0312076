"""HTTP response caching for read endpoints.

Mark an endpoint with ``cache_response(ttl)`` and register it on a router
whose ``route_class`` is ``CachedRoute``::

    router = APIRouter(route_class=CachedRoute)

    @router.get("/posts")
    @cache_response(TTL_POST_LIST)
    async def list_posts(...): ...

The cache key is ``cache:`` + path + ``?`` + raw query string, so
``?a=1&b=2`` and ``?b=2&a=1`` are separate entries. A hit is served before
the endpoint's dependencies are resolved, which is why cached endpoints must
only return anonymous views.
"""

import json
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from blog_api.core.logging import get_logger
from blog_api.services.cache.constants import (
    CACHE_STATUS_HEADER,
    KEY_PREFIX_RESPONSE,
    TTL_DEFAULT,
)
from blog_api.services.cache.store import KeyValueStore

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

CACHE_TTL_ATTR = "__response_cache_ttl__"


def cache_response(ttl: int = TTL_DEFAULT) -> Callable[[F], F]:
    """Mark an endpoint's 200 JSON responses as cacheable for ``ttl`` seconds."""

    def decorator(func: F) -> F:
        setattr(func, CACHE_TTL_ATTR, ttl)
        return func

    return decorator


def build_cache_key(request: Request) -> str:
    key = f"{KEY_PREFIX_RESPONSE}:{request.url.path}"
    if request.url.query:
        key = f"{key}?{request.url.query}"
    return key


def _get_store(request: Request) -> KeyValueStore | None:
    services = getattr(request.app.state, "services", None)
    if services is None:
        return None
    store: KeyValueStore = services.store
    return store if store.is_available else None


class CachedRoute(APIRoute):
    """APIRoute that serves marked GET endpoints from the key-value store."""

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()
        ttl = getattr(self.endpoint, CACHE_TTL_ATTR, None)
        if ttl is None or "GET" not in self.methods:
            return handler

        async def cached_handler(request: Request) -> Response:
            if request.method != "GET":
                return await handler(request)

            store = _get_store(request)
            if store is None:
                return await handler(request)

            key = build_cache_key(request)
            cached = await store.get(key)
            if cached is not None:
                logger.debug("Response cache hit", key=key)
                return JSONResponse(cached, headers={CACHE_STATUS_HEADER: "HIT"})

            response = await handler(request)
            if response.status_code != 200:
                return response

            body = getattr(response, "body", None)
            if not body:
                return response
            try:
                payload = json.loads(body)
            except ValueError:
                logger.debug("Response not JSON, skipping cache", key=key)
                return response

            await store.set(key, payload, ttl)
            response.headers[CACHE_STATUS_HEADER] = "MISS"
            return response

        return cached_handler
