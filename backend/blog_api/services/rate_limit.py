"""Fixed-window rate limiting backed by the key-value store.

Each (identity, window) pair gets one counter key,
``rate_limit:{identity}:{window_start}``, which expires when its window
ends. Windows are computed from this process's wall clock.

The limiter fails open: if the counter store is unavailable or errors, the
request goes through.
"""

import math
import time
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass

from fastapi import Request, Response
from starlette.exceptions import HTTPException

from blog_api.core.config import get_settings
from blog_api.core.exceptions import AppException, RateLimitError
from blog_api.core.logging import get_logger
from blog_api.core.security import TokenClaims, decode_access_token
from blog_api.services.cache.constants import KEY_PREFIX_RATE_LIMIT
from blog_api.services.cache.store import KeyValueStore

logger = get_logger(__name__)

KeyGenerator = Callable[[Request], str]


def client_address(request: Request) -> str:
    """Client IP from X-Forwarded-For (first hop) or the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def user_or_address(request: Request) -> str:
    """Authenticated user id, falling back to the client address."""
    claims: TokenClaims | None = getattr(request.state, "user", None)
    if claims is not None:
        return f"user:{claims.user_id}"
    return client_address(request)


def resolve_token_claims(request: Request) -> TokenClaims | None:
    """Decode the bearer token (if any) and remember it on ``request.state``."""
    if hasattr(request.state, "user"):
        return request.state.user

    claims = None
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        claims = decode_access_token(token.strip())
    request.state.user = claims
    return claims


@dataclass(frozen=True)
class RateLimitResult:
    key: str
    limit: int
    remaining: int
    reset_ms: int

    @property
    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_ms),
        }


class RateLimiter:
    """Counts requests per identity in fixed windows.

    Args:
        window_ms: Window length in milliseconds
        max_requests: Requests allowed per identity and window
        key_generator: Maps a request to the identity being limited
        skip_failed_requests: Un-count requests that end in a server error
        clock: Returns the current time in seconds (wall clock by default)
    """

    def __init__(
        self,
        *,
        window_ms: int,
        max_requests: int,
        key_generator: KeyGenerator = client_address,
        skip_failed_requests: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.key_generator = key_generator
        self.skip_failed_requests = skip_failed_requests
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def window_start(self, now_ms: int) -> int:
        return (now_ms // self.window_ms) * self.window_ms

    def make_key(self, identity: str, window_start: int) -> str:
        return f"{KEY_PREFIX_RATE_LIMIT}:{identity}:{window_start}"

    async def hit(self, store: KeyValueStore, identity: str) -> RateLimitResult | None:
        """Count one request for ``identity``.

        Raises:
            RateLimitError: If the identity used up its window

        Returns:
            The counter state, or None when the store could not be used
        """
        now_ms = self._now_ms()
        start = self.window_start(now_ms)
        reset_ms = start + self.window_ms
        key = self.make_key(identity, start)

        try:
            current = await store.get(key)
            count = current if isinstance(current, int) else 0

            if count >= self.max_requests:
                retry_after = max(1, math.ceil((reset_ms - now_ms) / 1000))
                logger.info(
                    "Rate limit exceeded",
                    identity=identity,
                    limit=self.max_requests,
                    retry_after=retry_after,
                )
                raise RateLimitError(
                    retry_after=retry_after,
                    headers=RateLimitResult(key, self.max_requests, 0, reset_ms).headers,
                )

            ttl = max(1, math.ceil((reset_ms - now_ms) / 1000))
            await store.set(key, count + 1, ttl)
        except RateLimitError:
            raise
        except Exception as e:
            logger.error("Rate limit check failed", key=key, error=str(e))
            return None

        return RateLimitResult(
            key=key,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count - 1),
            reset_ms=reset_ms,
        )

    async def release(self, store: KeyValueStore, result: RateLimitResult) -> None:
        """Best-effort decrement of a counted request."""
        try:
            current = await store.get(result.key)
            if isinstance(current, int) and current > 0:
                ttl = max(1, math.ceil((result.reset_ms - self._now_ms()) / 1000))
                await store.set(result.key, current - 1, ttl)
        except Exception as e:
            logger.error("Rate limit release failed", key=result.key, error=str(e))


def _is_server_error(exc: Exception) -> bool:
    if isinstance(exc, AppException | HTTPException):
        return exc.status_code >= 500
    return True


def create_rate_limit_dependency(
    limiter: RateLimiter,
) -> Callable[[Request, Response], AsyncGenerator[None, None]]:
    """Build a FastAPI dependency enforcing ``limiter`` on a route.

    Use as ``dependencies=[Depends(create_rate_limit_dependency(limiter))]``.

    With ``skip_failed_requests`` a request is handed back only when the
    endpoint raises a server error (an unhandled exception, or an
    ``AppException``/``HTTPException`` with a 5xx status). A 5xx ``Response``
    the endpoint returns itself is still counted: the dependency never sees
    the final response.
    """

    async def rate_limit(request: Request, response: Response) -> AsyncGenerator[None, None]:
        services = getattr(request.app.state, "services", None)
        if not get_settings().rate_limit_enabled or services is None:
            yield
            return

        store: KeyValueStore = services.store
        if not store.is_available:
            yield
            return

        resolve_token_claims(request)
        result = await limiter.hit(store, limiter.key_generator(request))
        if result is None:
            yield
            return

        response.headers.update(result.headers)
        try:
            yield
        except Exception as exc:
            if limiter.skip_failed_requests and _is_server_error(exc):
                await limiter.release(store, result)
            raise

    return rate_limit


notification_limiter = RateLimiter(
    window_ms=60_000,
    max_requests=100,
    key_generator=user_or_address,
    skip_failed_requests=True,
)
notification_modify_limiter = RateLimiter(
    window_ms=60_000,
    max_requests=30,
    key_generator=user_or_address,
    skip_failed_requests=True,
)

notification_rate_limit = create_rate_limit_dependency(notification_limiter)
notification_modify_rate_limit = create_rate_limit_dependency(notification_modify_limiter)
