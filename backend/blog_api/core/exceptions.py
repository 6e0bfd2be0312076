"""Application errors and the handlers that render them.

Every error leaves the API in one envelope::

    {"error": {"message": "...", "details": {...}}}

Handlers run outside ``CORSMiddleware`` for unhandled exceptions, so CORS
headers are added here as well for allowed origins.
"""

from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from blog_api.core.logging import get_logger

logger = get_logger(__name__)

_EXPOSED_HEADERS = (
    "Retry-After, X-RateLimit-Limit, X-RateLimit-Remaining, X-RateLimit-Reset, X-Request-ID"
)


def _cors_headers(request: Request) -> dict[str, str]:
    origin = request.headers.get("origin", "")
    if not origin:
        return {}

    from blog_api.core.config import get_settings

    allowed = get_settings().cors_origins
    if origin not in allowed and "*" not in allowed:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Expose-Headers": _EXPOSED_HEADERS,
    }


def _error_response(
    request: Request,
    status_code: int,
    message: Any,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {"message": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(
        status_code=status_code,
        content={"error": body},
        headers={**(headers or {}), **_cors_headers(request)},
    )


class AppException(Exception):
    """Base application exception carrying an HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(message)


class AuthenticationError(AppException):
    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message,
            status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(AppException):
    """Post, comment, category or notification missing."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found", status.HTTP_404_NOT_FOUND)


class ConflictError(AppException):
    """Duplicate email, username, slug or category name."""

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, status.HTTP_409_CONFLICT)


class ValidationError(AppException):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)


class InvalidStateError(AppException):
    """Operation not allowed in the resource's current state.

    Removing a like that was never given is the typical case.
    """

    def __init__(self, message: str):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class RateLimitError(AppException):
    """Fixed-window budget exhausted; ``retry_after`` is in whole seconds."""

    def __init__(self, retry_after: int = 60, headers: dict[str, str] | None = None):
        super().__init__(
            "Too many requests. Please try again later.",
            status.HTTP_429_TOO_MANY_REQUESTS,
            {"retry_after": retry_after},
            headers={"Retry-After": str(retry_after), **(headers or {})},
        )


class AssistantProviderError(AppException):
    """Every configured chat-completion model failed."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(
            f"Assistant provider error: {message}",
            status.HTTP_502_BAD_GATEWAY,
            {"model": model} if model else None,
        )


class ServiceUnavailableError(AppException):
    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        status_code=exc.status_code,
        error=exc.message,
        details=exc.details,
        path=str(request.url),
    )
    return _error_response(request, exc.status_code, exc.message, exc.details, exc.headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render Starlette/FastAPI HTTP errors (404 routes, 405 methods) in the envelope."""
    logger.info("HTTP error", status_code=exc.status_code, detail=exc.detail, path=str(request.url))
    return _error_response(request, exc.status_code, exc.detail, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url))
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An internal error occurred. Please try again later.",
    )
