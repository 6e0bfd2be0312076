"""Configuration, logging, security and error types shared by the API and services."""

from blog_api.core.config import Settings, get_settings
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
)
from blog_api.core.logging import bind_request_context, get_logger, setup_logging
from blog_api.core.security import (
    TokenClaims,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from blog_api.core.tasks import start_periodic_task

__all__ = [
    "Settings",
    "get_settings",
    "bind_request_context",
    "get_logger",
    "setup_logging",
    "start_periodic_task",
    "TokenClaims",
    "create_access_token",
    "decode_access_token",
    "get_password_hash",
    "verify_password",
    "AppException",
    "AssistantProviderError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "InvalidStateError",
    "NotFoundError",
    "RateLimitError",
    "ServiceUnavailableError",
    "ValidationError",
]
