"""Security utilities for JWT authentication and password hashing.

Uses bcrypt for password hashing and python-jose for JWT.
Hashing runs in the default executor so the event loop stays free.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from blog_api.core.config import get_settings


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by an access token."""

    user_id: int
    role: str


async def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a bcrypt hash."""
    loop = asyncio.get_running_loop()

    def _verify() -> bool:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )

    return await loop.run_in_executor(None, _verify)


async def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    loop = asyncio.get_running_loop()

    def _hash() -> str:
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        return hashed.decode("utf-8")

    return await loop.run_in_executor(None, _hash)


def create_access_token(
    user_id: int,
    role: str = "user",
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT for a user.

    Args:
        user_id: Subject of the token
        role: User role, checked by admin-only routes
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_access_token_expire_days))

    claims: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims | None:
    """Decode and validate a JWT access token.

    Returns:
        Token claims if the token is valid, None otherwise
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None
    return TokenClaims(user_id=user_id, role=str(payload.get("role", "user")))
