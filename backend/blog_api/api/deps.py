"""API dependencies for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.core.exceptions import AuthenticationError, AuthorizationError
from blog_api.core.security import decode_access_token
from blog_api.db.models import User
from blog_api.db.session import get_db
from blog_api.services.container import ServiceContainer

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ServiceContainer:
    """The container attached to the application at startup."""
    return request.app.state.services


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        AuthenticationError: If the token is missing, invalid, or its user is gone
    """
    if not credentials:
        raise AuthenticationError("Authentication required")

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise AuthenticationError("Invalid or expired token")

    user = await db.get(User, claims.user_id)
    if user is None:
        raise AuthenticationError("User not found")

    # Shared with the rate limiter's key generator
    request.state.user = claims
    return user


async def get_optional_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Get the current user if authenticated, None otherwise."""
    if not credentials:
        return None

    try:
        return await get_current_user(request, credentials, db)
    except AuthenticationError:
        return None


async def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get the current user, requiring the admin role.

    Raises:
        AuthorizationError: If the user is not an admin
    """
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user


# Type aliases for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
AdminUser = Annotated[User, Depends(require_admin)]
DBSession = Annotated[AsyncSession, Depends(get_db)]
Services = Annotated[ServiceContainer, Depends(get_services)]
