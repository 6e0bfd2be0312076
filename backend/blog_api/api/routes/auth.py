"""Authentication API endpoints."""

import asyncio

from fastapi import APIRouter, status
from sqlalchemy import or_, select

from blog_api.api.deps import CurrentUser, DBSession, Services
from blog_api.api.schemas import TokenResponse, UserCreate, UserLogin, UserResponse
from blog_api.core.config import get_settings
from blog_api.core.exceptions import AuthenticationError, ConflictError
from blog_api.core.logging import get_logger
from blog_api.core.security import create_access_token, get_password_hash, verify_password
from blog_api.db.models import User

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(user: User) -> TokenResponse:
    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(user.id, user.role),
        expires_in=settings.jwt_access_token_expire_days * 24 * 60 * 60,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    responses={
        409: {"description": "Email or username already exists"},
    },
)
async def register(
    user_data: UserCreate,
    db: DBSession,
    services: Services,
) -> TokenResponse:
    """
    Register a new user account.

    - **email**: Valid email address (unique)
    - **username**: 3-50 characters, alphanumeric with _ and - (unique)
    - **password**: 8-100 characters

    Admins are notified of every registration.
    """
    # Start password hashing in parallel (CPU-bound, safe to run concurrently)
    password_hash_task = asyncio.create_task(get_password_hash(user_data.password))

    existing = await db.execute(
        select(User.email).where(
            or_(User.email == user_data.email, User.username == user_data.username)
        )
    )
    taken = existing.scalars().first()
    if taken is not None:
        password_hash_task.cancel()
        raise ConflictError(
            "Email already registered" if taken == user_data.email else "Username already taken"
        )

    user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=await password_hash_task,
    )
    db.add(user)
    await db.flush()
    await services.notifications.notify_user_registered(db, user)
    await db.commit()

    logger.info("User registered", user_id=user.id, username=user.username)
    return _token_response(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
    responses={
        401: {"description": "Invalid credentials"},
    },
)
async def login(
    credentials: UserLogin,
    db: DBSession,
) -> TokenResponse:
    """
    Authenticate user and return JWT token.

    - **email**: Registered email address
    - **password**: User password
    """
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if user is None or not await verify_password(credentials.password, user.hashed_password):
        raise AuthenticationError("Invalid email or password")

    logger.info("User logged in", user_id=user.id, username=user.username)
    return _token_response(user)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user info",
)
async def get_current_user_info(
    current_user: CurrentUser,
) -> UserResponse:
    """Get the currently authenticated user's information."""
    return UserResponse.model_validate(current_user)
