"""User account endpoints: own profile, and account administration."""

from fastapi import APIRouter, Query

from blog_api.api.deps import AdminUser, CurrentUser, DBSession, Services
from blog_api.api.schemas import (
    SuccessResponse,
    UserListResponse,
    UserResponse,
    UserRoleUpdate,
    UserUpdate,
)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=UserResponse, summary="Own profile")
async def get_profile(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update own profile",
    responses={409: {"description": "Email or username already taken"}},
)
async def update_profile(
    data: UserUpdate,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> UserResponse:
    user = await services.users.update_user(
        db, current_user.id, current_user, data.model_dump(exclude_unset=True)
    )
    return UserResponse.model_validate(user)


@router.delete(
    "/delete-account",
    response_model=SuccessResponse,
    summary="Delete own account",
    responses={400: {"description": "Last administrator"}},
)
async def delete_account(
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> SuccessResponse:
    """Deletes the account together with its posts, comments and reactions."""
    await services.users.delete_user(db, current_user.id, current_user)
    return SuccessResponse(message="Account deleted")


@router.get("", response_model=UserListResponse, summary="List users (admin)")
async def list_users(
    admin: AdminUser,
    db: DBSession,
    services: Services,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None, max_length=100),
) -> UserListResponse:
    """
    Newest accounts first.

    - **search**: case-insensitive match on username or email
    """
    result = await services.users.list_users(db, page=page, limit=limit, search=search)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in result["users"]],
        pagination=result["pagination"],
    )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user (self or admin)",
    responses={404: {"description": "User not found"}},
)
async def get_user(
    user_id: int,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> UserResponse:
    services.users.check_self_or_admin(user_id, current_user, "view")
    return UserResponse.model_validate(await services.users.get_user(db, user_id))


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update a user (self or admin)",
    responses={409: {"description": "Email or username already taken"}},
)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> UserResponse:
    user = await services.users.update_user(
        db, user_id, current_user, data.model_dump(exclude_unset=True)
    )
    return UserResponse.model_validate(user)


@router.delete(
    "/{user_id}",
    response_model=SuccessResponse,
    summary="Delete a user (self or admin)",
    responses={400: {"description": "Last administrator"}},
)
async def delete_user(
    user_id: int,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> SuccessResponse:
    await services.users.delete_user(db, user_id, current_user)
    return SuccessResponse(message="User deleted")


@router.patch(
    "/{user_id}/role",
    response_model=UserResponse,
    summary="Change a user's role (admin)",
    responses={400: {"description": "Last administrator"}},
)
async def change_role(
    user_id: int,
    data: UserRoleUpdate,
    admin: AdminUser,
    db: DBSession,
    services: Services,
) -> UserResponse:
    user = await services.users.change_role(db, user_id, data.role)
    return UserResponse.model_validate(user)
