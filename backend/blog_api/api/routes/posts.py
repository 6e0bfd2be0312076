"""Blog post endpoints.

Listing and detail responses are cached; every write drops the cached
listings and that post's detail entries.
"""

from typing import Any

from fastapi import APIRouter, Query, status

from blog_api.api.deps import CurrentUser, DBSession, Services
from blog_api.api.schemas import (
    PostCreate,
    PostListResponse,
    PostResponse,
    PostUpdate,
    ReactionResponse,
    SuccessResponse,
)
from blog_api.db.reactions import TARGET_POST
from blog_api.services.cache import TTL_POST_DETAIL, TTL_POST_LIST, CachedRoute, cache_response

router = APIRouter(prefix="/posts", tags=["Posts"], route_class=CachedRoute)


@router.get(
    "",
    response_model=PostListResponse,
    summary="List published posts",
)
@cache_response(TTL_POST_LIST)
async def list_posts(
    db: DBSession,
    services: Services,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    category: str | None = Query(default=None, description="Category slug or id"),
    search: str | None = Query(default=None, max_length=100),
) -> dict[str, Any]:
    return await services.posts.list_posts(db, page, limit, category, search)


@router.get(
    "/{id_or_slug}",
    response_model=PostResponse,
    summary="Get a published post by id or slug",
    responses={404: {"description": "Post not found"}},
)
@cache_response(TTL_POST_DETAIL)
async def get_post(id_or_slug: str, db: DBSession, services: Services) -> dict[str, Any]:
    return await services.posts.get_post(db, id_or_slug)


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a post",
)
async def create_post(
    data: PostCreate,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> dict[str, Any]:
    """Publishing (``status: published``) notifies the admins."""
    return await services.posts.create_post(db, current_user, data.model_dump())


@router.put(
    "/{post_id}",
    response_model=PostResponse,
    summary="Update a post (author or admin)",
    responses={403: {"description": "Not the author"}, 404: {"description": "Post not found"}},
)
async def update_post(
    post_id: int,
    data: PostUpdate,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> dict[str, Any]:
    return await services.posts.update_post(
        db, post_id, current_user, data.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{post_id}",
    response_model=SuccessResponse,
    summary="Delete a post and its comments (author or admin)",
)
async def delete_post(
    post_id: int,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> SuccessResponse:
    await services.posts.delete_post(db, post_id, current_user)
    return SuccessResponse(message="Post deleted")


@router.post("/{post_id}/like", response_model=ReactionResponse, summary="Toggle like")
async def like_post(
    post_id: int, current_user: CurrentUser, db: DBSession, services: Services
) -> dict[str, Any]:
    state = await services.reactions.like(db, TARGET_POST, post_id, current_user.id)
    return state.to_dict()


@router.post("/{post_id}/unlike", response_model=ReactionResponse, summary="Remove like")
async def unlike_post(
    post_id: int, current_user: CurrentUser, db: DBSession, services: Services
) -> dict[str, Any]:
    state = await services.reactions.unlike(db, TARGET_POST, post_id, current_user.id)
    return state.to_dict()


@router.post("/{post_id}/dislike", response_model=ReactionResponse, summary="Toggle dislike")
async def dislike_post(
    post_id: int, current_user: CurrentUser, db: DBSession, services: Services
) -> dict[str, Any]:
    state = await services.reactions.dislike(db, TARGET_POST, post_id, current_user.id)
    return state.to_dict()


@router.post("/{post_id}/undislike", response_model=ReactionResponse, summary="Remove dislike")
async def undislike_post(
    post_id: int, current_user: CurrentUser, db: DBSession, services: Services
) -> dict[str, Any]:
    state = await services.reactions.undislike(db, TARGET_POST, post_id, current_user.id)
    return state.to_dict()
