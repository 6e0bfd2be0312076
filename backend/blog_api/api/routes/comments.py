"""Comment endpoints."""

from typing import Any

from fastapi import APIRouter, Query, status

from blog_api.api.deps import CurrentUser, DBSession, OptionalUser, Services
from blog_api.api.schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentUpdate,
    ReactionResponse,
    SuccessResponse,
)
from blog_api.db.reactions import TARGET_COMMENT
from blog_api.services.cache import TTL_COMMENT_LIST, CachedRoute, cache_response

router = APIRouter(prefix="/comments", tags=["Comments"], route_class=CachedRoute)


@router.get(
    "/post/{post_id}",
    response_model=CommentListResponse,
    summary="List the comments of a post",
    responses={404: {"description": "Post not found"}},
)
@cache_response(TTL_COMMENT_LIST)
async def list_post_comments(
    post_id: int,
    db: DBSession,
    services: Services,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    parent: int | None = Query(default=None, description="List the replies of this comment"),
) -> dict[str, Any]:
    """Top-level comments with their replies, or the replies of ``parent``."""
    return await services.comments.list_for_post(db, post_id, page, limit, parent)


@router.get("/{comment_id}", response_model=CommentResponse, summary="Get a comment")
async def get_comment(comment_id: int, db: DBSession, services: Services) -> dict[str, Any]:
    return await services.comments.get_comment(db, comment_id)


@router.get(
    "/{comment_id}/reactions",
    response_model=ReactionResponse,
    summary="Reaction sets and the caller's own flags",
)
async def get_comment_reactions(
    comment_id: int,
    current_user: OptionalUser,
    db: DBSession,
    services: Services,
) -> dict[str, Any]:
    await services.comments.get_comment(db, comment_id)
    state = await services.reactions.get_reaction_state(
        db, TARGET_COMMENT, comment_id, current_user.id if current_user else None
    )
    return state.to_dict()


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a post or reply to a comment",
)
async def create_comment(
    data: CommentCreate,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> dict[str, Any]:
    return await services.comments.create_comment(
        db, current_user, data.post_id, data.content, data.parent_id
    )


@router.put(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Edit a comment (author or admin)",
)
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> dict[str, Any]:
    return await services.comments.update_comment(db, comment_id, current_user, data.content)


@router.delete(
    "/{comment_id}",
    response_model=SuccessResponse,
    summary="Delete a comment and its replies (author or admin)",
)
async def delete_comment(
    comment_id: int,
    current_user: CurrentUser,
    db: DBSession,
    services: Services,
) -> SuccessResponse:
    await services.comments.delete_comment(db, comment_id, current_user)
    return SuccessResponse(message="Comment deleted")


@router.post("/{comment_id}/like", response_model=ReactionResponse, summary="Toggle like")
async def like_comment(
    comment_id: int, current_user: CurrentUser, db: DBSession, services: Services
) -> dict[str, Any]:
    state = await services.reactions.like(db, TARGET_COMMENT, comment_id, current_user.id)
    return state.to_dict()


@router.post("/{comment_id}/unlike", response_model=ReactionResponse, summary="Remove like")
async def unlike_comment(
    comment_id: int, current_user: CurrentUser, db: DBSession, services: Services
) -> dict[str, Any]:
    state = await services.reactions.unlike(db, TARGET_COMMENT, comment_id, current_user.id)
    return state.to_dict()


@router.post("/{comment_id}/dislike", response_model=ReactionResponse, summary="Toggle dislike")
async def dislike_comment(
    comment_id: int, current_user: CurrentUser, db: DBSession, services: Services
) -> dict[str, Any]:
    state = await services.reactions.dislike(db, TARGET_COMMENT, comment_id, current_user.id)
    return state.to_dict()


@router.post(
    "/{comment_id}/undislike", response_model=ReactionResponse, summary="Remove dislike"
)
async def undislike_comment(
    comment_id: int, current_user: CurrentUser, db: DBSession, services: Services
) -> dict[str, Any]:
    state = await services.reactions.undislike(db, TARGET_COMMENT, comment_id, current_user.id)
    return state.to_dict()
