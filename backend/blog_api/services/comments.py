"""Comments and one level of replies."""

import math
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from blog_api.core.logging import get_logger
from blog_api.db import reactions as reaction_store
from blog_api.db.models import Comment, Post, User
from blog_api.services.cache.invalidation import CacheInvalidator
from blog_api.services.posts import serialize_author
from blog_api.services.reactions import build_state

logger = get_logger(__name__)


class CommentService:
    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def _serialize(
        self,
        db: AsyncSession,
        comments: list[Comment],
        replies: dict[int, list[Comment]] | None = None,
    ) -> list[dict[str, Any]]:
        replies = replies or {}
        every = comments + [r for group in replies.values() for r in group]
        sets = await reaction_store.get_reaction_sets_bulk(
            db, reaction_store.TARGET_COMMENT, [c.id for c in every]
        )

        def _one(comment: Comment) -> dict[str, Any]:
            item = {
                "id": comment.id,
                "content": comment.content,
                "post_id": comment.post_id,
                "parent_id": comment.parent_id,
                "author": serialize_author(comment.author),
                "created_at": comment.created_at,
                "updated_at": comment.updated_at,
            }
            item.update(build_state(sets[comment.id]).to_dict())
            item["replies"] = [_one(r) for r in replies.get(comment.id, [])]
            return item

        return [_one(c) for c in comments]

    async def _get_post(self, db: AsyncSession, post_id: int) -> Post:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post")
        return post

    async def _get(self, db: AsyncSession, comment_id: int) -> Comment:
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError("Comment")
        return comment

    async def list_for_post(
        self,
        db: AsyncSession,
        post_id: int,
        page: int = 1,
        limit: int = 10,
        parent_id: int | None = None,
    ) -> dict[str, Any]:
        """Top-level comments with their replies, oldest first.

        With ``parent_id``, lists the replies of that comment instead.
        """
        await self._get_post(db, post_id)

        filters = [Comment.post_id == post_id]
        filters.append(
            Comment.parent_id == parent_id if parent_id is not None else Comment.parent_id.is_(None)
        )

        total = (await db.execute(select(func.count(Comment.id)).where(*filters))).scalar_one()
        result = await db.execute(
            select(Comment)
            .where(*filters)
            .order_by(Comment.created_at, Comment.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        comments = list(result.scalars().unique().all())

        replies: dict[int, list[Comment]] = {}
        if parent_id is None and comments:
            reply_result = await db.execute(
                select(Comment)
                .where(Comment.parent_id.in_([c.id for c in comments]))
                .order_by(Comment.created_at, Comment.id)
            )
            for reply in reply_result.scalars().unique().all():
                replies.setdefault(reply.parent_id, []).append(reply)  # type: ignore[arg-type]

        return {
            "comments": await self._serialize(db, comments, replies),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        }

    async def get_comment(self, db: AsyncSession, comment_id: int) -> dict[str, Any]:
        comment = await self._get(db, comment_id)
        return (await self._serialize(db, [comment]))[0]

    async def _after_write(self, post: Post) -> None:
        await self.invalidator.invalidate_comments_cache(post.id)
        await self.invalidator.invalidate_post_cache(post.id, post.slug)

    async def _reload(self, db: AsyncSession, comment_id: int) -> Comment:
        result = await db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().unique().one()

    async def create_comment(
        self,
        db: AsyncSession,
        user: User,
        post_id: int,
        content: str,
        parent_id: int | None = None,
    ) -> dict[str, Any]:
        post = await self._get_post(db, post_id)

        if parent_id is not None:
            parent = await db.get(Comment, parent_id)
            if parent is None or parent.post_id != post_id:
                raise ValidationError("Parent comment not found on this post")
            # Replies attach to the top-level comment
            parent_id = parent.parent_id or parent.id

        comment = Comment(
            content=content.strip(),
            post_id=post_id,
            author_id=user.id,
            parent_id=parent_id,
        )
        db.add(comment)
        await db.commit()
        comment = await self._reload(db, comment.id)
        logger.info("Comment created", comment_id=comment.id, post_id=post_id)

        await self._after_write(post)
        return (await self._serialize(db, [comment]))[0]

    async def _get_owned(self, db: AsyncSession, comment_id: int, user: User) -> Comment:
        comment = await self._get(db, comment_id)
        if comment.author_id != user.id and not user.is_admin:
            raise AuthorizationError("You can only modify your own comments")
        return comment

    async def update_comment(
        self,
        db: AsyncSession,
        comment_id: int,
        user: User,
        content: str,
    ) -> dict[str, Any]:
        comment = await self._get_owned(db, comment_id, user)
        comment.content = content.strip()
        await db.commit()
        comment = await self._reload(db, comment.id)
        logger.info("Comment updated", comment_id=comment_id)

        await self._after_write(await self._get_post(db, comment.post_id))
        return (await self._serialize(db, [comment]))[0]

    async def delete_comment(self, db: AsyncSession, comment_id: int, user: User) -> None:
        comment = await self._get_owned(db, comment_id, user)
        post = await self._get_post(db, comment.post_id)

        reply_ids = list(
            (await db.execute(select(Comment.id).where(Comment.parent_id == comment_id)))
            .scalars()
            .all()
        )
        await reaction_store.delete_reactions(
            db, reaction_store.TARGET_COMMENT, [comment_id, *reply_ids]
        )
        await db.execute(delete(Comment).where(Comment.parent_id == comment_id))
        await db.delete(comment)
        await db.commit()
        logger.info("Comment deleted", comment_id=comment_id, replies=len(reply_ids))

        await self._after_write(post)
