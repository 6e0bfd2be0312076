"""User accounts: profile, admin listing, roles and deletion.

Posts and comments embed their author's username, and reaction counts are
part of every cached post and comment page, so renaming or deleting a user
drops the cached pages those changes show up on.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from blog_api.core.logging import get_logger
from blog_api.db import reactions as reaction_store
from blog_api.db.models import Comment, Post, Reaction, User
from blog_api.services.cache.invalidation import CacheInvalidator

logger = get_logger(__name__)

USER_ROLES = ("user", "admin")


@dataclass
class StalePages:
    """Cached pages to drop once a user change is committed."""

    posts: dict[int, str] = field(default_factory=dict)  # id -> slug
    comment_lists: set[int] = field(default_factory=set)  # post ids


async def _ids(db: AsyncSession, stmt) -> set[int]:
    return set((await db.execute(stmt)).scalars().all())


class UserService:
    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def list_users(
        self,
        db: AsyncSession,
        *,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
    ) -> dict[str, Any]:
        """Newest accounts first, optionally filtered by username or email."""
        filters = []
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            filters.append(or_(User.username.ilike(pattern), User.email.ilike(pattern)))

        total = (
            await db.execute(select(func.count(User.id)).where(*filters))
        ).scalar_one()
        result = await db.execute(
            select(User)
            .where(*filters)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return {
            "users": list(result.scalars().all()),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        }

    async def get_user(self, db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User")
        return user

    def check_self_or_admin(self, user_id: int, current: User, action: str) -> None:
        if current.id != user_id and not current.is_admin:
            raise AuthorizationError(f"You can only {action} your own account")

    async def _is_last_admin(self, db: AsyncSession, user: User) -> bool:
        if not user.is_admin:
            return False
        admins = (
            await db.execute(select(func.count(User.id)).where(User.role == "admin"))
        ).scalar_one()
        return admins <= 1

    async def _with_slugs(self, db: AsyncSession, post_ids: set[int]) -> dict[int, str]:
        if not post_ids:
            return {}
        result = await db.execute(
            select(Post.id, Post.slug).where(Post.id.in_(sorted(post_ids)))
        )
        return {row[0]: row[1] for row in result.all()}

    async def _invalidate(self, stale: StalePages) -> None:
        for post_id, slug in sorted(stale.posts.items()):
            await self.invalidator.invalidate_post_cache(post_id, slug)
        for post_id in sorted(stale.comment_lists):
            await self.invalidator.invalidate_comments_cache(post_id)

    async def update_user(
        self,
        db: AsyncSession,
        user_id: int,
        current: User,
        data: dict[str, Any],
    ) -> User:
        """Change email and/or username. Keys absent from ``data`` are kept."""
        self.check_self_or_admin(user_id, current, "update")
        user = await self.get_user(db, user_id)

        email = data.get("email")
        if email and email != user.email:
            taken = await db.execute(
                select(User.id).where(User.email == email, User.id != user_id)
            )
            if taken.first() is not None:
                raise ConflictError("Email already registered")
            user.email = email

        username = data.get("username")
        stale = StalePages()
        if username and username != user.username:
            taken = await db.execute(
                select(User.id).where(User.username == username, User.id != user_id)
            )
            if taken.first() is not None:
                raise ConflictError("Username already taken")
            user.username = username
            stale.posts = await self._with_slugs(
                db, await _ids(db, select(Post.id).where(Post.author_id == user_id))
            )
            stale.comment_lists = await _ids(
                db, select(Comment.post_id).where(Comment.author_id == user_id)
            )

        await db.commit()
        await db.refresh(user)
        logger.info("User updated", user_id=user_id, updated_by=current.id)

        await self._invalidate(stale)
        return user

    async def change_role(self, db: AsyncSession, user_id: int, role: str) -> User:
        if role not in USER_ROLES:
            raise InvalidStateError(f"Unknown role: {role}")
        user = await self.get_user(db, user_id)
        if role != "admin" and await self._is_last_admin(db, user):
            raise InvalidStateError("Cannot demote the last administrator")

        user.role = role
        await db.commit()
        await db.refresh(user)
        logger.info("User role changed", user_id=user_id, role=role)
        return user

    async def delete_user(self, db: AsyncSession, user_id: int, current: User) -> None:
        """Delete an account with its posts, comments and reactions."""
        self.check_self_or_admin(user_id, current, "delete")
        user = await self.get_user(db, user_id)
        if await self._is_last_admin(db, user):
            raise InvalidStateError("Cannot delete the last administrator")

        post_ids = await _ids(db, select(Post.id).where(Post.author_id == user_id))
        # the user's comments, replies to them and every comment under their posts
        own_comments = await _ids(db, select(Comment.id).where(Comment.author_id == user_id))
        comment_ids = own_comments | await _ids(
            db,
            select(Comment.id).where(
                or_(
                    Comment.parent_id.in_(sorted(own_comments)),
                    Comment.post_id.in_(sorted(post_ids)),
                )
            ),
        )
        commented = await _ids(
            db, select(Comment.post_id).where(Comment.id.in_(sorted(comment_ids)))
        )
        reacted_posts = await _ids(
            db,
            select(Reaction.target_id).where(
                Reaction.user_id == user_id,
                Reaction.target_type == reaction_store.TARGET_POST,
            ),
        )
        reacted_comments = await _ids(
            db,
            select(Reaction.target_id).where(
                Reaction.user_id == user_id,
                Reaction.target_type == reaction_store.TARGET_COMMENT,
            ),
        )
        stale = StalePages(
            posts=await self._with_slugs(db, post_ids | commented | reacted_posts),
            comment_lists=commented | await _ids(
                db, select(Comment.post_id).where(Comment.id.in_(sorted(reacted_comments)))
            ),
        )

        await db.execute(delete(Reaction).where(Reaction.user_id == user_id))
        await reaction_store.delete_reactions(
            db, reaction_store.TARGET_COMMENT, sorted(comment_ids)
        )
        await reaction_store.delete_reactions(db, reaction_store.TARGET_POST, sorted(post_ids))
        # replies first: they reference their parent comment
        await db.execute(
            delete(Comment).where(
                Comment.id.in_(sorted(comment_ids)), Comment.parent_id.is_not(None)
            )
        )
        await db.execute(delete(Comment).where(Comment.id.in_(sorted(comment_ids))))
        await db.execute(delete(Post).where(Post.author_id == user_id))
        await db.delete(user)
        await db.commit()
        logger.info(
            "User deleted",
            user_id=user_id,
            deleted_by=current.id,
            posts=len(post_ids),
            comments=len(comment_ids),
        )

        await self._invalidate(stale)
