"""Blog post queries and mutations."""

import math
import re
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from blog_api.core.logging import get_logger
from blog_api.db import reactions as reaction_store
from blog_api.db.models import Category, Comment, Post, User
from blog_api.services.cache.invalidation import CacheInvalidator
from blog_api.services.notifications import NotificationService
from blog_api.services.reactions import build_state

logger = get_logger(__name__)

POST_STATUSES = ("draft", "published", "archived")

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    slug = _SLUG_STRIP.sub("-", text.lower()).strip("-")
    return slug or "post"


def serialize_author(user: User) -> dict[str, Any]:
    return {"id": user.id, "username": user.username}


class PostService:
    def __init__(
        self,
        invalidator: CacheInvalidator,
        notifications: NotificationService,
    ) -> None:
        self.invalidator = invalidator
        self.notifications = notifications

    async def _unique_slug(
        self, db: AsyncSession, title: str, exclude_id: int | None = None
    ) -> str:
        base = slugify(title)
        stmt = select(Post.slug).where(or_(Post.slug == base, Post.slug.like(f"{base}-%")))
        if exclude_id is not None:
            stmt = stmt.where(Post.id != exclude_id)
        taken = set((await db.execute(stmt)).scalars().all())

        slug, n = base, 1
        while slug in taken:
            n += 1
            slug = f"{base}-{n}"
        return slug

    async def _serialize(
        self,
        db: AsyncSession,
        posts: list[Post],
        user_id: int | None = None,
    ) -> list[dict[str, Any]]:
        ids = [p.id for p in posts]
        sets = await reaction_store.get_reaction_sets_bulk(db, reaction_store.TARGET_POST, ids)

        comment_counts: dict[int, int] = {}
        if ids:
            result = await db.execute(
                select(Comment.post_id, func.count(Comment.id))
                .where(Comment.post_id.in_(ids))
                .group_by(Comment.post_id)
            )
            comment_counts = {post_id: count for post_id, count in result.all()}

        items = []
        for post in posts:
            item = {
                "id": post.id,
                "title": post.title,
                "slug": post.slug,
                "content": post.content,
                "excerpt": post.excerpt,
                "status": post.status,
                "author": serialize_author(post.author),
                "category": (
                    {
                        "id": post.category.id,
                        "name": post.category.name,
                        "slug": post.category.slug,
                    }
                    if post.category
                    else None
                ),
                "created_at": post.created_at,
                "updated_at": post.updated_at,
                "published_at": post.published_at,
                "comment_count": comment_counts.get(post.id, 0),
            }
            item.update(build_state(sets[post.id], user_id).to_dict())
            items.append(item)
        return items

    async def list_posts(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        category: str | None = None,
        search: str | None = None,
    ) -> dict[str, Any]:
        """Published posts, newest first.

        ``category`` matches a category slug or numeric id; ``search`` matches
        title or content, case-insensitively.
        """
        filters = [Post.status == "published"]
        if category:
            cat_filter = Category.slug == category
            if category.isdigit():
                cat_filter = or_(cat_filter, Category.id == int(category))
            cat_ids = select(Category.id).where(cat_filter)
            filters.append(Post.category_id.in_(cat_ids))
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(Post.title.ilike(pattern), Post.content.ilike(pattern)))

        total = (
            await db.execute(select(func.count(Post.id)).where(*filters))
        ).scalar_one()

        result = await db.execute(
            select(Post)
            .where(*filters)
            .order_by(Post.published_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        posts = list(result.scalars().unique().all())

        return {
            "posts": await self._serialize(db, posts),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        }

    async def _find(self, db: AsyncSession, id_or_slug: int | str) -> Post | None:
        if isinstance(id_or_slug, int) or str(id_or_slug).isdigit():
            post = await db.get(Post, int(id_or_slug))
            if post is not None:
                return post
        result = await db.execute(select(Post).where(Post.slug == str(id_or_slug)))
        return result.scalars().unique().one_or_none()

    async def get_post(
        self,
        db: AsyncSession,
        id_or_slug: int | str,
        *,
        published_only: bool = True,
    ) -> dict[str, Any]:
        post = await self._find(db, id_or_slug)
        if post is None or (published_only and post.status != "published"):
            raise NotFoundError("Post")
        return (await self._serialize(db, [post]))[0]

    async def _reload(self, db: AsyncSession, post_id: int) -> Post:
        result = await db.execute(
            select(Post)
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().unique().one()

    async def _get_owned(self, db: AsyncSession, post_id: int, user: User) -> Post:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post")
        if post.author_id != user.id and not user.is_admin:
            raise AuthorizationError("You can only modify your own posts")
        return post

    async def _check_category(self, db: AsyncSession, category_id: int | None) -> None:
        if category_id is not None and await db.get(Category, category_id) is None:
            raise ValidationError("Unknown category", {"category_id": category_id})

    async def create_post(
        self, db: AsyncSession, author: User, data: dict[str, Any]
    ) -> dict[str, Any]:
        await self._check_category(db, data.get("category_id"))

        status = data.get("status") or "draft"
        post = Post(
            title=data["title"],
            slug=await self._unique_slug(db, data["title"]),
            content=data["content"],
            excerpt=data.get("excerpt"),
            status=status,
            author_id=author.id,
            category_id=data.get("category_id"),
            published_at=datetime.now(timezone.utc) if status == "published" else None,
        )
        db.add(post)
        await db.flush()

        if status == "published":
            await self.notifications.notify_post_published(db, post, author)

        await db.commit()
        post = await self._reload(db, post.id)
        logger.info("Post created", post_id=post.id, status=status, author_id=author.id)

        await self.invalidator.invalidate_post_cache(post.id, post.slug)
        return (await self._serialize(db, [post]))[0]

    async def update_post(
        self,
        db: AsyncSession,
        post_id: int,
        user: User,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        post = await self._get_owned(db, post_id, user)
        old_slug = post.slug
        was_published = post.status == "published"

        if "category_id" in data:
            await self._check_category(db, data["category_id"])
            post.category_id = data["category_id"]
        if data.get("title") and data["title"] != post.title:
            post.title = data["title"]
            post.slug = await self._unique_slug(db, data["title"], exclude_id=post.id)
        if data.get("content") is not None:
            post.content = data["content"]
        if "excerpt" in data:
            post.excerpt = data["excerpt"]
        if data.get("status"):
            post.status = data["status"]

        publishing = post.status == "published" and not was_published
        if publishing:
            post.published_at = datetime.now(timezone.utc)
            await self.notifications.notify_post_published(db, post, user)

        await db.commit()
        post = await self._reload(db, post.id)
        logger.info("Post updated", post_id=post.id, status=post.status)

        await self.invalidator.invalidate_post_cache(post.id, old_slug)
        if post.slug != old_slug:
            await self.invalidator.invalidate_post_cache(post.id, post.slug)
        return (await self._serialize(db, [post]))[0]

    async def delete_post(self, db: AsyncSession, post_id: int, user: User) -> None:
        post = await self._get_owned(db, post_id, user)
        slug = post.slug

        comment_ids = list(
            (await db.execute(select(Comment.id).where(Comment.post_id == post_id)))
            .scalars()
            .all()
        )
        await reaction_store.delete_reactions(db, reaction_store.TARGET_COMMENT, comment_ids)
        await reaction_store.delete_reactions(db, reaction_store.TARGET_POST, [post_id])
        await db.execute(delete(Comment).where(Comment.post_id == post_id))
        await db.delete(post)
        await db.commit()
        logger.info("Post deleted", post_id=post_id, user_id=user.id)

        await self.invalidator.invalidate_post_cache(post_id, slug)
        await self.invalidator.invalidate_comments_cache(post_id)
