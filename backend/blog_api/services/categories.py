"""Post categories.

Post listings and post detail pages embed the category name and slug, so
renaming or deleting a category drops the cached pages of every post filed
under it as well as the category listings.
"""

from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.core.exceptions import ConflictError, NotFoundError
from blog_api.core.logging import get_logger
from blog_api.db.models import Category, Post
from blog_api.services.cache.invalidation import CacheInvalidator
from blog_api.services.posts import slugify

logger = get_logger(__name__)


def serialize_category(category: Category, post_count: int = 0) -> dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "post_count": post_count,
        "created_at": category.created_at,
    }


def _published_counts():
    return (
        select(Post.category_id, func.count(Post.id).label("n"))
        .where(Post.status == "published")
        .group_by(Post.category_id)
        .subquery()
    )


class CategoryService:
    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def list_categories(self, db: AsyncSession) -> list[dict[str, Any]]:
        """All categories by name, with their published post counts."""
        published = _published_counts()
        result = await db.execute(
            select(Category, func.coalesce(published.c.n, 0))
            .outerjoin(published, published.c.category_id == Category.id)
            .order_by(Category.name)
        )
        return [serialize_category(row[0], row[1]) for row in result.all()]

    async def get_category(self, db: AsyncSession, id_or_slug: int | str) -> dict[str, Any]:
        """One category by numeric id or slug, with its published post count."""
        category = None
        if isinstance(id_or_slug, int) or str(id_or_slug).isdigit():
            category = await db.get(Category, int(id_or_slug))
        if category is None:
            result = await db.execute(select(Category).where(Category.slug == str(id_or_slug)))
            category = result.scalar_one_or_none()
        if category is None:
            raise NotFoundError("Category")

        count = (
            await db.execute(
                select(func.count(Post.id)).where(
                    Post.category_id == category.id, Post.status == "published"
                )
            )
        ).scalar_one()
        return serialize_category(category, count)

    async def _check_unique(
        self, db: AsyncSession, name: str, slug: str, exclude_id: int | None = None
    ) -> None:
        query = select(Category.id).where(or_(Category.name == name, Category.slug == slug))
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictError("Category already exists")

    async def _filed_posts(self, db: AsyncSession, category_id: int) -> list[tuple[int, str]]:
        result = await db.execute(
            select(Post.id, Post.slug).where(Post.category_id == category_id)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def _invalidate(self, posts: list[tuple[int, str]]) -> None:
        await self.invalidator.invalidate_category_cache()
        for post_id, slug in posts:
            await self.invalidator.invalidate_post_cache(post_id, slug)

    async def create_category(
        self,
        db: AsyncSession,
        name: str,
        description: str | None = None,
    ) -> dict[str, Any]:
        name = name.strip()
        slug = slugify(name)
        await self._check_unique(db, name, slug)

        category = Category(name=name, slug=slug, description=description)
        db.add(category)
        await db.commit()
        logger.info("Category created", category_id=category.id, slug=slug)

        await self.invalidator.invalidate_category_cache()
        return serialize_category(category)

    async def update_category(
        self,
        db: AsyncSession,
        category_id: int,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        """Rename and/or redescribe a category. Keys absent from ``data`` are kept."""
        category = await db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category")

        if data.get("name"):
            name = data["name"].strip()
            slug = slugify(name)
            if name != category.name:
                await self._check_unique(db, name, slug, exclude_id=category_id)
                category.name = name
                category.slug = slug
        if "description" in data:
            category.description = data["description"]

        posts = await self._filed_posts(db, category_id)
        await db.commit()
        await db.refresh(category)
        logger.info("Category updated", category_id=category_id, posts=len(posts))

        await self._invalidate(posts)
        return await self.get_category(db, category_id)

    async def delete_category(self, db: AsyncSession, category_id: int) -> None:
        category = await db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category")

        posts = await self._filed_posts(db, category_id)
        await db.execute(
            update(Post).where(Post.category_id == category_id).values(category_id=None)
        )
        await db.delete(category)
        await db.commit()
        logger.info("Category deleted", category_id=category_id, posts=len(posts))

        await self._invalidate(posts)
