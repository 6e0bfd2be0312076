"""Drop cached responses made stale by a write.

Callers invoke these after the database commit. Failures are logged and
never raised: the write already succeeded and must be reported as such.
"""

from blog_api.core.config import get_settings
from blog_api.core.logging import get_logger
from blog_api.services.cache.constants import KEY_PREFIX_RESPONSE
from blog_api.services.cache.store import KeyValueStore

logger = get_logger(__name__)


class CacheInvalidator:
    def __init__(self, store: KeyValueStore, api_prefix: str | None = None) -> None:
        self.store = store
        self.api_prefix = (
            api_prefix if api_prefix is not None else get_settings().api_prefix
        )

    def _path(self, path: str) -> str:
        return f"{KEY_PREFIX_RESPONSE}:{self.api_prefix}/{path}"

    def _listing_patterns(self, path: str) -> list[str]:
        # "posts" and "posts?..." but not "posts/..."
        base = self._path(path)
        return [base, f"{base}[?]*"]

    def _entry_patterns(self, path: str) -> list[str]:
        # "posts/5", "posts/5?..." and "posts/5/...", never "posts/50"
        base = self._path(path)
        return [base, f"{base}[/?]*"]

    async def _delete(self, patterns: list[str], **context: object) -> int:
        deleted = 0
        for pattern in patterns:
            try:
                deleted += await self.store.delete(pattern)
            except Exception as e:
                logger.warning(
                    "Cache invalidation failed",
                    pattern=pattern,
                    error=str(e),
                    **context,
                )
        logger.debug("Cache invalidated", deleted=deleted, **context)
        return deleted

    async def invalidate_post_cache(self, post_id: int, slug: str | None = None) -> int:
        """Drop post listings and the detail entries of one post."""
        patterns = self._listing_patterns("posts") + self._entry_patterns(f"posts/{post_id}")
        if slug:
            patterns += self._entry_patterns(f"posts/{slug}")
        return await self._delete(patterns, post_id=post_id)

    async def invalidate_comments_cache(self, post_id: int) -> int:
        """Drop the cached comment listings of one post."""
        return await self._delete(
            self._entry_patterns(f"comments/post/{post_id}"),
            post_id=post_id,
        )

    async def invalidate_category_cache(self) -> int:
        """Drop category listings and post listings (filterable by category)."""
        return await self._delete(
            self._listing_patterns("categories") + self._listing_patterns("posts"),
        )
