"""Like/dislike toggles on posts and comments.

Per (entity, user) the state is NONE, LIKED or DISLIKED:

- like:     NONE -> LIKED, LIKED -> NONE, DISLIKED -> LIKED
- dislike:  NONE -> DISLIKED, DISLIKED -> NONE, LIKED -> DISLIKED
- unlike:   LIKED -> NONE, anything else is an InvalidStateError
- undislike: DISLIKED -> NONE, anything else is an InvalidStateError
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.core.exceptions import InvalidStateError, NotFoundError
from blog_api.core.logging import get_logger
from blog_api.db import reactions as store
from blog_api.db.models import Comment, Post
from blog_api.services.cache.invalidation import CacheInvalidator

logger = get_logger(__name__)

_TARGET_LABELS = {store.TARGET_POST: "post", store.TARGET_COMMENT: "comment"}


@dataclass(frozen=True)
class ReactionState:
    """Reaction sets of one entity, seen by one (optional) user."""

    likes: list[int]
    dislikes: list[int]
    is_liked: bool = False
    is_disliked: bool = False

    @property
    def like_count(self) -> int:
        return len(self.likes)

    @property
    def dislike_count(self) -> int:
        return len(self.dislikes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "likes": self.likes,
            "dislikes": self.dislikes,
            "like_count": self.like_count,
            "dislike_count": self.dislike_count,
            "is_liked": self.is_liked,
            "is_disliked": self.is_disliked,
        }


def build_state(sets: store.ReactionSets, user_id: int | None = None) -> ReactionState:
    likes, dislikes = sets
    return ReactionState(
        likes=list(likes),
        dislikes=list(dislikes),
        is_liked=user_id is not None and user_id in likes,
        is_disliked=user_id is not None and user_id in dislikes,
    )


class ReactionService:
    """Applies reaction transitions and drops the cached views they affect."""

    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def _load_target(
        self, db: AsyncSession, target_type: str, target_id: int
    ) -> Post | Comment:
        model = Post if target_type == store.TARGET_POST else Comment
        target = await db.get(model, target_id)
        if target is None:
            raise NotFoundError(_TARGET_LABELS[target_type].capitalize())
        return target

    async def _invalidate(self, target: Post | Comment) -> None:
        if isinstance(target, Post):
            await self.invalidator.invalidate_post_cache(target.id, target.slug)
        else:
            await self.invalidator.invalidate_comments_cache(target.post_id)

    async def _apply(
        self,
        db: AsyncSession,
        target_type: str,
        target_id: int,
        user_id: int,
        kind: str,
        *,
        toggle: bool,
    ) -> ReactionState:
        target = await self._load_target(db, target_type, target_id)

        if toggle:
            await store.toggle_reaction(db, target_type, target_id, user_id, kind)
        else:
            removed = await store.remove_reaction(db, target_type, target_id, user_id, kind)
            if not removed:
                verb = "liked" if kind == store.LIKE else "disliked"
                raise InvalidStateError(
                    f"You have not {verb} this {_TARGET_LABELS[target_type]}"
                )

        await db.commit()
        logger.info(
            "Reaction updated",
            target_type=target_type,
            target_id=target_id,
            user_id=user_id,
            kind=kind,
            toggle=toggle,
        )

        await self._invalidate(target)
        return await self.get_reaction_state(db, target_type, target_id, user_id)

    async def like(
        self, db: AsyncSession, target_type: str, target_id: int, user_id: int
    ) -> ReactionState:
        return await self._apply(db, target_type, target_id, user_id, store.LIKE, toggle=True)

    async def dislike(
        self, db: AsyncSession, target_type: str, target_id: int, user_id: int
    ) -> ReactionState:
        return await self._apply(db, target_type, target_id, user_id, store.DISLIKE, toggle=True)

    async def unlike(
        self, db: AsyncSession, target_type: str, target_id: int, user_id: int
    ) -> ReactionState:
        return await self._apply(db, target_type, target_id, user_id, store.LIKE, toggle=False)

    async def undislike(
        self, db: AsyncSession, target_type: str, target_id: int, user_id: int
    ) -> ReactionState:
        return await self._apply(
            db, target_type, target_id, user_id, store.DISLIKE, toggle=False
        )

    async def get_reaction_state(
        self,
        db: AsyncSession,
        target_type: str,
        target_id: int,
        user_id: int | None = None,
    ) -> ReactionState:
        """Current reaction sets of an entity and the user's own flags."""
        sets = await store.get_reaction_sets(db, target_type, target_id)
        return build_state(sets, user_id)
