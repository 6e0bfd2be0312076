"""Set operations on the like/dislike reactions of posts and comments.

Each operation is a single statement, so concurrent requests cannot lose
updates the way a fetch-modify-save sequence would. Moving a user from the
dislike set to the like set (or back) is one upsert on the
(target_type, target_id, user_id) unique key.
"""

from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.db.models import Reaction

LIKE = "like"
DISLIKE = "dislike"

TARGET_POST = "post"
TARGET_COMMENT = "comment"

ReactionSets = tuple[list[int], list[int]]


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Reaction upsert not supported on {dialect}")


async def set_reaction(
    session: AsyncSession,
    target_type: str,
    target_id: int,
    user_id: int,
    kind: str,
) -> None:
    """Put the user in the ``kind`` set, removing them from the other one."""
    insert = _insert_for(session)
    stmt = insert(Reaction).values(
        target_type=target_type,
        target_id=target_id,
        user_id=user_id,
        kind=kind,
        created_at=datetime.now(timezone.utc),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["target_type", "target_id", "user_id"],
        set_={"kind": stmt.excluded.kind, "created_at": stmt.excluded.created_at},
    )
    await session.execute(stmt)


async def remove_reaction(
    session: AsyncSession,
    target_type: str,
    target_id: int,
    user_id: int,
    kind: str,
) -> bool:
    """Remove the user from the ``kind`` set. Returns False if they were not in it."""
    result = await session.execute(
        delete(Reaction).where(
            Reaction.target_type == target_type,
            Reaction.target_id == target_id,
            Reaction.user_id == user_id,
            Reaction.kind == kind,
        )
    )
    return bool(result.rowcount)


async def toggle_reaction(
    session: AsyncSession,
    target_type: str,
    target_id: int,
    user_id: int,
    kind: str,
) -> str | None:
    """Toggle ``kind`` for the user and return their resulting reaction.

    Already in the set: removed (None is returned). Otherwise added, which
    also takes the user out of the opposite set.
    """
    if await remove_reaction(session, target_type, target_id, user_id, kind):
        return None
    await set_reaction(session, target_type, target_id, user_id, kind)
    return kind


async def get_reaction_sets(
    session: AsyncSession,
    target_type: str,
    target_id: int,
) -> ReactionSets:
    """Return (likes, dislikes) user ids for one entity."""
    sets = await get_reaction_sets_bulk(session, target_type, [target_id])
    return sets[target_id]


async def get_reaction_sets_bulk(
    session: AsyncSession,
    target_type: str,
    target_ids: list[int],
) -> dict[int, ReactionSets]:
    """Return (likes, dislikes) for many entities in one query."""
    sets: dict[int, ReactionSets] = defaultdict(lambda: ([], []))
    if not target_ids:
        return sets

    result = await session.execute(
        select(Reaction.target_id, Reaction.user_id, Reaction.kind)
        .where(
            Reaction.target_type == target_type,
            Reaction.target_id.in_(target_ids),
        )
        .order_by(Reaction.created_at, Reaction.id)
    )
    for target_id, user_id, kind in result.all():
        likes, dislikes = sets[target_id]
        (likes if kind == LIKE else dislikes).append(user_id)
    return sets


async def delete_reactions(
    session: AsyncSession,
    target_type: str,
    target_ids: list[int],
) -> None:
    """Drop every reaction on the given entities (used when they are deleted)."""
    if not target_ids:
        return
    await session.execute(
        delete(Reaction).where(
            Reaction.target_type == target_type,
            Reaction.target_id.in_(target_ids),
        )
    )
