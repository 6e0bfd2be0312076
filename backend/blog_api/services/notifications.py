"""Admin dashboard notifications.

Notifications are written in the caller's transaction (``flush`` only), so a
post that fails to commit never leaves a dangling "post published" entry.
"""

import asyncio
import math
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.core.exceptions import NotFoundError, ValidationError
from blog_api.core.logging import get_logger
from blog_api.core.tasks import start_periodic_task
from blog_api.db.models import Notification, Post, User

logger = get_logger(__name__)

NOTIFICATION_TYPES = (
    "user_registered",
    "post_published",
    "system_error",
    "user_activity",
    "content_moderation",
)
NOTIFICATION_PRIORITIES = ("low", "medium", "high")

RETENTION_DAYS = 30
CLEANUP_INTERVAL_HOURS = 24


def serialize_notification(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "priority": notification.priority,
        "read": notification.read,
        "action_url": notification.action_url,
        "metadata": notification.extra,
        "created_at": notification.created_at,
    }


class NotificationService:
    def __init__(self, retention_days: int = RETENTION_DAYS) -> None:
        self.retention_days = retention_days
        self._cleanup_task: asyncio.Task[Any] | None = None
        self._cleanup_interval_hours: float | None = None

    async def create_notification(
        self,
        db: AsyncSession,
        type: str,
        title: str,
        message: str,
        *,
        priority: str = "medium",
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Notification:
        if type not in NOTIFICATION_TYPES:
            raise ValidationError("Invalid notification type", {"type": type})
        if priority not in NOTIFICATION_PRIORITIES:
            raise ValidationError("Invalid notification priority", {"priority": priority})

        notification = Notification(
            type=type,
            title=title.strip(),
            message=message.strip(),
            priority=priority,
            action_url=action_url,
            extra=metadata,
        )
        db.add(notification)
        await db.flush()
        logger.debug("Notification created", notification_id=notification.id, type=type)
        return notification

    async def notify_user_registered(self, db: AsyncSession, user: User) -> Notification:
        return await self.create_notification(
            db,
            "user_registered",
            "New user registered",
            f"{user.username} just created an account",
            priority="low",
            metadata={"user_id": user.id, "username": user.username},
        )

    async def notify_post_published(
        self, db: AsyncSession, post: Post, author: User
    ) -> Notification:
        return await self.create_notification(
            db,
            "post_published",
            "Post published",
            f'"{post.title}" was published by {author.username}',
            action_url=f"/posts/{post.slug}",
            metadata={"post_id": post.id, "author_id": author.id},
        )

    async def list_notifications(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 50,
        unread_only: bool = False,
    ) -> dict[str, Any]:
        filters = [Notification.read.is_(False)] if unread_only else []

        total = (
            await db.execute(select(func.count(Notification.id)).where(*filters))
        ).scalar_one()
        unread_count = (
            await db.execute(
                select(func.count(Notification.id)).where(Notification.read.is_(False))
            )
        ).scalar_one()
        result = await db.execute(
            select(Notification)
            .where(*filters)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        total_pages = math.ceil(total / limit) if total else 0
        return {
            "notifications": [serialize_notification(n) for n in result.scalars().all()],
            "pagination": {
                "current_page": page,
                "total_pages": total_pages,
                "total_notifications": total,
                "has_next_page": page < total_pages,
                "has_prev_page": page > 1,
            },
            "unread_count": unread_count,
        }

    async def mark_as_read(self, db: AsyncSession, notification_id: int) -> dict[str, Any]:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification")
        notification.read = True
        await db.commit()
        logger.info("Notification marked as read", notification_id=notification_id)
        return serialize_notification(notification)

    async def mark_all_as_read(self, db: AsyncSession) -> dict[str, int]:
        result = await db.execute(
            update(Notification).where(Notification.read.is_(False)).values(read=True)
        )
        await db.commit()
        logger.info("Notifications marked as read", modified_count=result.rowcount)
        return {"modified_count": result.rowcount}

    async def cleanup_old_notifications(self, db: AsyncSession) -> dict[str, int]:
        """Delete notifications older than the retention period."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=self.retention_days)
        result = await db.execute(
            delete(Notification)
            .where(Notification.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info(
            "Old notifications deleted",
            deleted_count=result.rowcount,
            retention_days=self.retention_days,
        )
        return {"deleted_count": result.rowcount}

    def start_cleanup(
        self,
        open_session: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        interval_hours: float = CLEANUP_INTERVAL_HOURS,
    ) -> None:
        """Run ``cleanup_old_notifications`` every ``interval_hours``."""
        self.stop_cleanup()

        async def _run() -> None:
            async with open_session() as db:
                await self.cleanup_old_notifications(db)

        self._cleanup_task = start_periodic_task(
            _run, interval_hours * 3600, name="notification-cleanup"
        )
        self._cleanup_interval_hours = interval_hours
        logger.info("Notification cleanup scheduled", interval_hours=interval_hours)

    def stop_cleanup(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None
            self._cleanup_interval_hours = None
            logger.info("Notification cleanup stopped")

    def cleanup_status(self) -> dict[str, Any]:
        running = self._cleanup_task is not None and not self._cleanup_task.done()
        return {
            "is_running": running,
            "interval_hours": self._cleanup_interval_hours if running else None,
            "retention_days": self.retention_days,
        }
