"""Service container owning the process-wide service instances.

Built once per application, attached to ``app.state.services`` and driven by
the FastAPI lifespan. Request handlers reach it through ``get_services``.
"""

import asyncio
from typing import Any

from blog_api.core.config import get_settings
from blog_api.core.logging import get_logger
from blog_api.core.tasks import start_periodic_task
from blog_api.db.session import session_scope
from blog_api.services.assistant import SESSION_CLEANUP_INTERVAL_SECONDS, AssistantService
from blog_api.services.cache.chat import ChatCacheService
from blog_api.services.cache.invalidation import CacheInvalidator
from blog_api.services.cache.store import KeyValueStore
from blog_api.services.categories import CategoryService
from blog_api.services.comments import CommentService
from blog_api.services.notifications import NotificationService
from blog_api.services.posts import PostService
from blog_api.services.reactions import ReactionService
from blog_api.services.users import UserService

logger = get_logger(__name__)


class ServiceContainer:
    def __init__(
        self,
        store: KeyValueStore | None = None,
        assistant: AssistantService | None = None,
        *,
        notification_cleanup: bool | None = None,
    ) -> None:
        settings = get_settings()

        self.store = store or KeyValueStore()
        self.chat_cache = ChatCacheService(self.store)
        self.invalidator = CacheInvalidator(self.store, settings.api_prefix)

        self.notifications = NotificationService(settings.notification_retention_days)
        self.reactions = ReactionService(self.invalidator)
        self.posts = PostService(self.invalidator, self.notifications)
        self.comments = CommentService(self.invalidator)
        self.categories = CategoryService(self.invalidator)
        self.users = UserService(self.invalidator)
        self.assistant = assistant or AssistantService()

        self._notification_cleanup = (
            settings.notification_cleanup_enabled
            if notification_cleanup is None
            else notification_cleanup
        )
        self._cleanup_interval_hours = settings.notification_cleanup_interval_hours
        self._tasks: list[asyncio.Task[Any]] = []
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def startup(self) -> None:
        """Connect the key-value store and start background housekeeping."""
        if self._started:
            return

        await self.store.connect()
        self._tasks.append(
            start_periodic_task(
                self.assistant.cleanup_sessions,
                SESSION_CLEANUP_INTERVAL_SECONDS,
                name="chat-session-cleanup",
            )
        )
        if self._notification_cleanup:
            self.notifications.start_cleanup(session_scope, self._cleanup_interval_hours)

        self._started = True
        logger.info("Services started", cache_available=self.store.is_available)

    async def shutdown(self) -> None:
        """Stop background tasks and close external clients."""
        if not self._started:
            return

        self.notifications.stop_cleanup()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        await self.assistant.close()
        await self.store.close()

        self._started = False
        logger.info("Services stopped")
