"""Caching for the AI assistant: answers, session history, message ceiling."""

import base64
from typing import Any

from blog_api.core.logging import get_logger
from blog_api.services.cache.constants import (
    CHAT_FINGERPRINT_LENGTH,
    CHAT_MAX_MESSAGES_PER_MINUTE,
    CHAT_SESSION_MAX_MESSAGES,
    KEY_PREFIX_CHAT_RATE,
    KEY_PREFIX_CHAT_RESPONSE,
    KEY_PREFIX_CHAT_SESSION,
    TTL_CHAT_RATE,
    TTL_CHAT_RESPONSE,
    TTL_CHAT_SESSION,
)
from blog_api.services.cache.store import KeyValueStore

logger = get_logger(__name__)


def fingerprint(text: str) -> str:
    """Short key for a user question: base64 of the normalized text, truncated.

    Long inputs sharing a prefix collide; that is accepted.
    """
    normalized = text.strip().lower().encode("utf-8")
    return base64.b64encode(normalized).decode("ascii")[:CHAT_FINGERPRINT_LENGTH]


class ChatCacheService:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def get_cached_response(self, user_input: str) -> str | None:
        key = self.store.make_key(KEY_PREFIX_CHAT_RESPONSE, fingerprint(user_input))
        cached = await self.store.get(key)
        return cached if isinstance(cached, str) else None

    async def set_cached_response(self, user_input: str, response: str) -> None:
        key = self.store.make_key(KEY_PREFIX_CHAT_RESPONSE, fingerprint(user_input))
        await self.store.set(key, response, TTL_CHAT_RESPONSE)

    async def get_session_history(
        self, owner_id: int | str, session_id: str
    ) -> list[dict[str, Any]]:
        """Return the cached messages of one user's session, oldest first.

        Sessions are keyed by owner, so another user's session id reads as empty.
        """
        key = self.store.make_key(KEY_PREFIX_CHAT_SESSION, owner_id, session_id)
        history = await self.store.get(key)
        return history if isinstance(history, list) else []

    async def add_to_session_history(
        self,
        owner_id: int | str,
        session_id: str,
        message: dict[str, Any],
    ) -> None:
        """Append a message, keeping only the most recent ones."""
        history = await self.get_session_history(owner_id, session_id)
        history.append(message)
        key = self.store.make_key(KEY_PREFIX_CHAT_SESSION, owner_id, session_id)
        await self.store.set(key, history[-CHAT_SESSION_MAX_MESSAGES:], TTL_CHAT_SESSION)

    async def check_rate_limit(self, user_id: int | str) -> bool:
        """Count one chat message for the user.

        Returns False without counting once the per-minute ceiling is reached.
        """
        key = self.store.make_key(KEY_PREFIX_CHAT_RATE, user_id)
        count = await self.store.get(key)
        if not isinstance(count, int):
            count = 0

        if count >= CHAT_MAX_MESSAGES_PER_MINUTE:
            logger.info("Chat message ceiling reached", user_id=user_id, count=count)
            return False

        await self.store.set(key, count + 1, TTL_CHAT_RATE)
        return True
