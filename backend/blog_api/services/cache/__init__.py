"""Key-value caching over Upstash Redis.

- ``KeyValueStore``: JSON values with TTLs, glob-pattern deletion, fail-open
- ``CachedRoute`` / ``cache_response``: HTTP response caching of GET endpoints
- ``ChatCacheService``: AI answers, session history, per-user message ceiling
- ``CacheInvalidator``: drops stale responses after writes
"""

from blog_api.services.cache.chat import ChatCacheService, fingerprint
from blog_api.services.cache.constants import (
    CACHE_STATUS_HEADER,
    CHAT_MAX_MESSAGES_PER_MINUTE,
    CHAT_SESSION_MAX_MESSAGES,
    KEY_PREFIX_CHAT_RATE,
    KEY_PREFIX_CHAT_RESPONSE,
    KEY_PREFIX_CHAT_SESSION,
    KEY_PREFIX_RATE_LIMIT,
    KEY_PREFIX_RESPONSE,
    TTL_CATEGORY_LIST,
    TTL_CHAT_RATE,
    TTL_CHAT_RESPONSE,
    TTL_CHAT_SESSION,
    TTL_COMMENT_LIST,
    TTL_DEFAULT,
    TTL_POST_DETAIL,
    TTL_POST_LIST,
)
from blog_api.services.cache.invalidation import CacheInvalidator
from blog_api.services.cache.response import CachedRoute, build_cache_key, cache_response
from blog_api.services.cache.store import KeyValueStore

__all__ = [
    # TTL constants
    "TTL_DEFAULT",
    "TTL_POST_LIST",
    "TTL_POST_DETAIL",
    "TTL_COMMENT_LIST",
    "TTL_CATEGORY_LIST",
    "TTL_CHAT_RESPONSE",
    "TTL_CHAT_SESSION",
    "TTL_CHAT_RATE",
    # Bounds
    "CHAT_SESSION_MAX_MESSAGES",
    "CHAT_MAX_MESSAGES_PER_MINUTE",
    # Key prefix constants
    "KEY_PREFIX_RESPONSE",
    "KEY_PREFIX_RATE_LIMIT",
    "KEY_PREFIX_CHAT_RESPONSE",
    "KEY_PREFIX_CHAT_SESSION",
    "KEY_PREFIX_CHAT_RATE",
    "CACHE_STATUS_HEADER",
    # Services
    "KeyValueStore",
    "CachedRoute",
    "cache_response",
    "build_cache_key",
    "ChatCacheService",
    "fingerprint",
    "CacheInvalidator",
]
