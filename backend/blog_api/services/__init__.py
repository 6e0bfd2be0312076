"""Services module exports."""

from blog_api.services.assistant import AssistantReply, AssistantService
from blog_api.services.cache import (
    CachedRoute,
    CacheInvalidator,
    ChatCacheService,
    KeyValueStore,
    cache_response,
)
from blog_api.services.categories import CategoryService
from blog_api.services.comments import CommentService
from blog_api.services.container import ServiceContainer
from blog_api.services.notifications import NotificationService
from blog_api.services.posts import PostService
from blog_api.services.rate_limit import (
    RateLimiter,
    create_rate_limit_dependency,
    notification_modify_rate_limit,
    notification_rate_limit,
)
from blog_api.services.reactions import ReactionService, ReactionState
from blog_api.services.users import UserService

__all__ = [
    # Container
    "ServiceContainer",
    # Cache
    "KeyValueStore",
    "CachedRoute",
    "cache_response",
    "ChatCacheService",
    "CacheInvalidator",
    # Rate Limiting
    "RateLimiter",
    "create_rate_limit_dependency",
    "notification_rate_limit",
    "notification_modify_rate_limit",
    # Domain
    "PostService",
    "CommentService",
    "CategoryService",
    "NotificationService",
    "ReactionService",
    "ReactionState",
    "UserService",
    # Assistant
    "AssistantService",
    "AssistantReply",
]
