"""Routes module exports."""

from blog_api.api.routes.ai import router as ai_router
from blog_api.api.routes.auth import router as auth_router
from blog_api.api.routes.categories import router as categories_router
from blog_api.api.routes.comments import router as comments_router
from blog_api.api.routes.health import router as health_router
from blog_api.api.routes.notifications import router as notifications_router
from blog_api.api.routes.posts import router as posts_router
from blog_api.api.routes.users import router as users_router

__all__ = [
    "ai_router",
    "auth_router",
    "categories_router",
    "comments_router",
    "health_router",
    "notifications_router",
    "posts_router",
    "users_router",
]
