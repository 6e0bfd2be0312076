"""API module exports."""

from blog_api.api.deps import AdminUser, CurrentUser, DBSession, OptionalUser, Services
from blog_api.api.routes import (
    ai_router,
    auth_router,
    categories_router,
    comments_router,
    health_router,
    notifications_router,
    posts_router,
    users_router,
)

__all__ = [
    # Routers
    "ai_router",
    "auth_router",
    "categories_router",
    "comments_router",
    "health_router",
    "notifications_router",
    "posts_router",
    "users_router",
    # Dependencies
    "AdminUser",
    "CurrentUser",
    "DBSession",
    "OptionalUser",
    "Services",
]
