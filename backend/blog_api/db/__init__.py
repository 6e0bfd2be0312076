"""Database module exports."""

from blog_api.db.models import (
    Base,
    Category,
    Comment,
    Notification,
    Post,
    Reaction,
    User,
)
from blog_api.db.session import (
    check_db_health,
    close_db,
    get_db,
    get_engine,
    get_session_factory,
    init_db,
    session_scope,
)

__all__ = [
    # Models
    "Base",
    "User",
    "Category",
    "Post",
    "Comment",
    "Reaction",
    "Notification",
    # Session management
    "get_db",
    "get_engine",
    "get_session_factory",
    "session_scope",
    "init_db",
    "close_db",
    "check_db_health",
]
