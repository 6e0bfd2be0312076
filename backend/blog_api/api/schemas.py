"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ============================================================
# Authentication Schemas
# ============================================================

class UserCreate(BaseModel):
    """Schema for user registration."""

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$")
    password: str = Field(..., min_length=8, max_length=100)


class UserLogin(BaseModel):
    """Schema for user login."""

    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Schema for user data in responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    role: str
    created_at: datetime


class TokenResponse(BaseModel):
    """Schema for authentication token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token expiration time in seconds")
    user: UserResponse


# ============================================================
# User Schemas
# ============================================================

class UserUpdate(BaseModel):
    """Profile changes. Omitted fields are left unchanged."""

    email: EmailStr | None = None
    username: str | None = Field(
        default=None, min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$"
    )


class UserRoleUpdate(BaseModel):
    role: str = Field(..., pattern=r"^(user|admin)$")


# ============================================================
# Shared Schemas
# ============================================================

class AuthorInfo(BaseModel):
    id: int
    username: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class UserListResponse(BaseModel):
    users: list[UserResponse]
    pagination: Pagination


class ReactionResponse(BaseModel):
    """Reaction sets of a post or comment after a change."""

    likes: list[int]
    dislikes: list[int]
    like_count: int
    dislike_count: int
    is_liked: bool = False
    is_disliked: bool = False


# ============================================================
# Post Schemas
# ============================================================

class CategoryInfo(BaseModel):
    id: int
    name: str
    slug: str


class PostCreate(BaseModel):
    """Schema for creating a post."""

    title: str = Field(..., min_length=3, max_length=200)
    content: str = Field(..., min_length=1)
    excerpt: str | None = Field(default=None, max_length=500)
    status: str = Field(default="draft", pattern=r"^(draft|published|archived)$")
    category_id: int | None = None


class PostUpdate(BaseModel):
    """Schema for updating a post. Omitted fields are left unchanged."""

    title: str | None = Field(default=None, min_length=3, max_length=200)
    content: str | None = Field(default=None, min_length=1)
    excerpt: str | None = Field(default=None, max_length=500)
    status: str | None = Field(default=None, pattern=r"^(draft|published|archived)$")
    category_id: int | None = None


class PostResponse(ReactionResponse):
    """Schema for a post in responses."""

    id: int
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    status: str
    author: AuthorInfo
    category: CategoryInfo | None = None
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None


class PostListResponse(BaseModel):
    posts: list[PostResponse]
    pagination: Pagination


# ============================================================
# Comment Schemas
# ============================================================

class CommentCreate(BaseModel):
    """Schema for creating a comment or a reply."""

    post_id: int
    content: str = Field(..., min_length=1, max_length=2000)
    parent_id: int | None = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(ReactionResponse):
    """Schema for a comment; top-level comments carry their replies."""

    id: int
    content: str
    post_id: int
    parent_id: int | None = None
    author: AuthorInfo
    created_at: datetime
    updated_at: datetime
    replies: list["CommentResponse"] = Field(default_factory=list)


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    pagination: Pagination


# ============================================================
# Category Schemas
# ============================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class CategoryUpdate(BaseModel):
    """Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    post_count: int = 0
    created_at: datetime


# ============================================================
# Notification Schemas
# ============================================================

class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    message: str
    priority: str
    read: bool
    action_url: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime


class NotificationPagination(BaseModel):
    current_page: int
    total_pages: int
    total_notifications: int
    has_next_page: bool
    has_prev_page: bool


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    pagination: NotificationPagination
    unread_count: int


class MarkAllReadResponse(BaseModel):
    success: bool = True
    modified_count: int


class CleanupResponse(BaseModel):
    success: bool = True
    deleted_count: int


class CleanupStatusResponse(BaseModel):
    is_running: bool
    interval_hours: float | None = None
    retention_days: int


# ============================================================
# AI Assistant Schemas
# ============================================================

class AIMessageRequest(BaseModel):
    """Schema for a message sent to the assistant."""

    input: str = Field(..., min_length=1, max_length=4000)
    session_id: str = Field(..., min_length=1, max_length=100)


class AIMessageResponse(BaseModel):
    response: str
    success: bool = True
    session_id: str
    cached: bool = False


class ChatHistoryMessage(BaseModel):
    content: str
    sender: str
    timestamp: str


class SessionHistoryResponse(BaseModel):
    session_id: str
    messages: list[ChatHistoryMessage]


# ============================================================
# Common Response Schemas
# ============================================================

class SuccessResponse(BaseModel):
    """Schema for generic success response."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    error: dict[str, Any] = Field(
        ...,
        json_schema_extra={"example": {"message": "Error description", "details": {}}},
    )


# ============================================================
# Health Check Schemas
# ============================================================

class ServiceHealth(BaseModel):
    """Schema for individual service health."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded|disabled)$")
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    """Schema for health check response."""

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    timestamp: datetime
    version: str
    services: dict[str, ServiceHealth]
