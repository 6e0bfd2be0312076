"""Admin notification endpoints, rate limited per admin."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from blog_api.api.deps import AdminUser, DBSession, Services
from blog_api.api.schemas import (
    CleanupResponse,
    CleanupStatusResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from blog_api.services.rate_limit import notification_modify_rate_limit, notification_rate_limit

router = APIRouter(prefix="/admin/notifications", tags=["Admin Notifications"])

_read_limit = [Depends(notification_rate_limit)]
_modify_limit = [Depends(notification_modify_rate_limit)]


@router.get(
    "",
    response_model=NotificationListResponse,
    dependencies=_read_limit,
    summary="List notifications, newest first",
    responses={429: {"description": "Rate limit exceeded"}},
)
async def list_notifications(
    admin: AdminUser,
    db: DBSession,
    services: Services,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    unread_only: bool = Query(default=False),
) -> dict[str, Any]:
    return await services.notifications.list_notifications(db, page, limit, unread_only)


@router.patch(
    "/read-all",
    response_model=MarkAllReadResponse,
    dependencies=_modify_limit,
    summary="Mark every notification as read",
)
async def mark_all_as_read(admin: AdminUser, db: DBSession, services: Services) -> dict[str, Any]:
    return await services.notifications.mark_all_as_read(db)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    dependencies=_modify_limit,
    summary="Mark one notification as read",
    responses={404: {"description": "Notification not found"}},
)
async def mark_as_read(
    notification_id: int,
    admin: AdminUser,
    db: DBSession,
    services: Services,
) -> dict[str, Any]:
    return await services.notifications.mark_as_read(db, notification_id)


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    dependencies=_modify_limit,
    summary="Delete notifications older than the retention period",
)
async def cleanup(admin: AdminUser, db: DBSession, services: Services) -> dict[str, Any]:
    return await services.notifications.cleanup_old_notifications(db)


@router.get(
    "/cleanup/status",
    response_model=CleanupStatusResponse,
    dependencies=_read_limit,
    summary="Automatic cleanup status",
)
async def cleanup_status(admin: AdminUser, services: Services) -> dict[str, Any]:
    return services.notifications.cleanup_status()
