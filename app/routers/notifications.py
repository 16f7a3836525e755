"""
Notifications Router - per-user workflow notifications
"""
from fastapi import APIRouter, Depends, Query, Request

from ..schemas.common import success_response
from ..schemas.notification import NotificationListResponse, NotificationResponse
from ..services.notification_service import NotificationService
from ..utils.dependencies import CurrentUser, get_current_user, get_notification_service
from ..utils.errors import NotFoundError
from ..utils.rate_limiter import limiter, get_rate_limit


router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("")
@router.get("/")
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Caller's notifications, newest first, with the unread count."""
    notifications = service.list_for_user(current_user.user_id, unread_only=unread_only, limit=limit)
    return success_response(NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=service.unread_count(current_user.user_id),
    ))


@router.patch("/read-all")
@router.patch("/read-all/")
@limiter.limit(get_rate_limit("notification_update"))
async def mark_all_notifications_read(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    updated = service.mark_all_as_read(current_user.user_id)
    return success_response({"updated": updated})


@router.patch("/{notification_id}/read")
@router.patch("/{notification_id}/read/")
@limiter.limit(get_rate_limit("notification_update"))
async def mark_notification_read(
    request: Request,
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    notification = service.mark_as_read(notification_id, current_user.user_id)
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    return success_response(NotificationResponse.model_validate(notification))
