"""API endpoints for user notifications."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..notifications import (
    CreateNotificationRequest,
    Notification,
    NotificationService,
    get_notification_service,
)
from . import NotFoundError
from .auth import CurrentUser

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[Notification])
async def list_notifications(
    user: CurrentUser,
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=200),
    service: NotificationService = Depends(get_notification_service),
) -> list[Notification]:
    """Notifications of the user, newest first."""
    return await service.list_notifications(user.id, unread_only=unread_only, limit=limit)


@router.post("", response_model=Notification, status_code=201)
async def create_notification(
    request: CreateNotificationRequest,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> Notification:
    """Create a custom notification or reminder."""
    return await service.create(request, user.id)


@router.post("/{notification_id}/read", status_code=204)
async def mark_read(
    notification_id: UUID,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> None:
    """Mark one notification as read."""
    if not await service.mark_read(notification_id, user.id):
        raise NotFoundError("Notificação", notification_id)


@router.post("/read-all")
async def mark_all_read(
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> dict:
    """Mark every notification of the user as read."""
    updated = await service.mark_all_read(user.id)
    return {"updated": updated}
