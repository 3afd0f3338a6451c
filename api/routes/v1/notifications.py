"""
api/routes/v1/notifications.py -- Per-user notifications about their animals.

Routes:
  POST  /notifications                  -- create a notification for one of the caller's animals
  GET   /notifications/recent           -- newest few, with a short animal summary
  GET   /notifications/details          -- all, with the animal and its latest reading
  GET   /notifications/unread-count     -- number of unread notifications
  PATCH /notifications/{id}/read        -- mark one as read
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    NotificationCreate,
    NotificationDetailRow,
    NotificationResponse,
    RecentNotificationRow,
    UnreadCountResponse,
)
from api.routes.v1.common import not_found, owned_livestock_or_404
from auth.dependencies import get_current_user
from auth.models import User
from core.config import get_settings
from herd.models import Notification
from herd.store import HerdStore

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("/notifications", response_model=NotificationResponse, status_code=201)
def create_notification(
    request: Request,
    body: NotificationCreate,
    current_user: User = Depends(get_current_user),
) -> NotificationResponse:
    store: HerdStore = request.app.state.herd
    owned_livestock_or_404(store, body.livestock_id, current_user.id)
    notification_id = store.create_notification(
        Notification(
            user_id=current_user.id,
            livestock_id=body.livestock_id,
            message=body.message,
            type=body.type.value,
        )
    )
    return NotificationResponse.model_validate(store.get_notification(notification_id, current_user.id))


@router.get("/notifications/recent", response_model=list[RecentNotificationRow])
def recent_notifications(
    request: Request,
    limit: Optional[int] = Query(default=None, ge=1, le=50),
    current_user: User = Depends(get_current_user),
) -> list[RecentNotificationRow]:
    """Newest first. limit defaults to Settings.recent_notifications_limit."""
    store: HerdStore = request.app.state.herd
    limit = limit or get_settings().recent_notifications_limit
    rows = store.recent_notifications(current_user.id, limit=limit)
    return [RecentNotificationRow.model_validate(r) for r in rows]


@router.get("/notifications/details", response_model=list[NotificationDetailRow])
def notification_details(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> list[NotificationDetailRow]:
    store: HerdStore = request.app.state.herd
    return [NotificationDetailRow.model_validate(r) for r in store.notification_details(current_user.id)]


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
def unread_count(request: Request, current_user: User = Depends(get_current_user)) -> UnreadCountResponse:
    store: HerdStore = request.app.state.herd
    return UnreadCountResponse(unread=store.unread_count(current_user.id))


@router.patch("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    request: Request,
    notification_id: int,
    current_user: User = Depends(get_current_user),
) -> NotificationResponse:
    """Idempotent: marking an already-read notification succeeds."""
    store: HerdStore = request.app.state.herd
    if not store.mark_notification_read(notification_id, current_user.id):
        raise not_found("notification_not_found", "Notification not found or you do not have access.")
    return NotificationResponse.model_validate(store.get_notification(notification_id, current_user.id))
