"""Notification endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from .. import models, schemas, settings
from ..auth import get_current_user
from ..deps import get_notification_store
from ..errors import ForbiddenError, NotFoundError
from ..pagination import build_pagination, clamp_page, page_offset
from ..stores.interfaces import NotificationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=schemas.Envelope[list[schemas.NotificationOut]])
def list_notifications(
    page: int = Query(1),
    limit: int = Query(settings.NOTIFICATIONS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    unread_only: bool = False,
    current_user: models.User = Depends(get_current_user),
    notifications: NotificationStore = Depends(get_notification_store),
) -> schemas.Envelope[list[schemas.NotificationOut]]:
    """
    The current user's notifications, newest first.
    """
    page = clamp_page(page)
    rows, total = notifications.list_for_recipient(
        current_user.id,
        unread_only=unread_only,
        offset=page_offset(page, limit),
        limit=limit,
    )
    return schemas.Envelope(
        data=[schemas.NotificationOut.model_validate(n) for n in rows],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/count", response_model=schemas.Envelope[schemas.UnreadCount])
def get_unread_count(
    current_user: models.User = Depends(get_current_user),
    notifications: NotificationStore = Depends(get_notification_store),
) -> schemas.Envelope[schemas.UnreadCount]:
    return schemas.Envelope(
        data=schemas.UnreadCount(unread_count=notifications.unread_count(current_user.id))
    )


@router.post("/mark-all-read", response_model=schemas.Envelope[schemas.MarkAllReadResult])
def mark_all_read(
    current_user: models.User = Depends(get_current_user),
    notifications: NotificationStore = Depends(get_notification_store),
) -> schemas.Envelope[schemas.MarkAllReadResult]:
    updated = notifications.mark_all_read(current_user.id)
    logger.info(f"User {current_user.id} marked {updated} notifications as read")
    return schemas.Envelope(
        data=schemas.MarkAllReadResult(updated=updated),
        message="All notifications marked as read",
    )


@router.post("/{notification_id}/read", response_model=schemas.Envelope)
def mark_read(
    notification_id: UUID,
    current_user: models.User = Depends(get_current_user),
    notifications: NotificationStore = Depends(get_notification_store),
) -> schemas.Envelope:
    notification = notifications.get(notification_id)
    if not notification:
        raise NotFoundError("Notification not found")
    if notification.recipient_id != current_user.id:
        raise ForbiddenError("You can only mark your own notifications as read")

    notifications.mark_read(notification)
    return schemas.Envelope(message="Notification marked as read")
