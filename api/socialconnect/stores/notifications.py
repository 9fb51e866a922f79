"""SQLAlchemy-backed notification store."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .. import models


class SqlNotificationStore:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        recipient_id: int,
        sender_id: int,
        notification_type: str,
        message: str,
        post_id: Optional[int] = None,
    ) -> models.Notification:
        notification = models.Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            notification_type=notification_type,
            message=message,
            post_id=post_id,
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(notification)
        return notification

    def list_for_recipient(
        self, recipient_id: int, *, unread_only: bool, offset: int, limit: int
    ) -> tuple[list[models.Notification], int]:
        query = self.db.query(models.Notification).filter(
            models.Notification.recipient_id == recipient_id
        )
        if unread_only:
            query = query.filter(models.Notification.is_read == False)

        total = query.count()
        notifications = (
            query.options(
                joinedload(models.Notification.sender),
                joinedload(models.Notification.post),
            )
            .order_by(models.Notification.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return notifications, total

    def unread_count(self, recipient_id: int) -> int:
        return (
            self.db.query(func.count(models.Notification.id))
            .filter(
                models.Notification.recipient_id == recipient_id,
                models.Notification.is_read == False,
            )
            .scalar()
            or 0
        )

    def get(self, notification_id: UUID) -> Optional[models.Notification]:
        return (
            self.db.query(models.Notification)
            .filter(models.Notification.id == notification_id)
            .first()
        )

    def mark_read(self, notification: models.Notification) -> models.Notification:
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, recipient_id: int) -> int:
        updated = (
            self.db.query(models.Notification)
            .filter(
                models.Notification.recipient_id == recipient_id,
                models.Notification.is_read == False,
            )
            .update({models.Notification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated
