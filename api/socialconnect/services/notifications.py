"""
Notification fan-out.

Follows, likes and comments notify the affected user. Notifications are a
secondary write: failing to record one is logged and never fails the request
that triggered it.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from .. import models
from ..stores.interfaces import NotificationStore

logger = logging.getLogger(__name__)

_MESSAGES = {
    "follow": "{sender} started following you",
    "like": "{sender} liked your post",
    "comment": "{sender} commented on your post",
}


class NotificationService:
    """Creates notifications on behalf of social actions."""

    @staticmethod
    def notify(
        store: NotificationStore,
        *,
        recipient_id: int,
        sender: models.User,
        notification_type: str,
        post_id: int | None = None,
    ) -> models.Notification | None:
        """
        Record a notification for ``recipient_id``.

        Returns:
            The notification, or None if skipped (self-action) or the write failed
        """
        if sender.id == recipient_id:
            logger.debug(f"Skipping self-notification for user {recipient_id}")
            return None

        message = _MESSAGES[notification_type].format(sender=sender.username)
        try:
            notification = store.create(
                recipient_id=recipient_id,
                sender_id=sender.id,
                notification_type=notification_type,
                message=message,
                post_id=post_id,
            )
        except SQLAlchemyError as e:
            logger.warning(
                f"Failed to create {notification_type} notification for user {recipient_id}: {e}"
            )
            return None

        logger.info(
            f"Created {notification_type} notification {notification.id} for user {recipient_id}"
        )
        return notification

    @staticmethod
    def on_follow(store: NotificationStore, follower: models.User, target_id: int) -> None:
        NotificationService.notify(
            store, recipient_id=target_id, sender=follower, notification_type="follow"
        )

    @staticmethod
    def on_like(store: NotificationStore, liker: models.User, post: models.Post) -> None:
        NotificationService.notify(
            store,
            recipient_id=post.author_id,
            sender=liker,
            notification_type="like",
            post_id=post.id,
        )

    @staticmethod
    def on_comment(store: NotificationStore, commenter: models.User, post: models.Post) -> None:
        NotificationService.notify(
            store,
            recipient_id=post.author_id,
            sender=commenter,
            notification_type="comment",
            post_id=post.id,
        )
