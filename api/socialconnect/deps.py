from __future__ import annotations

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from .db import get_session
from .stores.comments import SqlCommentStore
from .stores.follows import SqlFollowStore
from .stores.interfaces import (
    CommentStore,
    FollowStore,
    LikeStore,
    NotificationStore,
    PostStore,
    UserStore,
)
from .stores.likes import SqlLikeStore
from .stores.notifications import SqlNotificationStore
from .stores.posts import SqlPostStore
from .stores.users import SqlUserStore


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return SqlUserStore(db)


def get_post_store(db: Session = Depends(get_db)) -> PostStore:
    return SqlPostStore(db)


def get_follow_store(db: Session = Depends(get_db)) -> FollowStore:
    return SqlFollowStore(db)


def get_like_store(db: Session = Depends(get_db)) -> LikeStore:
    return SqlLikeStore(db)


def get_comment_store(db: Session = Depends(get_db)) -> CommentStore:
    return SqlCommentStore(db)


def get_notification_store(db: Session = Depends(get_db)) -> NotificationStore:
    return SqlNotificationStore(db)
