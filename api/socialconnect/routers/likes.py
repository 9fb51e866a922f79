"""Like endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_like_store, get_notification_store, get_post_store
from ..errors import ConflictError
from ..services.notifications import NotificationService
from ..stores.counters import clamp_count
from ..stores.interfaces import LikeStore, NotificationStore, PostStore
from .posts import get_active_post_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Likes"])


def _fresh_like_count(posts: PostStore, post_id: int, fallback: int) -> int:
    """Re-read the stored counter; fall back to the caller's estimate if that fails."""
    try:
        return clamp_count(posts.like_count(post_id))
    except SQLAlchemyError as e:
        logger.warning(f"Failed to re-read like count for post {post_id}: {e}")
        return clamp_count(fallback)


@router.get("/{post_id}/like-status", response_model=schemas.Envelope[schemas.LikeStatus])
def get_like_status(
    post_id: int,
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    likes: LikeStore = Depends(get_like_store),
) -> schemas.Envelope[schemas.LikeStatus]:
    post = get_active_post_or_404(posts, post_id)
    return schemas.Envelope(
        data=schemas.LikeStatus(
            is_liked=likes.exists(current_user.id, post.id),
            like_count=clamp_count(post.like_count),
        )
    )


@router.post("/{post_id}/like", response_model=schemas.Envelope[schemas.LikeStatus])
def like_post(
    post_id: int,
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    likes: LikeStore = Depends(get_like_store),
    notifications: NotificationStore = Depends(get_notification_store),
) -> schemas.Envelope[schemas.LikeStatus]:
    """
    Like a post. Liking a post twice is a conflict, not a no-op.
    """
    post = get_active_post_or_404(posts, post_id)
    previous_count = post.like_count

    if likes.exists(current_user.id, post.id):
        raise ConflictError("Already liked")
    # The unique (user, post) constraint settles concurrent duplicates
    if not likes.add(current_user.id, post.id):
        raise ConflictError("Already liked")

    logger.info(f"User {current_user.id} liked post {post_id}")
    NotificationService.on_like(notifications, current_user, post)

    return schemas.Envelope(
        data=schemas.LikeStatus(
            is_liked=True,
            like_count=_fresh_like_count(posts, post_id, previous_count + 1),
        ),
        message="Post liked successfully",
    )


@router.delete("/{post_id}/like", response_model=schemas.Envelope[schemas.LikeStatus])
def unlike_post(
    post_id: int,
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    likes: LikeStore = Depends(get_like_store),
) -> schemas.Envelope[schemas.LikeStatus]:
    """
    Remove a like. Unliking a post that is not liked changes nothing.
    """
    post = get_active_post_or_404(posts, post_id)
    previous_count = post.like_count

    if not likes.remove(current_user.id, post.id):
        return schemas.Envelope(
            data=schemas.LikeStatus(is_liked=False, like_count=clamp_count(previous_count)),
            message="Post was not liked",
        )

    logger.info(f"User {current_user.id} unliked post {post_id}")
    return schemas.Envelope(
        data=schemas.LikeStatus(
            is_liked=False,
            like_count=_fresh_like_count(posts, post_id, previous_count - 1),
        ),
        message="Post unliked successfully",
    )
