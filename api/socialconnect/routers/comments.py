"""Comment endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..auth import get_current_user
from ..deps import get_comment_store, get_db, get_notification_store, get_post_store
from ..errors import ForbiddenError, NotFoundError
from ..pagination import build_pagination, clamp_page, page_offset
from ..services.notifications import NotificationService
from ..stores.interfaces import CommentStore, NotificationStore, PostStore
from ..utils.audit import log_moderation_action
from .posts import get_active_post_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Comments"])


@router.get("/{post_id}/comments", response_model=schemas.Envelope[list[schemas.CommentOut]])
def list_comments(
    post_id: int,
    page: int = Query(1),
    limit: int = Query(settings.COMMENTS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    posts: PostStore = Depends(get_post_store),
    comments: CommentStore = Depends(get_comment_store),
) -> schemas.Envelope[list[schemas.CommentOut]]:
    """
    Active comments on a post, newest first. Anonymous access is allowed.
    """
    get_active_post_or_404(posts, post_id)
    page = clamp_page(page)
    rows, total = comments.list_for_post(post_id, page_offset(page, limit), limit)
    return schemas.Envelope(
        data=[schemas.CommentOut.model_validate(c) for c in rows],
        pagination=build_pagination(page, limit, total),
    )


@router.post(
    "/{post_id}/comments",
    response_model=schemas.Envelope[schemas.CommentOut],
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    post_id: int,
    payload: schemas.CommentCreate,
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    comments: CommentStore = Depends(get_comment_store),
    notifications: NotificationStore = Depends(get_notification_store),
) -> schemas.Envelope[schemas.CommentOut]:
    post = get_active_post_or_404(posts, post_id)

    comment = comments.create(post_id=post.id, author_id=current_user.id, content=payload.content)
    logger.info(f"User {current_user.id} commented on post {post_id} (comment {comment.id})")

    NotificationService.on_comment(notifications, current_user, post)

    return schemas.Envelope(
        data=schemas.CommentOut.model_validate(comment),
        message="Comment added successfully",
    )


@router.delete("/{post_id}/comments/{comment_id}", response_model=schemas.Envelope)
def delete_comment(
    post_id: int,
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    comments: CommentStore = Depends(get_comment_store),
) -> schemas.Envelope:
    """
    Soft delete a comment. Authors may delete their own comments; admins any.
    """
    comment = comments.get_active(comment_id)
    if not comment or comment.post_id != post_id:
        raise NotFoundError("Comment not found")

    if comment.author_id != current_user.id and not current_user.is_admin:
        raise ForbiddenError("You can only delete your own comments")

    author_id = comment.author_id
    comments.soft_delete(comment)
    logger.info(f"User {current_user.id} deleted comment {comment_id} on post {post_id}")

    if author_id != current_user.id:
        log_moderation_action(
            db,
            actor_id=current_user.id,
            action="delete_comment",
            target_type="comment",
            target_id=comment_id,
        )

    return schemas.Envelope(message="Comment deleted successfully")
