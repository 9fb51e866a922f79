"""Admin moderation endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas, settings
from ..auth import require_admin
from ..deps import get_comment_store, get_db, get_like_store, get_post_store, get_user_store
from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..pagination import build_pagination, clamp_page, page_offset
from ..stores.interfaces import CommentStore, LikeStore, PostStore, UserStore
from ..utils.audit import log_moderation_action

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

StatusFilter = Literal["active", "inactive", "all"]


def _is_active_filter(status: StatusFilter | None) -> bool | None:
    if status == "active":
        return True
    if status == "inactive":
        return False
    return None


@router.get("/users", response_model=schemas.Envelope[list[schemas.UserFull]])
def list_users(
    page: int = Query(1),
    limit: int = Query(settings.USERS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: str | None = Query(None, max_length=100),
    status: StatusFilter | None = None,
    _admin: models.User = Depends(require_admin),
    users: UserStore = Depends(get_user_store),
) -> schemas.Envelope[list[schemas.UserFull]]:
    """
    List all users, newest first. ``search`` matches username, names and email.
    """
    page = clamp_page(page)
    rows, total = users.list_for_admin(
        search=(search or "").strip() or None,
        is_active=_is_active_filter(status),
        offset=page_offset(page, limit),
        limit=limit,
    )
    return schemas.Envelope(
        data=[schemas.UserFull.model_validate(u) for u in rows],
        pagination=build_pagination(page, limit, total),
    )


@router.post("/users/{user_id}/deactivate", response_model=schemas.Envelope[schemas.UserStatus])
def toggle_user_active(
    user_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
    users: UserStore = Depends(get_user_store),
) -> schemas.Envelope[schemas.UserStatus]:
    """
    Toggle a user's ``is_active`` flag. Other admins cannot be deactivated.
    """
    user = users.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.id == admin.id:
        raise ValidationError("You cannot deactivate your own account")
    if user.is_admin:
        raise ForbiddenError("Cannot deactivate another admin")

    user = users.set_active(user, not user.is_active)
    action = "activate_user" if user.is_active else "deactivate_user"
    log_moderation_action(db, actor_id=admin.id, action=action, target_type="user", target_id=user.id)
    logger.info(f"Admin {admin.id} set user {user.id} is_active={user.is_active}")

    return schemas.Envelope(
        data=schemas.UserStatus(id=user.id, is_active=user.is_active),
        message=f"User {'activated' if user.is_active else 'deactivated'} successfully",
    )


@router.get("/posts", response_model=schemas.Envelope[list[schemas.PostOut]])
def list_posts(
    page: int = Query(1),
    limit: int = Query(settings.POSTS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    status: StatusFilter | None = None,
    _admin: models.User = Depends(require_admin),
    posts: PostStore = Depends(get_post_store),
) -> schemas.Envelope[list[schemas.PostOut]]:
    """
    List posts for moderation, including soft-deleted ones unless filtered.
    """
    page = clamp_page(page)
    rows, total = posts.list_for_admin(
        is_active=_is_active_filter(status),
        offset=page_offset(page, limit),
        limit=limit,
    )
    return schemas.Envelope(
        data=[schemas.PostOut.model_validate(p) for p in rows],
        pagination=build_pagination(page, limit, total),
    )


@router.get("/stats", response_model=schemas.Envelope[schemas.AdminStats])
def get_stats(
    _admin: models.User = Depends(require_admin),
    users: UserStore = Depends(get_user_store),
    posts: PostStore = Depends(get_post_store),
    comments: CommentStore = Depends(get_comment_store),
    likes: LikeStore = Depends(get_like_store),
) -> schemas.Envelope[schemas.AdminStats]:
    start_of_today = datetime.now(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0, tzinfo=None
    )
    return schemas.Envelope(
        data=schemas.AdminStats(
            total_users=users.count_all(),
            total_posts=posts.count_active(),
            active_users_today=users.count_active_since(start_of_today),
            total_comments=comments.count_active(),
            total_likes=likes.count_all(),
        )
    )
