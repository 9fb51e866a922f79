"""Feed endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from .. import models, schemas, settings
from ..auth import get_current_user
from ..deps import get_comment_store, get_follow_store, get_like_store, get_post_store
from ..pagination import clamp_page
from ..services.feed import assemble_feed, build_feed_query
from ..stores.interfaces import CommentStore, FollowStore, LikeStore, PostStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["Feed"])


@router.get("", response_model=schemas.Envelope[list[schemas.FeedPost]])
def get_feed(
    page: int = Query(1),
    limit: int = Query(settings.POSTS_PER_PAGE, ge=1, le=settings.MAX_PAGE_SIZE),
    q: str | None = Query(None, max_length=100),
    current_user: models.User = Depends(get_current_user),
    posts: PostStore = Depends(get_post_store),
    follows: FollowStore = Depends(get_follow_store),
    likes: LikeStore = Depends(get_like_store),
    comments: CommentStore = Depends(get_comment_store),
) -> schemas.Envelope[list[schemas.FeedPost]]:
    """
    Posts from the viewer and the accounts they follow, newest first.

    With a non-blank ``q`` the feed switches to search mode: posts whose content
    or author's username/first/last name contains ``q``. Each post carries the
    viewer's ``is_liked`` flag and up to three of its newest comments.
    """
    query = build_feed_query(current_user.id, q, follows)
    items, pagination = assemble_feed(
        query,
        posts=posts,
        likes=likes,
        comments=comments,
        page=clamp_page(page),
        limit=limit,
    )
    return schemas.Envelope(data=items, pagination=pagination)
