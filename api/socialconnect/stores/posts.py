"""SQLAlchemy-backed post store."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload

from .. import models
from ..services.feed import FeedQuery, FollowScopedQuery, TextSearchQuery
from .counters import decrement, increment
from .interfaces import PostFilter
from .users import contains_pattern, utcnow

logger = logging.getLogger(__name__)


def _newest_first(query: Query) -> Query:
    # id breaks ties between posts created within the same clock tick
    return query.order_by(models.Post.created_at.desc(), models.Post.id.desc())


def _page(query: Query, offset: int, limit: int) -> tuple[list[models.Post], int]:
    total = query.order_by(None).count()
    posts = (
        _newest_first(query)
        .options(joinedload(models.Post.author))
        .offset(offset)
        .limit(limit)
        .all()
    )
    return posts, total


class SqlPostStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, post_id: int) -> Optional[models.Post]:
        return self.db.query(models.Post).filter(models.Post.id == post_id).first()

    def get_active(self, post_id: int) -> Optional[models.Post]:
        return (
            self.db.query(models.Post)
            .options(joinedload(models.Post.author))
            .filter(models.Post.id == post_id, models.Post.is_active == True)
            .first()
        )

    def create(
        self, *, author_id: int, content: str, category: str, image_url: Optional[str] = None
    ) -> models.Post:
        post = models.Post(
            author_id=author_id,
            content=content,
            category=category,
            image_url=image_url,
        )
        self.db.add(post)
        self.db.query(models.User).filter(models.User.id == author_id).update(
            {models.User.posts_count: increment(models.User.posts_count)},
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(post)
        return post

    def update(self, post: models.Post, changes: dict) -> models.Post:
        for field, value in changes.items():
            setattr(post, field, value)
        post.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(post)
        return post

    def soft_delete(self, post: models.Post) -> models.Post:
        if not post.is_active:
            return post
        post.is_active = False
        post.deleted_at = utcnow()
        self.db.query(models.User).filter(models.User.id == post.author_id).update(
            {models.User.posts_count: decrement(models.User.posts_count)},
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(post)
        return post

    def set_image(self, post: models.Post, image_url: Optional[str]) -> models.Post:
        post.image_url = image_url
        self.db.commit()
        self.db.refresh(post)
        return post

    def like_count(self, post_id: int) -> int:
        count = (
            self.db.query(models.Post.like_count)
            .filter(models.Post.id == post_id)
            .scalar()
        )
        return count or 0

    def list_page(
        self, filters: PostFilter, offset: int, limit: int
    ) -> tuple[list[models.Post], int]:
        query = self.db.query(models.Post).filter(models.Post.is_active == True)
        if filters.category:
            query = query.filter(models.Post.category == filters.category)
        if filters.author_id is not None:
            query = query.filter(models.Post.author_id == filters.author_id)
        return _page(query, offset, limit)

    def list_feed(
        self, query: FeedQuery, offset: int, limit: int
    ) -> tuple[list[models.Post], int]:
        q = self.db.query(models.Post).filter(models.Post.is_active == True)

        if isinstance(query, FollowScopedQuery):
            q = q.filter(models.Post.author_id.in_(sorted(query.audience)))
        elif isinstance(query, TextSearchQuery):
            pattern = contains_pattern(query.text)
            q = q.join(models.User, models.User.id == models.Post.author_id).filter(
                or_(
                    models.Post.content.ilike(pattern, escape="\\"),
                    models.User.username.ilike(pattern, escape="\\"),
                    models.User.first_name.ilike(pattern, escape="\\"),
                    models.User.last_name.ilike(pattern, escape="\\"),
                )
            )
            if query.audience is not None:
                q = q.filter(models.Post.author_id.in_(sorted(query.audience)))
        else:
            raise TypeError(f"Unsupported feed query: {type(query).__name__}")

        return _page(q, offset, limit)

    def list_for_admin(
        self, *, is_active: Optional[bool], offset: int, limit: int
    ) -> tuple[list[models.Post], int]:
        query = self.db.query(models.Post)
        if is_active is not None:
            query = query.filter(models.Post.is_active == is_active)
        return _page(query, offset, limit)

    def count_active(self) -> int:
        return (
            self.db.query(func.count(models.Post.id))
            .filter(models.Post.is_active == True)
            .scalar()
            or 0
        )
