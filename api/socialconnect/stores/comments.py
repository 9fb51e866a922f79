"""SQLAlchemy-backed comment store."""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from .. import models
from .counters import decrement, increment
from .users import utcnow


class SqlCommentStore:
    def __init__(self, db: Session):
        self.db = db

    def get_active(self, comment_id: int) -> Optional[models.Comment]:
        return (
            self.db.query(models.Comment)
            .filter(models.Comment.id == comment_id, models.Comment.is_active == True)
            .first()
        )

    def create(self, *, post_id: int, author_id: int, content: str) -> models.Comment:
        comment = models.Comment(post_id=post_id, author_id=author_id, content=content)
        self.db.add(comment)
        self.db.query(models.Post).filter(models.Post.id == post_id).update(
            {models.Post.comment_count: increment(models.Post.comment_count)},
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def soft_delete(self, comment: models.Comment) -> models.Comment:
        if not comment.is_active:
            return comment
        now = utcnow()
        comment.is_active = False
        comment.deleted_at = now
        comment.updated_at = now
        self.db.query(models.Post).filter(models.Post.id == comment.post_id).update(
            {models.Post.comment_count: decrement(models.Post.comment_count)},
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def list_for_post(
        self, post_id: int, offset: int, limit: int
    ) -> tuple[list[models.Comment], int]:
        query = self.db.query(models.Comment).filter(
            models.Comment.post_id == post_id, models.Comment.is_active == True
        )
        total = query.count()
        comments = (
            query.options(joinedload(models.Comment.author))
            .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return comments, total

    def recent_for_posts(self, post_ids: Iterable[int]) -> list[models.Comment]:
        """Active comments on any of ``post_ids``, newest first, in one query."""
        post_ids = list(post_ids)
        if not post_ids:
            return []
        return (
            self.db.query(models.Comment)
            .options(joinedload(models.Comment.author))
            .filter(models.Comment.post_id.in_(post_ids), models.Comment.is_active == True)
            .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
            .all()
        )

    def count_active(self) -> int:
        return (
            self.db.query(func.count(models.Comment.id))
            .filter(models.Comment.is_active == True)
            .scalar()
            or 0
        )
