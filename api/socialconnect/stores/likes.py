"""SQLAlchemy-backed like store."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from .counters import decrement, increment


class SqlLikeStore:
    def __init__(self, db: Session):
        self.db = db

    def exists(self, user_id: int, post_id: int) -> bool:
        return (
            self.db.query(models.Like.id)
            .filter(models.Like.user_id == user_id, models.Like.post_id == post_id)
            .first()
            is not None
        )

    def add(self, user_id: int, post_id: int) -> bool:
        self.db.add(models.Like(user_id=user_id, post_id=post_id))
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            return False

        self.db.query(models.Post).filter(models.Post.id == post_id).update(
            {models.Post.like_count: increment(models.Post.like_count)},
            synchronize_session=False,
        )
        self.db.commit()
        return True

    def remove(self, user_id: int, post_id: int) -> bool:
        deleted = (
            self.db.query(models.Like)
            .filter(models.Like.user_id == user_id, models.Like.post_id == post_id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            self.db.rollback()
            return False

        self.db.query(models.Post).filter(models.Post.id == post_id).update(
            {models.Post.like_count: decrement(models.Post.like_count)},
            synchronize_session=False,
        )
        self.db.commit()
        return True

    def liked_post_ids(self, user_id: int, post_ids: Iterable[int]) -> set[int]:
        """Return which of ``post_ids`` the user has liked, in one query."""
        post_ids = list(post_ids)
        if not post_ids:
            return set()
        rows = (
            self.db.query(models.Like.post_id)
            .filter(models.Like.user_id == user_id, models.Like.post_id.in_(post_ids))
            .all()
        )
        return {row.post_id for row in rows}

    def count_all(self) -> int:
        return self.db.query(func.count(models.Like.id)).scalar() or 0
