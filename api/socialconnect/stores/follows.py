"""SQLAlchemy-backed follow store."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from .counters import decrement, increment

logger = logging.getLogger(__name__)


class SqlFollowStore:
    def __init__(self, db: Session):
        self.db = db

    def following_ids(self, user_id: int) -> list[int]:
        rows = (
            self.db.query(models.Follow.following_id)
            .filter(models.Follow.follower_id == user_id)
            .all()
        )
        return [row.following_id for row in rows]

    def exists(self, follower_id: int, following_id: int) -> bool:
        return (
            self.db.query(models.Follow.id)
            .filter(
                models.Follow.follower_id == follower_id,
                models.Follow.following_id == following_id,
            )
            .first()
            is not None
        )

    def add(self, follower_id: int, following_id: int) -> bool:
        self.db.add(models.Follow(follower_id=follower_id, following_id=following_id))
        try:
            self.db.flush()
        except IntegrityError:
            # Unique (follower, following) lost a race with a concurrent request
            self.db.rollback()
            return False

        self._adjust_counts(follower_id, following_id, increment)
        self.db.commit()
        return True

    def remove(self, follower_id: int, following_id: int) -> bool:
        deleted = (
            self.db.query(models.Follow)
            .filter(
                models.Follow.follower_id == follower_id,
                models.Follow.following_id == following_id,
            )
            .delete(synchronize_session=False)
        )
        if not deleted:
            self.db.rollback()
            return False

        self._adjust_counts(follower_id, following_id, decrement)
        self.db.commit()
        return True

    def _adjust_counts(self, follower_id: int, following_id: int, op) -> None:
        self.db.query(models.User).filter(models.User.id == follower_id).update(
            {models.User.following_count: op(models.User.following_count)},
            synchronize_session=False,
        )
        self.db.query(models.User).filter(models.User.id == following_id).update(
            {models.User.followers_count: op(models.User.followers_count)},
            synchronize_session=False,
        )

    def following_among(self, viewer_id: int, candidate_ids: Iterable[int]) -> set[int]:
        candidate_ids = list(candidate_ids)
        if not candidate_ids:
            return set()
        rows = (
            self.db.query(models.Follow.following_id)
            .filter(
                models.Follow.follower_id == viewer_id,
                models.Follow.following_id.in_(candidate_ids),
            )
            .all()
        )
        return {row.following_id for row in rows}

    def list_following(
        self, user_id: int, offset: int, limit: int
    ) -> tuple[list[tuple[models.User, datetime]], int]:
        query = (
            self.db.query(models.User, models.Follow.created_at)
            .join(models.Follow, models.Follow.following_id == models.User.id)
            .filter(models.Follow.follower_id == user_id, models.User.is_active == True)
        )
        return self._page(query, offset, limit)

    def list_followers(
        self, user_id: int, offset: int, limit: int
    ) -> tuple[list[tuple[models.User, datetime]], int]:
        query = (
            self.db.query(models.User, models.Follow.created_at)
            .join(models.Follow, models.Follow.follower_id == models.User.id)
            .filter(models.Follow.following_id == user_id, models.User.is_active == True)
        )
        return self._page(query, offset, limit)

    @staticmethod
    def _page(query, offset: int, limit: int):
        total = query.count()
        rows = (
            query.order_by(models.Follow.created_at.desc(), models.Follow.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [(user, followed_at) for user, followed_at in rows], total
