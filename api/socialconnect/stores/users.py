"""SQLAlchemy-backed user store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)


def contains_pattern(text: str) -> str:
    """Build a LIKE pattern matching ``text`` anywhere, with wildcards escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlUserStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def get_active(self, user_id: int) -> Optional[models.User]:
        return (
            self.db.query(models.User)
            .filter(models.User.id == user_id, models.User.is_active == True)
            .first()
        )

    def get_by_username(self, username: str) -> Optional[models.User]:
        return (
            self.db.query(models.User)
            .filter(func.lower(models.User.username) == username.lower())
            .first()
        )

    def get_by_email(self, email: str) -> Optional[models.User]:
        return (
            self.db.query(models.User)
            .filter(func.lower(models.User.email) == email.lower())
            .first()
        )

    def create(
        self, *, username: str, email: str, first_name: str, last_name: str
    ) -> models.User:
        user = models.User(
            username=username,
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Created user {user.id} ({user.username})")
        return user

    def update_profile(self, user: models.User, changes: dict) -> models.User:
        for field, value in changes.items():
            setattr(user, field, value)
        user.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(user)
        return user

    def touch_last_login(self, user: models.User) -> None:
        user.last_login = utcnow()
        self.db.commit()

    def set_active(self, user: models.User, is_active: bool) -> models.User:
        user.is_active = is_active
        user.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(user)
        return user

    def search(
        self, text: str, *, exclude_ids: Iterable[int] = (), offset: int = 0, limit: int = 10
    ) -> tuple[list[models.User], int]:
        pattern = contains_pattern(text)
        query = self.db.query(models.User).filter(
            models.User.is_active == True,
            or_(
                models.User.username.ilike(pattern, escape="\\"),
                models.User.first_name.ilike(pattern, escape="\\"),
                models.User.last_name.ilike(pattern, escape="\\"),
            ),
        )
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            query = query.filter(models.User.id.notin_(exclude_ids))

        total = query.count()
        users = (
            query.order_by(models.User.followers_count.desc(), models.User.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return users, total

    def list_for_admin(
        self,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[models.User], int]:
        query = self.db.query(models.User)
        if search:
            pattern = contains_pattern(search)
            query = query.filter(
                or_(
                    models.User.username.ilike(pattern, escape="\\"),
                    models.User.first_name.ilike(pattern, escape="\\"),
                    models.User.last_name.ilike(pattern, escape="\\"),
                    models.User.email.ilike(pattern, escape="\\"),
                )
            )
        if is_active is not None:
            query = query.filter(models.User.is_active == is_active)

        total = query.count()
        users = (
            query.order_by(models.User.created_at.desc(), models.User.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return users, total

    def count_all(self) -> int:
        return self.db.query(func.count(models.User.id)).scalar() or 0

    def count_active_since(self, since: datetime) -> int:
        return (
            self.db.query(func.count(models.User.id))
            .filter(models.User.last_login >= since)
            .scalar()
            or 0
        )
