"""
Store interfaces for each persisted entity.

Route handlers and services depend on these protocols only; the SQLAlchemy
implementations live next to this module and are wired per request in
``deps.py``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional, Protocol
from uuid import UUID

from ..models import Comment, Notification, Post, User

if TYPE_CHECKING:
    from ..services.feed import FeedQuery


@dataclass(frozen=True)
class PostFilter:
    """Filters for the plain post listing."""

    category: Optional[str] = None
    author_id: Optional[int] = None


class UserStore(Protocol):
    def get(self, user_id: int) -> Optional[User]:
        ...

    def get_active(self, user_id: int) -> Optional[User]:
        ...

    def get_by_username(self, username: str) -> Optional[User]:
        ...

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def create(
        self, *, username: str, email: str, first_name: str, last_name: str
    ) -> User:
        ...

    def update_profile(self, user: User, changes: dict) -> User:
        ...

    def touch_last_login(self, user: User) -> None:
        ...

    def set_active(self, user: User, is_active: bool) -> User:
        ...

    def search(
        self, text: str, *, exclude_ids: Iterable[int] = (), offset: int = 0, limit: int = 10
    ) -> tuple[list[User], int]:
        ...

    def list_for_admin(
        self,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[User], int]:
        ...

    def count_all(self) -> int:
        ...

    def count_active_since(self, since: datetime) -> int:
        ...


class PostStore(Protocol):
    def get(self, post_id: int) -> Optional[Post]:
        ...

    def get_active(self, post_id: int) -> Optional[Post]:
        ...

    def create(
        self, *, author_id: int, content: str, category: str, image_url: Optional[str] = None
    ) -> Post:
        ...

    def update(self, post: Post, changes: dict) -> Post:
        ...

    def soft_delete(self, post: Post) -> Post:
        ...

    def set_image(self, post: Post, image_url: Optional[str]) -> Post:
        ...

    def like_count(self, post_id: int) -> int:
        ...

    def list_page(
        self, filters: PostFilter, offset: int, limit: int
    ) -> tuple[list[Post], int]:
        ...

    def list_feed(
        self, query: "FeedQuery", offset: int, limit: int
    ) -> tuple[list[Post], int]:
        ...

    def list_for_admin(
        self, *, is_active: Optional[bool], offset: int, limit: int
    ) -> tuple[list[Post], int]:
        ...

    def count_active(self) -> int:
        ...


class FollowStore(Protocol):
    def following_ids(self, user_id: int) -> list[int]:
        ...

    def exists(self, follower_id: int, following_id: int) -> bool:
        ...

    def add(self, follower_id: int, following_id: int) -> bool:
        """Create the edge; False when it already exists."""
        ...

    def remove(self, follower_id: int, following_id: int) -> bool:
        """Delete the edge; False when there was nothing to delete."""
        ...

    def following_among(self, viewer_id: int, candidate_ids: Iterable[int]) -> set[int]:
        ...

    def list_following(
        self, user_id: int, offset: int, limit: int
    ) -> tuple[list[tuple[User, datetime]], int]:
        ...

    def list_followers(
        self, user_id: int, offset: int, limit: int
    ) -> tuple[list[tuple[User, datetime]], int]:
        ...


class LikeStore(Protocol):
    def exists(self, user_id: int, post_id: int) -> bool:
        ...

    def add(self, user_id: int, post_id: int) -> bool:
        """Create the like; False when it already exists."""
        ...

    def remove(self, user_id: int, post_id: int) -> bool:
        ...

    def liked_post_ids(self, user_id: int, post_ids: Iterable[int]) -> set[int]:
        ...

    def count_all(self) -> int:
        ...


class CommentStore(Protocol):
    def get_active(self, comment_id: int) -> Optional[Comment]:
        ...

    def create(self, *, post_id: int, author_id: int, content: str) -> Comment:
        ...

    def soft_delete(self, comment: Comment) -> Comment:
        ...

    def list_for_post(
        self, post_id: int, offset: int, limit: int
    ) -> tuple[list[Comment], int]:
        ...

    def recent_for_posts(self, post_ids: Iterable[int]) -> list[Comment]:
        ...

    def count_active(self) -> int:
        ...


class NotificationStore(Protocol):
    def create(
        self,
        *,
        recipient_id: int,
        sender_id: int,
        notification_type: str,
        message: str,
        post_id: Optional[int] = None,
    ) -> Notification:
        ...

    def list_for_recipient(
        self, recipient_id: int, *, unread_only: bool, offset: int, limit: int
    ) -> tuple[list[Notification], int]:
        ...

    def unread_count(self, recipient_id: int) -> int:
        ...

    def get(self, notification_id: UUID) -> Optional[Notification]:
        ...

    def mark_read(self, notification: Notification) -> Notification:
        ...

    def mark_all_read(self, recipient_id: int) -> int:
        ...

