from __future__ import annotations

import re
from datetime import datetime
from typing import Generic, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator

from . import settings

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_HTTP_URL = TypeAdapter(HttpUrl)

PostCategory = Literal["general", "announcement", "question"]
ProfileVisibility = Literal["public", "private", "followers_only"]
NotificationType = Literal["follow", "like", "comment"]


# ============================================================================
# ENVELOPE
# ============================================================================


T = TypeVar("T")


class Pagination(BaseModel):
    """Offset pagination block attached to list responses."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    has_prev: bool = Field(alias="hasPrev")


class Envelope(BaseModel, Generic[T]):
    """Common response envelope: ``{success, data, message, pagination}``."""

    success: bool = True
    data: T | None = None
    message: str | None = None
    pagination: Pagination | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"]
    uptime_s: float


# ============================================================================
# USERS
# ============================================================================


class UserSummary(BaseModel):
    """Minimal author projection embedded in posts, comments and notifications."""

    id: int
    username: str
    first_name: str
    last_name: str
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserPublic(UserSummary):
    """Public profile fields."""

    bio: str | None = None
    website: str | None = None
    location: str | None = None
    profile_visibility: ProfileVisibility = "public"
    followers_count: int = 0
    following_count: int = 0
    posts_count: int = 0
    created_at: datetime


class UserFull(UserPublic):
    """Profile as seen by its owner or an admin."""

    email: str
    is_active: bool
    is_admin: bool
    updated_at: datetime | None = None
    last_login: datetime | None = None


class UserProfile(UserPublic):
    """Another user's profile with the viewer's relationship to it."""

    is_following: bool = False
    is_own_profile: bool = False


class UserSearchResult(UserSummary):
    bio: str | None = None
    followers_count: int = 0
    is_following: bool = False


class FollowListEntry(UserSummary):
    bio: str | None = None
    followers_count: int = 0
    is_following: bool = False
    followed_at: datetime


class UserUpdate(BaseModel):
    """Whitelisted profile fields; anything else in the payload is ignored."""

    model_config = ConfigDict(extra="ignore")

    first_name: str | None = Field(None, min_length=1, max_length=50)
    last_name: str | None = Field(None, min_length=1, max_length=50)
    bio: str | None = Field(None, max_length=settings.MAX_BIO_LENGTH)
    website: str | None = None
    location: str | None = Field(None, max_length=100)
    profile_visibility: ProfileVisibility | None = None

    @field_validator("website")
    @classmethod
    def _website_is_url(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return value
        _HTTP_URL.validate_python(value)
        return value


class FollowResult(BaseModel):
    is_following: bool
    followers_count: int


# ============================================================================
# AUTH
# ============================================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    username: str = Field(..., min_length=3, max_length=30)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=100)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)

    @field_validator("username")
    @classmethod
    def _username_chars(cls, value: str) -> str:
        if not _USERNAME_RE.match(value):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return value

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str) -> str:
        value = value.strip()
        if not _EMAIL_RE.match(value):
            raise ValueError("Invalid email address")
        return value

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        return validate_password_strength(value)


def validate_password_strength(value: str) -> str:
    if not re.search(r"[a-z]", value) or not re.search(r"[A-Z]", value) or not re.search(r"\d", value):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )
    return value


class LoginRequest(BaseModel):
    """User login request; ``email`` accepts either an email address or a username."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=100)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserFull


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class ChangePasswordRequest(BaseModel):
    """Change password request."""

    current_password: str = Field(..., min_length=1, max_length=100)
    new_password: str = Field(..., min_length=8, max_length=100)

    @field_validator("new_password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        return validate_password_strength(value)


# ============================================================================
# POSTS, COMMENTS, LIKES
# ============================================================================


class CommentOut(BaseModel):
    id: int
    post_id: int
    content: str
    created_at: datetime
    updated_at: datetime | None = None
    author: UserSummary

    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _trimmed_length(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment cannot be empty")
        if len(value) > settings.MAX_COMMENT_LENGTH:
            raise ValueError(f"Comment cannot exceed {settings.MAX_COMMENT_LENGTH} characters")
        return value


class PostOut(BaseModel):
    id: int
    content: str
    image_url: str | None = None
    category: PostCategory
    like_count: int
    comment_count: int
    is_active: bool = True
    created_at: datetime
    updated_at: datetime | None = None
    author: UserSummary
    is_liked: bool = False

    model_config = ConfigDict(from_attributes=True)


class FeedPost(PostOut):
    recent_comments: list[CommentOut] = Field(default_factory=list)


class PostUpdate(BaseModel):
    content: str | None = None
    category: PostCategory | None = None

    @field_validator("content")
    @classmethod
    def _trimmed_length(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Post content cannot be empty")
        if len(value) > settings.MAX_POST_LENGTH:
            raise ValueError(f"Post content cannot exceed {settings.MAX_POST_LENGTH} characters")
        return value


class LikeStatus(BaseModel):
    is_liked: bool
    like_count: int


# ============================================================================
# NOTIFICATIONS
# ============================================================================


class NotificationPostRef(BaseModel):
    id: int
    content: str

    model_config = ConfigDict(from_attributes=True)


class NotificationOut(BaseModel):
    id: UUID
    notification_type: NotificationType
    message: str
    is_read: bool
    created_at: datetime
    sender: UserSummary
    post: NotificationPostRef | None = None

    model_config = ConfigDict(from_attributes=True)


class UnreadCount(BaseModel):
    unread_count: int


class MarkAllReadResult(BaseModel):
    updated: int


# ============================================================================
# ADMIN
# ============================================================================


class UserStatus(BaseModel):
    id: int
    is_active: bool


class AdminStats(BaseModel):
    total_users: int
    total_posts: int
    active_users_today: int
    total_comments: int
    total_likes: int
