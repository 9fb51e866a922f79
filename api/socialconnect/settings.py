"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _choice_env(name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


# Content limits
MAX_POST_LENGTH: int = 280
MAX_COMMENT_LENGTH: int = 200
MAX_BIO_LENGTH: int = 160

POST_CATEGORIES: tuple[str, ...] = ("general", "announcement", "question")
PROFILE_VISIBILITIES: tuple[str, ...] = ("public", "private", "followers_only")
NOTIFICATION_TYPES: tuple[str, ...] = ("follow", "like", "comment")

# Pagination defaults
POSTS_PER_PAGE: int = _int_env("POSTS_PER_PAGE", 20)
COMMENTS_PER_PAGE: int = _int_env("COMMENTS_PER_PAGE", 20)
USERS_PER_PAGE: int = _int_env("USERS_PER_PAGE", 20)
NOTIFICATIONS_PER_PAGE: int = _int_env("NOTIFICATIONS_PER_PAGE", 20)
MAX_PAGE_SIZE: int = _int_env("MAX_PAGE_SIZE", 100)

# Number of recent comments attached to each feed post
COMMENT_PREVIEW_SIZE: int = _int_env("COMMENT_PREVIEW_SIZE", 3)

# Whether text search in the feed is network-wide ("global") or limited to
# the viewer's audience set ("audience").
FEED_SEARCH_SCOPE: str = _choice_env("FEED_SEARCH_SCOPE", "global", ("global", "audience"))

# Upload size limit for avatars and post images (bytes).
# Configured via .env: MAX_IMAGE_SIZE=2097152  (2 MiB)
MAX_IMAGE_SIZE_BYTES: int = _int_env("MAX_IMAGE_SIZE", 2 * 1024 * 1024)

RUN_MIGRATIONS_ON_STARTUP: bool = _bool_env("RUN_MIGRATIONS_ON_STARTUP", True)
