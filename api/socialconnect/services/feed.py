"""
Feed assembly.

A feed request is modelled as one of two query variants:

- ``FollowScopedQuery``: posts authored by the viewer or by anyone the viewer
  follows (the *audience set*).
- ``TextSearchQuery``: posts whose content, or whose author's username, first
  name or last name, contains the search text. Network-wide by default; when
  ``FEED_SEARCH_SCOPE=audience`` it carries the audience set and is limited to it.

``assemble_feed`` then fetches one page of posts, annotates each with the
viewer's ``is_liked`` flag and attaches a short preview of the newest comments.
Both annotations are single batched queries over the page's post ids, and
neither runs when the page is empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence, Union

from .. import schemas, settings
from ..pagination import build_pagination, page_offset

if TYPE_CHECKING:
    from .. import models
    from ..stores.interfaces import CommentStore, FollowStore, LikeStore, PostStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FollowScopedQuery:
    viewer_id: int
    audience: frozenset[int]


@dataclass(frozen=True)
class TextSearchQuery:
    viewer_id: int
    text: str
    audience: frozenset[int] | None = None


FeedQuery = Union[FollowScopedQuery, TextSearchQuery]


def compute_audience(follows: "FollowStore", viewer_id: int) -> frozenset[int]:
    """The viewer plus everyone they follow. Never empty."""
    return frozenset([viewer_id, *follows.following_ids(viewer_id)])


def build_feed_query(
    viewer_id: int,
    q: str | None,
    follows: "FollowStore",
    *,
    search_scope: str | None = None,
) -> FeedQuery:
    """Pick the query variant from the (trimmed) search text."""
    scope = search_scope or settings.FEED_SEARCH_SCOPE
    text = (q or "").strip()

    if text:
        audience = compute_audience(follows, viewer_id) if scope == "audience" else None
        return TextSearchQuery(viewer_id=viewer_id, text=text, audience=audience)

    return FollowScopedQuery(viewer_id=viewer_id, audience=compute_audience(follows, viewer_id))


def group_recent_comments(
    post_ids: Iterable[int],
    comments: Sequence["models.Comment"],
    per_post: int,
) -> dict[int, list["models.Comment"]]:
    """
    Group newest-first ``comments`` by post, keeping at most ``per_post`` each.

    Every id in ``post_ids`` gets an entry, empty when the post has no comments.
    Input order is preserved inside each group.
    """
    grouped: dict[int, list["models.Comment"]] = {post_id: [] for post_id in post_ids}
    for comment in comments:
        bucket = grouped.get(comment.post_id)
        if bucket is not None and len(bucket) < per_post:
            bucket.append(comment)
    return grouped


def liked_flags(
    likes: "LikeStore", viewer_id: int, posts: Sequence["models.Post"]
) -> dict[int, bool]:
    if not posts:
        return {}
    liked = likes.liked_post_ids(viewer_id, [p.id for p in posts])
    return {p.id: p.id in liked for p in posts}


def annotate_posts(
    posts: Sequence["models.Post"], likes: "LikeStore", viewer_id: int
) -> list[schemas.PostOut]:
    """Serialize posts with the viewer's ``is_liked`` flag (one batched query)."""
    flags = liked_flags(likes, viewer_id, posts)
    return [
        schemas.PostOut.model_validate(p).model_copy(update={"is_liked": flags.get(p.id, False)})
        for p in posts
    ]


def assemble_feed(
    query: FeedQuery,
    *,
    posts: "PostStore",
    likes: "LikeStore",
    comments: "CommentStore",
    page: int,
    limit: int,
    preview_size: int | None = None,
) -> tuple[list[schemas.FeedPost], schemas.Pagination]:
    preview_size = settings.COMMENT_PREVIEW_SIZE if preview_size is None else preview_size
    offset = page_offset(page, limit)

    rows, total = posts.list_feed(query, offset, limit)
    pagination = build_pagination(page, limit, total)

    if not rows:
        return [], pagination

    post_ids = [p.id for p in rows]
    liked = likes.liked_post_ids(query.viewer_id, post_ids)
    recent = group_recent_comments(post_ids, comments.recent_for_posts(post_ids), preview_size)

    logger.debug(
        f"Assembled feed page {pagination.page} for user {query.viewer_id}: "
        f"{len(rows)} posts of {total} ({type(query).__name__})"
    )

    items = []
    for post in rows:
        item = schemas.FeedPost.model_validate(post)
        items.append(
            item.model_copy(
                update={
                    "is_liked": post.id in liked,
                    "recent_comments": [
                        schemas.CommentOut.model_validate(c) for c in recent[post.id]
                    ],
                }
            )
        )
    return items, pagination
