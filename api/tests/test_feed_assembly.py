"""Unit tests for feed query selection and assembly, using in-memory stores."""

from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from socialconnect.services.feed import (
    FollowScopedQuery,
    TextSearchQuery,
    assemble_feed,
    build_feed_query,
    compute_audience,
    group_recent_comments,
)

NOW = datetime(2025, 1, 1, 12, 0, 0)


class FakeFollows:
    def __init__(self, graph: dict[int, list[int]]):
        self.graph = graph

    def following_ids(self, user_id: int) -> list[int]:
        return list(self.graph.get(user_id, []))


class FakeLikes:
    def __init__(self, liked: set[int]):
        self.liked = liked
        self.calls = 0

    def liked_post_ids(self, user_id, post_ids):
        self.calls += 1
        return {pid for pid in post_ids if pid in self.liked}


class FakeComments:
    def __init__(self, comments):
        self.comments = comments
        self.calls = 0

    def recent_for_posts(self, post_ids):
        self.calls += 1
        wanted = set(post_ids)
        return [c for c in self.comments if c.post_id in wanted]


class FakePosts:
    def __init__(self, posts):
        self.posts = posts
        self.queries = []

    def list_feed(self, query, offset, limit):
        self.queries.append(query)
        return self.posts[offset : offset + limit], len(self.posts)


def _user(user_id: int):
    return SimpleNamespace(
        id=user_id, username=f"user{user_id}", first_name="U", last_name="Ser", avatar_url=None
    )


def _post(post_id: int, author_id: int = 1):
    return SimpleNamespace(
        id=post_id,
        content=f"post {post_id}",
        image_url=None,
        category="general",
        like_count=0,
        comment_count=0,
        is_active=True,
        created_at=NOW - timedelta(minutes=post_id),
        updated_at=None,
        author=_user(author_id),
    )


def _comment(comment_id: int, post_id: int):
    return SimpleNamespace(
        id=comment_id,
        post_id=post_id,
        content=f"comment {comment_id}",
        created_at=NOW - timedelta(seconds=comment_id),
        updated_at=None,
        author=_user(9),
    )


def test_audience_contains_viewer_and_followed():
    follows = FakeFollows({1: [2, 3]})
    assert compute_audience(follows, 1) == frozenset({1, 2, 3})
    assert compute_audience(follows, 4) == frozenset({4})


@pytest.mark.parametrize("q", [None, "", "   \t"])
def test_blank_text_selects_follow_scope(q):
    query = build_feed_query(1, q, FakeFollows({1: [2]}))
    assert query == FollowScopedQuery(viewer_id=1, audience=frozenset({1, 2}))


def test_text_selects_global_search_by_default():
    query = build_feed_query(1, "  cats ", FakeFollows({1: [2]}), search_scope="global")
    assert query == TextSearchQuery(viewer_id=1, text="cats", audience=None)


def test_audience_scoped_search_carries_audience():
    query = build_feed_query(1, "cats", FakeFollows({1: [2]}), search_scope="audience")
    assert isinstance(query, TextSearchQuery)
    assert query.audience == frozenset({1, 2})


def test_group_recent_comments_caps_each_post():
    comments = [_comment(i, post_id=10) for i in range(1, 6)] + [_comment(7, post_id=11)]
    grouped = group_recent_comments([10, 11, 12], comments, per_post=3)

    assert [c.id for c in grouped[10]] == [1, 2, 3]
    assert [c.id for c in grouped[11]] == [7]
    assert grouped[12] == []


def test_group_recent_comments_ignores_unknown_posts():
    grouped = group_recent_comments([1], [_comment(1, post_id=99)], per_post=3)
    assert grouped == {1: []}


def test_assemble_feed_annotates_page():
    posts = FakePosts([_post(1), _post(2), _post(3)])
    likes = FakeLikes({2})
    comments = FakeComments([_comment(1, 1), _comment(2, 1)])
    query = FollowScopedQuery(viewer_id=1, audience=frozenset({1}))

    items, pagination = assemble_feed(
        query, posts=posts, likes=likes, comments=comments, page=1, limit=2
    )

    assert [item.id for item in items] == [1, 2]
    assert [item.is_liked for item in items] == [False, True]
    assert [c.id for c in items[0].recent_comments] == [1, 2]
    assert items[1].recent_comments == []
    assert pagination.total == 3
    assert pagination.has_next is True
    assert likes.calls == 1
    assert comments.calls == 1


def test_assemble_feed_empty_page_skips_annotation_queries():
    posts = FakePosts([_post(1), _post(2)])
    likes = FakeLikes(set())
    comments = FakeComments([])
    query = TextSearchQuery(viewer_id=1, text="x")

    items, pagination = assemble_feed(
        query, posts=posts, likes=likes, comments=comments, page=5, limit=2
    )

    assert items == []
    assert pagination.total == 2
    assert pagination.has_prev is True
    assert pagination.has_next is False
    assert likes.calls == 0
    assert comments.calls == 0


def test_assemble_feed_passes_query_through():
    posts = FakePosts([])
    query = FollowScopedQuery(viewer_id=3, audience=frozenset({3}))
    assemble_feed(
        query, posts=posts, likes=FakeLikes(set()), comments=FakeComments([]), page=1, limit=10
    )
    assert posts.queries == [query]
