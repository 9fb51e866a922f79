"""Store-level behaviour that the routers rely on."""

from __future__ import annotations

from sqlalchemy.orm import Session

from socialconnect import models
from socialconnect.services.feed import FollowScopedQuery, TextSearchQuery
from socialconnect.stores.follows import SqlFollowStore
from socialconnect.stores.likes import SqlLikeStore
from socialconnect.stores.posts import SqlPostStore
from socialconnect.stores.users import SqlUserStore


def test_duplicate_like_insert_is_rejected_by_constraint(db: Session, make_user):
    user = make_user("liker")
    post = SqlPostStore(db).create(author_id=user.id, content="x", category="general")
    likes = SqlLikeStore(db)

    assert likes.add(user.id, post.id) is True
    assert likes.add(user.id, post.id) is False

    assert SqlPostStore(db).like_count(post.id) == 1
    assert likes.liked_post_ids(user.id, [post.id, post.id + 1]) == {post.id}


def test_duplicate_follow_insert_is_rejected_by_constraint(db: Session, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    follows = SqlFollowStore(db)

    assert follows.add(alice.id, bob.id) is True
    assert follows.add(alice.id, bob.id) is False

    db.refresh(bob)
    assert bob.followers_count == 1
    assert follows.following_ids(alice.id) == [bob.id]


def test_remove_missing_follow_leaves_counters(db: Session, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    assert SqlFollowStore(db).remove(alice.id, bob.id) is False
    db.refresh(bob)
    assert bob.followers_count == 0


def test_list_feed_variants(db: Session, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    posts = SqlPostStore(db)
    mine = posts.create(author_id=alice.id, content="tea time", category="general")
    theirs = posts.create(author_id=bob.id, content="tea party", category="general")
    deleted = posts.create(author_id=alice.id, content="tea spill", category="general")
    posts.soft_delete(deleted)

    scoped, scoped_total = posts.list_feed(
        FollowScopedQuery(viewer_id=alice.id, audience=frozenset({alice.id})), 0, 10
    )
    searched, searched_total = posts.list_feed(TextSearchQuery(viewer_id=alice.id, text="TEA"), 0, 10)
    limited, _ = posts.list_feed(
        TextSearchQuery(viewer_id=alice.id, text="tea", audience=frozenset({bob.id})), 0, 10
    )

    assert [p.id for p in scoped] == [mine.id]
    assert scoped_total == 1
    assert [p.id for p in searched] == [theirs.id, mine.id]
    assert searched_total == 2
    assert [p.id for p in limited] == [theirs.id]

    db.refresh(alice)
    assert alice.posts_count == 1
    assert db.get(models.Post, deleted.id).deleted_at is not None


def test_user_lookup_helpers(db: Session, make_user):
    alice = make_user("Alice", email="Alice@Example.com")
    make_user("bob")
    users = SqlUserStore(db)

    assert users.get_by_username("alice").id == alice.id
    assert users.get_by_email("ALICE@example.com").id == alice.id
    assert users.get_by_username("nobody") is None
