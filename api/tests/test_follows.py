from __future__ import annotations

from sqlalchemy.orm import Session

from socialconnect import models


def test_follow_updates_counters(client, db: Session, make_user, auth_headers):
    alice = make_user("alice")
    bob = make_user("bob")

    response = client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    assert response.status_code == 200
    assert response.json()["data"] == {"is_following": True, "followers_count": 1}
    db.refresh(alice)
    db.refresh(bob)
    assert alice.following_count == 1
    assert bob.followers_count == 1


def test_cannot_follow_self(client, db: Session, make_user, auth_headers):
    alice = make_user("alice")

    response = client.post(f"/users/{alice.id}/follow", headers=auth_headers(alice))

    assert response.status_code == 400
    assert response.json()["message"] == "You cannot follow yourself"
    assert db.query(models.Follow).count() == 0


def test_duplicate_follow_conflicts(client, db: Session, make_user, auth_headers):
    alice = make_user("alice")
    bob = make_user("bob")
    client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    response = client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    assert response.status_code == 409
    assert response.json()["message"] == "You are already following this user"
    db.refresh(bob)
    assert bob.followers_count == 1


def test_follow_inactive_or_missing_user(client, make_user, auth_headers):
    alice = make_user("alice")
    ghost = make_user("ghost", is_active=False)

    inactive = client.post(f"/users/{ghost.id}/follow", headers=auth_headers(alice))
    missing = client.post("/users/9999/follow", headers=auth_headers(alice))

    assert inactive.status_code == 404
    assert inactive.json()["message"] == "Target user not found"
    assert missing.status_code == 404


def test_unfollow(client, db: Session, make_user, auth_headers):
    alice = make_user("alice")
    bob = make_user("bob")
    client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    response = client.delete(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    assert response.status_code == 200
    assert response.json()["data"] == {"is_following": False, "followers_count": 0}
    db.refresh(alice)
    assert alice.following_count == 0


def test_unfollow_when_not_following_keeps_counters(client, db: Session, make_user, auth_headers):
    alice = make_user("alice")
    bob = make_user("bob")

    response = client.delete(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    assert response.status_code == 200
    db.refresh(alice)
    db.refresh(bob)
    assert alice.following_count == 0
    assert bob.followers_count == 0


def test_unfollow_self_and_missing(client, make_user, auth_headers):
    alice = make_user("alice")
    assert client.delete(f"/users/{alice.id}/follow", headers=auth_headers(alice)).status_code == 400
    assert client.delete("/users/9999/follow", headers=auth_headers(alice)).status_code == 404


def test_follow_lists(client, make_user, auth_headers):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))
    client.post(f"/users/{carol.id}/follow", headers=auth_headers(alice))
    client.post(f"/users/{alice.id}/follow", headers=auth_headers(bob))

    following = client.get(f"/users/{alice.id}/following", headers=auth_headers(bob)).json()
    followers = client.get(f"/users/{alice.id}/followers", headers=auth_headers(alice)).json()

    assert [u["username"] for u in following["data"]] == ["carol", "bob"]
    assert following["pagination"]["total"] == 2
    assert {u["username"]: u["is_following"] for u in following["data"]} == {
        "carol": False,
        "bob": False,
    }
    assert [u["username"] for u in followers["data"]] == ["bob"]
    assert followers["data"][0]["is_following"] is True
    assert followers["data"][0]["followed_at"]


def test_follow_notifies_target(client, db: Session, make_user, auth_headers):
    alice = make_user("alice")
    bob = make_user("bob")
    client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    notification = db.query(models.Notification).one()
    assert notification.recipient_id == bob.id
    assert notification.notification_type == "follow"
    assert notification.post_id is None
    assert notification.message == "alice started following you"
