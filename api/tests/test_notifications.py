from __future__ import annotations

import uuid

import pytest
from sqlalchemy.orm import Session

from socialconnect import models
from socialconnect.services.notifications import NotificationService
from socialconnect.stores.notifications import SqlNotificationStore


@pytest.fixture
def busy_author(client, make_user, auth_headers, create_post):
    """bob follows and likes alice's post, then comments on it."""
    alice = make_user("alice")
    bob = make_user("bob")
    post = create_post(alice, "popular")
    client.post(f"/users/{alice.id}/follow", headers=auth_headers(bob))
    client.post(f"/posts/{post['id']}/like", headers=auth_headers(bob))
    client.post(f"/posts/{post['id']}/comments", json={"content": "nice"}, headers=auth_headers(bob))
    return alice, bob, post


def test_list_notifications(client, auth_headers, busy_author):
    alice, bob, post = busy_author

    response = client.get("/notifications", headers=auth_headers(alice))

    assert response.status_code == 200
    data = response.json()["data"]
    assert {n["notification_type"] for n in data} == {"follow", "like", "comment"}
    assert all(n["sender"]["username"] == "bob" for n in data)
    assert all(n["is_read"] is False for n in data)
    with_post = [n for n in data if n["notification_type"] != "follow"]
    assert all(n["post"]["id"] == post["id"] for n in with_post)
    assert response.json()["pagination"]["total"] == 3


def test_unread_count_and_mark_read(client, auth_headers, busy_author):
    alice, _, _ = busy_author
    headers = auth_headers(alice)

    assert client.get("/notifications/count", headers=headers).json()["data"] == {"unread_count": 3}

    first = client.get("/notifications", headers=headers).json()["data"][0]
    response = client.post(f"/notifications/{first['id']}/read", headers=headers)
    assert response.status_code == 200

    assert client.get("/notifications/count", headers=headers).json()["data"] == {"unread_count": 2}
    unread = client.get("/notifications", params={"unread_only": True}, headers=headers).json()
    assert first["id"] not in {n["id"] for n in unread["data"]}

    marked = client.post("/notifications/mark-all-read", headers=headers)
    assert marked.json()["data"] == {"updated": 2}
    assert client.get("/notifications/count", headers=headers).json()["data"] == {"unread_count": 0}


def test_cannot_mark_someone_elses_notification(client, auth_headers, busy_author):
    alice, bob, _ = busy_author
    notification_id = client.get("/notifications", headers=auth_headers(alice)).json()["data"][0]["id"]

    response = client.post(f"/notifications/{notification_id}/read", headers=auth_headers(bob))

    assert response.status_code == 403


def test_mark_unknown_notification(client, make_user, auth_headers):
    alice = make_user("alice")
    response = client.post(f"/notifications/{uuid.uuid4()}/read", headers=auth_headers(alice))
    assert response.status_code == 404
    assert response.json()["message"] == "Notification not found"


def test_notify_skips_self(db: Session, make_user):
    alice = make_user("alice")
    result = NotificationService.notify(
        SqlNotificationStore(db),
        recipient_id=alice.id,
        sender=alice,
        notification_type="follow",
    )
    assert result is None
    assert db.query(models.Notification).count() == 0


class _FailingStore:
    def create(self, **kwargs):
        from sqlalchemy.exc import OperationalError

        raise OperationalError("INSERT", {}, Exception("database is locked"))


def test_notify_failure_is_swallowed(make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    result = NotificationService.notify(
        _FailingStore(), recipient_id=bob.id, sender=alice, notification_type="like", post_id=1
    )
    assert result is None
