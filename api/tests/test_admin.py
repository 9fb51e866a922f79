from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from socialconnect import models
from socialconnect.db import engine


@pytest.fixture
def admin(make_user):
    return make_user("root", is_admin=True)


def test_admin_routes_require_admin(client, make_user, auth_headers):
    user = make_user("plain")
    for path in ("/admin/users", "/admin/posts", "/admin/stats"):
        response = client.get(path, headers=auth_headers(user))
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"


def test_list_users_with_filters(client, make_user, auth_headers, admin):
    make_user("active_one")
    make_user("inactive_one", is_active=False)

    everyone = client.get("/admin/users", headers=auth_headers(admin)).json()
    inactive = client.get("/admin/users", params={"status": "inactive"}, headers=auth_headers(admin)).json()
    searched = client.get("/admin/users", params={"search": "active_"}, headers=auth_headers(admin)).json()

    assert everyone["pagination"]["total"] == 3
    assert [u["username"] for u in inactive["data"]] == ["inactive_one"]
    assert {u["username"] for u in searched["data"]} == {"active_one", "inactive_one"}
    assert "email" in everyone["data"][0]


def test_toggle_user_active(client, db: Session, make_user, auth_headers, admin):
    target = make_user("target")

    off = client.post(f"/admin/users/{target.id}/deactivate", headers=auth_headers(admin))
    assert off.status_code == 200
    assert off.json()["data"] == {"id": target.id, "is_active": False}
    assert client.get("/auth/me", headers=auth_headers(target)).status_code == 401

    on = client.post(f"/admin/users/{target.id}/deactivate", headers=auth_headers(admin))
    assert on.json()["data"] == {"id": target.id, "is_active": True}

    actions = [a.action for a in db.query(models.AuditLog).order_by(models.AuditLog.created_at).all()]
    assert sorted(actions) == ["activate_user", "deactivate_user"]


def test_cannot_deactivate_admins(client, make_user, auth_headers, admin):
    other_admin = make_user("other_root", is_admin=True)

    other = client.post(f"/admin/users/{other_admin.id}/deactivate", headers=auth_headers(admin))
    self_ = client.post(f"/admin/users/{admin.id}/deactivate", headers=auth_headers(admin))
    missing = client.post("/admin/users/9999/deactivate", headers=auth_headers(admin))

    assert other.status_code == 403
    assert other.json()["message"] == "Cannot deactivate another admin"
    assert self_.status_code == 400
    assert missing.status_code == 404


def test_admin_posts_include_deleted(client, make_user, auth_headers, admin, create_post):
    author = make_user("author")
    create_post(author, "visible")
    gone = create_post(author, "removed")
    client.delete(f"/posts/{gone['id']}", headers=auth_headers(author))

    all_posts = client.get("/admin/posts", headers=auth_headers(admin)).json()
    inactive = client.get("/admin/posts", params={"status": "inactive"}, headers=auth_headers(admin)).json()

    assert all_posts["pagination"]["total"] == 2
    assert [p["id"] for p in inactive["data"]] == [gone["id"]]
    assert inactive["data"][0]["is_active"] is False


def test_stats(client, make_user, auth_headers, admin, create_post):
    author = make_user("author")
    fan = make_user("fan")
    post = create_post(author, "stat me")
    client.post(f"/posts/{post['id']}/like", headers=auth_headers(fan))
    client.post(f"/posts/{post['id']}/comments", json={"content": "hi"}, headers=auth_headers(fan))

    stats = client.get("/admin/stats", headers=auth_headers(admin)).json()["data"]

    assert stats["total_users"] == 3
    assert stats["total_posts"] == 1
    assert stats["total_comments"] == 1
    assert stats["total_likes"] == 1
    assert stats["active_users_today"] == 0


def test_toggle_user_active_when_audit_write_fails(client, db: Session, make_user, auth_headers, admin):
    target = make_user("target")
    models.AuditLog.__table__.drop(bind=engine)

    response = client.post(f"/admin/users/{target.id}/deactivate", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["data"] == {"id": target.id, "is_active": False}
    db.refresh(target)
    assert target.is_active is False
