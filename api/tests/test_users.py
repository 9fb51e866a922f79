from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

PNG_BYTES = bytes.fromhex("89504e470d0a1a0a0000000d49484452")


def test_get_my_profile(client, make_user, auth_headers):
    alice = make_user("alice")
    response = client.get("/users/me", headers=auth_headers(alice))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "alice@example.com"
    assert data["is_admin"] is False


def test_update_profile_applies_whitelisted_fields_only(client, db: Session, make_user, auth_headers):
    alice = make_user("alice")

    response = client.put(
        "/users/me",
        json={
            "bio": "Curious",
            "website": "https://example.com",
            "profile_visibility": "followers_only",
            "is_admin": True,
            "followers_count": 1000,
            "username": "mallory",
        },
        headers=auth_headers(alice),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["bio"] == "Curious"
    assert data["website"] == "https://example.com"
    assert data["profile_visibility"] == "followers_only"
    assert data["is_admin"] is False
    assert data["followers_count"] == 0
    assert data["username"] == "alice"
    db.refresh(alice)
    assert alice.is_admin is False


def test_update_profile_with_nothing_to_change(client, make_user, auth_headers):
    alice = make_user("alice")
    response = client.patch("/users/me", json={"is_admin": True}, headers=auth_headers(alice))
    assert response.status_code == 400
    assert response.json()["message"] == "No valid fields to update"


@pytest.mark.parametrize(
    "payload",
    [
        {"bio": "x" * 161},
        {"website": "not a url"},
        {"profile_visibility": "secret"},
        {"first_name": ""},
    ],
)
def test_update_profile_validation(client, make_user, auth_headers, payload):
    alice = make_user("alice")
    response = client.put("/users/me", json=payload, headers=auth_headers(alice))
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_update_profile_multipart_avatar(client, make_user, auth_headers):
    alice = make_user("alice")
    response = client.put(
        "/users/me",
        data={"location": "Wonderland"},
        files={"avatar": ("me.png", PNG_BYTES, "image/png")},
        headers=auth_headers(alice),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["location"] == "Wonderland"
    assert data["avatar_url"].startswith("/vault/avatar/")


def test_update_profile_rejects_bad_avatar(client, make_user, auth_headers):
    alice = make_user("alice")
    response = client.put(
        "/users/me",
        files={"avatar": ("me.gif", b"GIF89a", "image/gif")},
        headers=auth_headers(alice),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Only JPEG and PNG images are allowed"


def test_search_users(client, make_user, auth_headers):
    alice = make_user("alice")
    popular = make_user("jordan_pop", followers_count=10)
    quiet = make_user("jordan_quiet")
    make_user("jordan_gone", is_active=False)
    make_user("someone", first_name="Jordana")
    client.post(f"/users/{quiet.id}/follow", headers=auth_headers(alice))

    response = client.get("/users/search", params={"q": "jord"}, headers=auth_headers(alice))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data[0]["id"] == popular.id
    assert {u["username"] for u in data} == {"jordan_pop", "jordan_quiet", "someone"}
    assert {u["username"]: u["is_following"] for u in data}["jordan_quiet"] is True
    assert response.json()["pagination"]["total"] == 3


def test_search_users_excludes_self_and_optionally_following(client, make_user, auth_headers):
    alice = make_user("alice", first_name="Searchable")
    bob = make_user("bob", first_name="Searchable")
    make_user("carol", first_name="Searchable")
    client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    everyone = client.get("/users/search", params={"q": "search"}, headers=auth_headers(alice))
    strangers = client.get(
        "/users/search",
        params={"q": "search", "exclude_following": True},
        headers=auth_headers(alice),
    )

    assert {u["username"] for u in everyone.json()["data"]} == {"bob", "carol"}
    assert [u["username"] for u in strangers.json()["data"]] == ["carol"]


def test_search_users_short_query(client, make_user, auth_headers):
    alice = make_user("alice")
    response = client.get("/users/search", params={"q": "a"}, headers=auth_headers(alice))
    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["pagination"]["total"] == 0


def test_get_user_profile(client, make_user, auth_headers):
    alice = make_user("alice")
    bob = make_user("bob")
    client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))

    other = client.get(f"/users/{bob.id}", headers=auth_headers(alice)).json()["data"]
    own = client.get(f"/users/{alice.id}", headers=auth_headers(alice)).json()["data"]

    assert other["is_following"] is True
    assert other["is_own_profile"] is False
    assert other["followers_count"] == 1
    assert "email" not in other
    assert own["is_own_profile"] is True
    assert own["is_following"] is False


def test_get_inactive_user_profile(client, make_user, auth_headers):
    alice = make_user("alice")
    ghost = make_user("ghost", is_active=False)
    response = client.get(f"/users/{ghost.id}", headers=auth_headers(alice))
    assert response.status_code == 404


def test_user_posts_respect_visibility(client, make_user, auth_headers, create_post):
    viewer = make_user("viewer")
    private = make_user("hermit", profile_visibility="private")
    selective = make_user("selective", profile_visibility="followers_only")
    create_post(private, "secret")
    create_post(selective, "members only")

    hidden = client.get(f"/users/{private.id}/posts", headers=auth_headers(viewer))
    assert hidden.status_code == 403
    assert hidden.json()["message"] == "This profile is private"

    own = client.get(f"/users/{private.id}/posts", headers=auth_headers(private))
    assert own.status_code == 200
    assert len(own.json()["data"]) == 1

    gated = client.get(f"/users/{selective.id}/posts", headers=auth_headers(viewer))
    assert gated.status_code == 403
    assert gated.json()["message"] == "This profile is only visible to followers"

    client.post(f"/users/{selective.id}/follow", headers=auth_headers(viewer))
    opened = client.get(f"/users/{selective.id}/posts", headers=auth_headers(viewer))
    assert opened.status_code == 200
    assert [p["content"] for p in opened.json()["data"]] == ["members only"]


def test_public_user_posts_allow_anonymous(client, make_user, create_post):
    author = make_user("open")
    create_post(author, "hello everyone")
    response = client.get(f"/users/{author.id}/posts")
    assert response.status_code == 200
    assert response.json()["data"][0]["is_liked"] is False
