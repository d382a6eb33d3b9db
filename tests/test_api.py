"""HTTP and WebSocket surface tests."""
from __future__ import annotations

import os

from fastapi.testclient import TestClient

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("SEED_DEFAULTS", "true")

from socialstore.main import app  # noqa: E402


def _signup(client: TestClient, handle: str, secret: str = "secret1") -> dict:
    response = client.post(
        "/auth/signup",
        json={"handle": handle, "display_name": handle.title(), "secret": secret},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _auth(payload: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {payload['access_token']}"}


def test_health_reports_backend() -> None:
    with TestClient(app) as client:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["backend"] == "memory"


def test_signup_login_and_profile_update() -> None:
    with TestClient(app) as client:
        alice = _signup(client, "alice1", "wonderland")

        duplicate = client.post(
            "/auth/signup", json={"handle": "alice1", "display_name": "Other", "secret": "abc123"}
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["detail"] == "Handle already taken"

        assert client.get("/auth/handles/alice1").json()["available"] is False
        assert client.get("/auth/handles/zz").json()["available"] is False
        assert client.get("/auth/handles/zelda").json()["available"] is True

        bad = client.post("/auth/login", json={"handle": "alice1", "secret": "nope"})
        assert bad.status_code == 401

        login = client.post("/auth/login", json={"handle": "alice1", "secret": "wonderland"})
        assert login.status_code == 200
        headers = _auth(login.json())

        me = client.patch("/auth/me", headers=headers, json={"bio": "Down the rabbit hole"})
        assert me.status_code == 200
        assert me.json()["bio"] == "Down the rabbit hole"
        assert "credential_hash" not in me.json()

        assert client.get("/auth/me", headers=_auth(alice)).json()["bio"] == "Down the rabbit hole"


def test_missing_or_revoked_token_is_unauthorized() -> None:
    with TestClient(app) as client:
        assert client.get("/auth/me").status_code == 401
        alice = _signup(client, "alice1")
        assert client.post("/auth/logout", headers=_auth(alice)).status_code == 204
        assert client.get("/auth/me", headers=_auth(alice)).status_code == 401


def test_friend_flow_and_error_mapping() -> None:
    with TestClient(app) as client:
        alice = _signup(client, "alice1")
        bob = _signup(client, "bob1")

        own = client.post("/friends/requests", headers=_auth(alice), json={"handle": "alice1"})
        assert own.status_code == 400
        assert own.json()["detail"] == "Cannot add yourself"

        missing = client.post("/friends/requests", headers=_auth(alice), json={"handle": "ghost"})
        assert missing.status_code == 404

        sent = client.post("/friends/requests", headers=_auth(alice), json={"handle": "bob1"})
        assert sent.status_code == 201
        again = client.post("/friends/requests", headers=_auth(alice), json={"handle": "bob1"})
        assert again.status_code == 409

        overview = client.get("/friends/", headers=_auth(bob)).json()
        assert [item["id"] for item in overview["incoming_requests"]] == [alice["user_id"]]

        accepted = client.post(f"/friends/requests/{alice['user_id']}/accept", headers=_auth(bob))
        assert accepted.status_code == 200
        assert accepted.json()["from_id"] == alice["user_id"]

        status_response = client.get(f"/friends/{bob['user_id']}/status", headers=_auth(alice))
        assert status_response.json()["status"] == "friend"

        thread = client.get(f"/messages/{alice['user_id']}", headers=_auth(bob)).json()
        assert len(thread["messages"]) == 1
        assert thread["messages"][0]["text"].startswith("You are now friends with Alice1")

        assert client.delete(f"/friends/{alice['user_id']}", headers=_auth(bob)).status_code == 204
        assert client.get("/friends/", headers=_auth(alice)).json()["friends"] == []


def test_posts_visibility_likes_and_shares() -> None:
    with TestClient(app) as client:
        alice = _signup(client, "alice1")
        bob = _signup(client, "bob1")
        carol = _signup(client, "carol1")

        private = client.post(
            "/posts/", headers=_auth(alice), json={"text": "for bob", "visible_to": [bob["user_id"]]}
        )
        assert private.status_code == 201
        private_id = private.json()["id"]

        empty = client.post("/posts/", headers=_auth(alice), json={"text": "  "})
        assert empty.status_code == 422

        carol_feed = client.get("/posts/", headers=_auth(carol)).json()["items"]
        assert private_id not in {item["id"] for item in carol_feed}
        assert client.get(f"/posts/{private_id}", headers=_auth(carol)).status_code == 404

        liked = client.post(f"/posts/{private_id}/like", headers=_auth(bob))
        liked = client.post(f"/posts/{private_id}/like", headers=_auth(bob))
        assert liked.json()["likes"] == [bob["user_id"]]
        unliked = client.post(f"/posts/{private_id}/unlike", headers=_auth(bob))
        assert unliked.json()["likes"] == []

        commented = client.post(f"/posts/{private_id}/comments", headers=_auth(bob), json={"text": "thanks"})
        assert commented.status_code == 201
        assert [item["text"] for item in commented.json()["comments"]] == ["thanks"]

        share = client.post(f"/posts/{private_id}/share", headers=_auth(bob), json={"caption": "look"})
        assert share.status_code == 201
        reshare = client.post(f"/posts/{share.json()['id']}/share", headers=_auth(carol), json={})
        assert reshare.json()["shared_from_id"] == private_id

        profile = client.get(f"/users/{alice['user_id']}/posts", headers=_auth(bob)).json()["items"]
        assert [item["id"] for item in profile] == [private_id]

        notifications = client.get("/notifications/", headers=_auth(alice)).json()["items"]
        assert {item["kind"] for item in notifications} == {"comment"}


def test_admin_removal_routes() -> None:
    with TestClient(app) as client:
        admin = client.post("/auth/login", json={"handle": "admin", "secret": "admin"}).json()
        alice = _signup(client, "alice1")
        post = client.post("/posts/", headers=_auth(alice), json={"text": "spam"}).json()

        assert client.delete(f"/admin/posts/{post['id']}", headers=_auth(alice)).status_code == 403
        assert client.delete(f"/admin/posts/{post['id']}", headers=_auth(admin)).status_code == 204
        assert client.delete(f"/admin/users/{admin['user_id']}", headers=_auth(admin)).status_code == 403
        assert client.delete(f"/admin/users/{alice['user_id']}", headers=_auth(admin)).status_code == 204
        assert client.get("/auth/me", headers=_auth(alice)).status_code == 401


def test_inbox_and_read_receipts() -> None:
    with TestClient(app) as client:
        alice = _signup(client, "alice1")
        bob = _signup(client, "bob1")
        client.post("/friends/requests", headers=_auth(alice), json={"handle": "bob1"})
        client.post(f"/friends/requests/{alice['user_id']}/accept", headers=_auth(bob))

        sent = client.post(f"/messages/{bob['user_id']}", headers=_auth(alice), json={"text": "hello"})
        assert sent.status_code == 201

        inbox = client.get("/messages/", headers=_auth(bob)).json()
        assert inbox[0]["friend"]["id"] == alice["user_id"]
        assert inbox[0]["unread"] == 2

        marked = client.post(f"/messages/{alice['user_id']}/read", headers=_auth(bob))
        assert marked.json() == {"updated": 2}


def test_feed_socket_streams_initial_view() -> None:
    with TestClient(app) as client:
        alice = _signup(client, "alice1")
        with client.websocket_connect(f"/ws/feed?token={alice['access_token']}") as websocket:
            payload = websocket.receive_json()
            assert payload["type"] == "feed"
            assert [item["text"] for item in payload["data"]] == [
                "Welcome to NEOBOOK! This is the future of social connection."
            ]
            websocket.send_text('{"type": "ping"}')
            assert websocket.receive_json() in ({"type": "pong"}, {"type": "feed", "data": payload["data"]})
