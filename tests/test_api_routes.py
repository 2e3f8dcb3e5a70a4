"""
tests/test_api_routes.py -- Integration tests for the auth and post routes.

These tests exercise the full stack: FastAPI routing -> require_identity
dependency -> AuthGate -> UserStore/SessionStore/PostStore -> response model
serialization and the {success, message} error envelope.

Coverage:
  - End-to-end: login -> create posts -> list posts, newest first
  - POST /login: 200, 401 (same body for unknown user and wrong password),
    400 on malformed or incomplete JSON, Cache-Control: no-store, 500 on
    session store failure without leaking backend text
  - POST /logout: 200, 400 without header, idempotent, revoked session is 401
  - POST /post and GET /posts: 401 without/with bad header whatever the
    body holds, 400 on empty or malformed content, expired session is 401
  - Wrong method -> 405 in the same envelope

Fixtures used (from conftest.py):
  - api: ApiHarness -- TestClient plus the stores and clock behind it.
    The seeded account is testuser / password123.
"""

from __future__ import annotations

from cache.store import KeyValueStoreError


def _failure(resp, status: int, message: str) -> None:
    assert resp.status_code == status, f"Expected {status}, got {resp.status_code}: {resp.text}"
    assert resp.json() == {"success": False, "message": message}


class TestEndToEnd:
    def test_login_post_and_list(self, api) -> None:
        resp = api.client.post("/login", json={"username": "testuser", "password": "password123"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Login successful"
        session_id = body["session_id"]
        assert session_id

        headers = {"X-Session-ID": session_id}
        first = api.client.post("/post", json={"content": "first"}, headers=headers)
        second = api.client.post("/post", json={"content": "hello"}, headers=headers)
        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json() == {"success": True, "message": "Post created", "post_id": second.json()["post_id"]}
        assert second.json()["post_id"] > first.json()["post_id"]

        listing = api.client.get("/posts", headers=headers)
        assert listing.status_code == 200
        data = listing.json()
        assert data["success"] is True
        newest = data["posts"][0]
        assert newest["content"] == "hello"
        assert newest["username"] == "testuser"
        assert newest["user_id"] == api.user_id
        assert newest["id"] == second.json()["post_id"]
        assert "created_at" in newest
        assert [p["content"] for p in data["posts"]] == ["hello", "first"]

    def test_posts_empty_list(self, api) -> None:
        token = api.login()
        resp = api.client.get("/posts", headers={"X-Session-ID": token})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "posts": []}

    def test_header_name_is_case_insensitive(self, api) -> None:
        token = api.login()
        resp = api.client.post("/post", json={"content": "hi"}, headers={"x-session-id": token})
        assert resp.status_code == 200


class TestLogin:
    def test_wrong_password(self, api) -> None:
        resp = api.client.post("/login", json={"username": "testuser", "password": "nope"})
        _failure(resp, 401, "Invalid credentials")

    def test_unknown_user_looks_like_wrong_password(self, api) -> None:
        wrong_pw = api.client.post("/login", json={"username": "testuser", "password": "nope"})
        unknown = api.client.post("/login", json={"username": "ghost", "password": "nope"})
        assert unknown.status_code == wrong_pw.status_code == 401
        assert unknown.json() == wrong_pw.json()

    def test_failed_login_has_no_session_id(self, api) -> None:
        resp = api.client.post("/login", json={"username": "testuser", "password": "nope"})
        assert "session_id" not in resp.json()

    def test_login_responses_are_not_cached(self, api) -> None:
        ok = api.client.post("/login", json={"username": "testuser", "password": "password123"})
        bad = api.client.post("/login", json={"username": "testuser", "password": "nope"})
        assert ok.headers["cache-control"] == "no-store"
        assert bad.headers["cache-control"] == "no-store"

    def test_malformed_json(self, api) -> None:
        resp = api.client.post("/login", content=b"{not json", headers={"Content-Type": "application/json"})
        _failure(resp, 400, "Invalid request")

    def test_missing_fields(self, api) -> None:
        resp = api.client.post("/login", json={"username": "testuser"})
        _failure(resp, 400, "Invalid request")

    def test_session_store_failure_is_500_without_details(self, api, monkeypatch) -> None:
        def broken_set(key, value, ttl_seconds):
            raise KeyValueStoreError("redis SET failed: Connection refused by redis:6379")

        monkeypatch.setattr(api.kv, "set", broken_set)
        resp = api.client.post("/login", json={"username": "testuser", "password": "password123"})
        _failure(resp, 500, "Failed to create session")
        assert "redis" not in resp.text
        assert resp.headers["cache-control"] == "no-store"

    def test_get_not_allowed(self, api) -> None:
        resp = api.client.get("/login")
        assert resp.status_code == 405
        assert resp.json()["success"] is False


class TestLogout:
    def test_logout_revokes_session(self, api) -> None:
        token = api.login()
        headers = {"X-Session-ID": token}
        resp = api.client.post("/logout", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Logout successful"}

        after = api.client.post("/post", json={"content": "too late"}, headers=headers)
        _failure(after, 401, "Invalid or expired session")

    def test_logout_missing_header(self, api) -> None:
        _failure(api.client.post("/logout"), 400, "No session ID provided")

    def test_logout_twice(self, api) -> None:
        token = api.login()
        headers = {"X-Session-ID": token}
        assert api.client.post("/logout", headers=headers).status_code == 200
        assert api.client.post("/logout", headers=headers).status_code == 200

    def test_logout_unknown_session_succeeds(self, api) -> None:
        resp = api.client.post("/logout", headers={"X-Session-ID": "never-issued"})
        assert resp.status_code == 200

    def test_logout_store_failure_is_500(self, api, monkeypatch) -> None:
        def broken_delete(key):
            raise KeyValueStoreError("redis DEL failed")

        monkeypatch.setattr(api.kv, "delete", broken_delete)
        _failure(api.client.post("/logout", headers={"X-Session-ID": "x"}), 500, "Failed to logout")


class TestProtectedRoutes:
    def test_create_post_without_header(self, api) -> None:
        resp = api.client.post("/post", json={"content": "hello"})
        _failure(resp, 401, "No session ID provided")

    def test_create_post_without_header_ignores_malformed_body(self, api) -> None:
        resp = api.client.post("/post", content=b"{not json", headers={"Content-Type": "application/json"})
        _failure(resp, 401, "No session ID provided")

    def test_create_post_with_forged_session_ignores_malformed_body(self, api) -> None:
        resp = api.client.post(
            "/post",
            content=b"{not json",
            headers={"X-Session-ID": "forged", "Content-Type": "application/json"},
        )
        _failure(resp, 401, "Invalid or expired session")

    def test_create_post_without_header_or_body(self, api) -> None:
        _failure(api.client.post("/post"), 401, "No session ID provided")

    def test_create_post_missing_body(self, api) -> None:
        token = api.login()
        _failure(api.client.post("/post", headers={"X-Session-ID": token}), 400, "Invalid request")

    def test_list_posts_without_header(self, api) -> None:
        _failure(api.client.get("/posts"), 401, "No session ID provided")

    def test_create_post_with_forged_session(self, api) -> None:
        resp = api.client.post("/post", json={"content": "hello"}, headers={"X-Session-ID": "forged"})
        _failure(resp, 401, "Invalid or expired session")

    def test_list_posts_with_forged_session(self, api) -> None:
        _failure(api.client.get("/posts", headers={"X-Session-ID": "forged"}), 401, "Invalid or expired session")

    def test_create_post_empty_content(self, api) -> None:
        token = api.login()
        resp = api.client.post("/post", json={"content": ""}, headers={"X-Session-ID": token})
        _failure(resp, 400, "Content cannot be empty")

    def test_create_post_malformed_body(self, api) -> None:
        token = api.login()
        resp = api.client.post(
            "/post",
            content=b"content=hello",
            headers={"X-Session-ID": token, "Content-Type": "application/json"},
        )
        _failure(resp, 400, "Invalid request")

    def test_create_post_wrong_content_type(self, api) -> None:
        token = api.login()
        resp = api.client.post("/post", json={"content": 42}, headers={"X-Session-ID": token})
        _failure(resp, 400, "Invalid request")

    def test_session_expires_after_24_hours(self, api) -> None:
        token = api.login()
        headers = {"X-Session-ID": token}
        api.clock.advance(24 * 60 * 60 - 1)
        assert api.client.get("/posts", headers=headers).status_code == 200
        api.clock.advance(1)
        _failure(api.client.get("/posts", headers=headers), 401, "Invalid or expired session")

    def test_post_is_attributed_to_session_user(self, api) -> None:
        from auth.models import User
        from auth.passwords import hash_password

        api.users.create_user(User(username="bob", password_hash=hash_password("bob-pass")))
        bob = api.login("bob", "bob-pass")
        api.client.post("/post", json={"content": "from bob"}, headers={"X-Session-ID": bob})

        listing = api.client.get("/posts", headers={"X-Session-ID": api.login()}).json()
        assert listing["posts"][0]["username"] == "bob"
