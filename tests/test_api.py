"""
API contract tests for the FastAPI app.

Services are injected directly into the app module, the same objects the
startup event would build from settings.
"""

import json

import pytest
from fastapi.testclient import TestClient

from gateway.app import main
from gateway.app.services import AuthService, ChatLog
from gateway.settings import AuthSettings
from gateway.storage import InMemoryObjectSource, MediaCache, RetryPolicy


@pytest.fixture
def auth_settings():
    return AuthSettings(
        admin_username="admin",
        admin_password="secret",
        jwt_secret="test-secret",
    )


@pytest.fixture
def media_source():
    return InMemoryObjectSource({
        "photo.png": b"\x89PNG fake",
        "voice.ogg": b"OggS fake",
    })


@pytest.fixture
def chat_file(tmp_path):
    path = tmp_path / "chat.json"
    path.write_text(json.dumps([{"id": i, "text": f"message {i}"} for i in range(120)]))
    return path


@pytest.fixture
def client(monkeypatch, auth_settings, media_source, chat_file, cache_dir):
    async def no_sleep(seconds):
        return None

    monkeypatch.setattr(main, "auth_service", AuthService(auth_settings))
    monkeypatch.setattr(main, "chat_log", ChatLog(local_path=str(chat_file)))
    monkeypatch.setattr(main, "media_cache", MediaCache(
        source=media_source,
        cache_dir=str(cache_dir),
        eviction_seconds=60,
        retry_policy=RetryPolicy(sleep=no_sleep),
    ))
    return TestClient(main.app)


@pytest.fixture
def token(auth_settings):
    return AuthService(auth_settings).generate_token("admin")


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_health_reports_media_backend(self, client):
        response = client.get("/health")
        body = response.json()
        assert body["status"] == "healthy"
        assert body["media"]["backend"] == "memory"


class TestLogin:
    """POST /api/login and GET /api/check."""

    def test_login_success(self, client):
        response = client.post("/api/login", json={"username": "admin", "password": "secret"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["token"]

    def test_login_wrong_password(self, client):
        response = client.post("/api/login", json={"username": "admin", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"success": False}

    def test_issued_token_grants_access(self, client):
        token = client.post(
            "/api/login", json={"username": "admin", "password": "secret"}
        ).json()["token"]

        response = client.get("/api/check", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"loggedIn": True}

    def test_check_without_token(self, client):
        assert client.get("/api/check").json() == {"loggedIn": False}

    def test_check_with_garbage_token(self, client):
        response = client.get("/api/check", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.json() == {"loggedIn": False}


class TestChat:
    """GET /api/chat pages backwards from the newest message."""

    def test_requires_auth(self, client):
        response = client.get("/api/chat")
        assert response.status_code == 401

    def test_first_page_holds_newest_messages(self, client, auth_headers):
        response = client.get("/api/chat", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["page"] == 1
        assert body["totalPages"] == 3
        ids = [m["id"] for m in body["messages"]]
        assert ids == list(range(70, 120))

    def test_last_page_is_partial(self, client, auth_headers):
        response = client.get("/api/chat?page=3&pageSize=50", headers=auth_headers)

        ids = [m["id"] for m in response.json()["messages"]]
        assert ids == list(range(0, 20))

    def test_page_past_end_is_empty(self, client, auth_headers):
        response = client.get("/api/chat?page=4&pageSize=50", headers=auth_headers)

        assert response.json()["messages"] == []

    def test_custom_page_size(self, client, auth_headers):
        body = client.get("/api/chat?page=2&pageSize=25", headers=auth_headers).json()

        assert body["totalPages"] == 5
        assert [m["id"] for m in body["messages"]] == list(range(70, 95))

    def test_unreadable_chat_log(self, client, auth_headers, chat_file):
        chat_file.write_text("{not json")

        response = client.get("/api/chat", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Server error"


class TestMedia:
    """GET /api/media/{filename} serves through the cache."""

    def test_requires_auth(self, client, media_source):
        response = client.get("/api/media/photo.png")

        assert response.status_code == 401
        assert media_source.fetch_counts == {}

    def test_malformed_authorization_header(self, client):
        response = client.get("/api/media/photo.png", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_expired_token(self, client, auth_settings):
        auth_settings.token_expires_days = -1
        expired = AuthService(auth_settings).generate_token("admin")

        response = client.get("/api/media/photo.png", headers={"Authorization": f"Bearer {expired}"})

        assert response.status_code == 401

    def test_serves_file_with_content_type(self, client, auth_headers, media_source):
        response = client.get("/api/media/photo.png", headers=auth_headers)

        assert response.status_code == 200
        assert response.content == b"\x89PNG fake"
        assert response.headers["content-type"].startswith("image/png")
        assert media_source.fetch_counts == {"photo.png": 1}

    def test_second_request_is_served_from_cache(self, client, auth_headers, media_source, cache_dir):
        client.get("/api/media/voice.ogg", headers=auth_headers)
        response = client.get("/api/media/voice.ogg", headers=auth_headers)

        assert response.status_code == 200
        assert response.content == b"OggS fake"
        assert media_source.fetch_counts == {"voice.ogg": 1}
        assert (cache_dir / "voice.ogg").exists()

    def test_missing_object(self, client, auth_headers):
        response = client.get("/api/media/nope.jpg", headers=auth_headers)
        assert response.status_code == 404

    def test_backslash_traversal_rejected(self, client, auth_headers, media_source):
        response = client.get("/api/media/..%5Csecret", headers=auth_headers)

        assert response.status_code == 400
        assert media_source.fetch_counts == {}

    def test_service_not_initialized(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr(main, "media_cache", None)

        response = client.get("/api/media/photo.png", headers=auth_headers)

        assert response.status_code == 503
