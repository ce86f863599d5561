import os

# Settings are read at import time; configure before the app is imported.
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["GOOGLE_REDIRECT_URI"] = "http://testserver/auth/google/callback"

import json
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_google_flow, get_user_store
from app.core.store import UserStore
from app.main import app
from app.services.google_auth_service import GOOGLE_TOKEN_URL, GOOGLE_USERINFO_URL, GoogleOAuthFlow


@pytest.fixture()
def users_path(tmp_path: Path) -> Path:
    return tmp_path / "users.json"


@pytest.fixture()
def store(users_path: Path) -> UserStore:
    return UserStore(users_path)


@pytest.fixture()
def read_users(users_path: Path):
    """Raw records as written to disk."""

    def _read() -> list[dict]:
        if not users_path.exists():
            return []
        return json.loads(users_path.read_text(encoding="utf-8"))

    return _read


@pytest.fixture()
def client(store: UserStore):
    app.dependency_overrides[get_user_store] = lambda: store
    with TestClient(app, follow_redirects=False) as c:
        yield c
    app.dependency_overrides.clear()


def make_google_transport(
    email: str | None = "g@x.com",
    google_id: str | None = "google-123",
    name: str | None = "Gee",
    token_status: int = 200,
    userinfo_status: int = 200,
    calls: list | None = None,
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        url = str(request.url)
        if url == GOOGLE_TOKEN_URL:
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "ya29.test", "token_type": "Bearer"})
        if url == GOOGLE_USERINFO_URL:
            if userinfo_status != 200:
                return httpx.Response(userinfo_status, json={"error": "unauthorized"})
            info = {}
            if google_id is not None:
                info["id"] = google_id
            if email is not None:
                info["email"] = email
            if name is not None:
                info["name"] = name
            return httpx.Response(200, json=info)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


@pytest.fixture()
def google_transport():
    return make_google_transport


@pytest.fixture()
def use_google():
    """Route the callback's outbound calls to a fake Google built from the given options."""

    def _install(**kwargs) -> None:
        transport = make_google_transport(**kwargs)
        app.dependency_overrides[get_google_flow] = lambda: GoogleOAuthFlow(transport=transport)

    return _install
