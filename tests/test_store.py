import asyncio
import json
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from app.core.store import UserSession, UserStore
from app.models.user import User


def test_load_creates_empty_file(store, users_path):
    assert store.load() == []
    assert json.loads(users_path.read_text()) == []


def test_load_creates_missing_parent_dirs(tmp_path):
    store = UserStore(tmp_path / "data" / "nested" / "users.json")
    assert store.load() == []
    assert store.path.exists()


def test_save_uses_camel_case_keys_and_omits_empty_fields(store, read_users):
    expiry = datetime(2030, 1, 1, tzinfo=UTC)
    store.save([
        User(email="a@x.com", name="a", password_hash="h"),
        User(email="g@x.com", google_id="123", reset_token="t", reset_token_expiry=expiry),
    ])
    raw = read_users()
    assert raw[0] == {"email": "a@x.com", "name": "a", "passwordHash": "h"}
    assert raw[1]["googleId"] == "123"
    assert raw[1]["resetToken"] == "t"
    assert datetime.fromisoformat(raw[1]["resetTokenExpiry"].replace("Z", "+00:00")) == expiry
    assert "passwordHash" not in raw[1]


def test_load_reads_existing_records_and_keeps_unknown_keys(store, users_path, read_users):
    users_path.write_text(json.dumps([
        {
            "email": "a@x.com",
            "passwordHash": "h",
            "resetToken": "abc",
            "resetTokenExpiry": "2030-01-01T00:00:00.000Z",
            "createdBy": "import",
        }
    ]))
    users = store.load()
    assert users[0].password_hash == "h"
    assert users[0].reset_token_expiry == datetime(2030, 1, 1, tzinfo=UTC)
    store.save(users)
    assert read_users()[0]["createdBy"] == "import"


def test_load_propagates_corrupt_file(store, users_path):
    users_path.write_text("{not json")
    with pytest.raises(ValidationError):
        store.load()


def test_save_leaves_no_temp_files(store, tmp_path):
    store.save([User(email="a@x.com")])
    store.save([User(email="b@x.com")])
    assert sorted(p.name for p in tmp_path.iterdir()) == ["users.json"]


def test_session_saves_only_when_dirty(store, monkeypatch):
    store.save([])
    saves = []
    original_save = store.save
    monkeypatch.setattr(store, "save", lambda users: saves.append(len(users)) or original_save(users))

    async def run():
        async with store.session() as session:
            assert session.get_by_email("a@x.com") is None
        async with store.session() as session:
            session.add(User(email="a@x.com"))

    asyncio.run(run())
    assert saves == [1]
    assert [u.email for u in store.load()] == ["a@x.com"]


def test_session_discards_changes_when_body_raises(store):
    async def run():
        async with store.session() as session:
            session.add(User(email="a@x.com"))
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(run())
    assert store.load() == []


def test_concurrent_sessions_do_not_lose_updates(store):
    async def add(email: str):
        async with store.session() as session:
            await asyncio.sleep(0.01)
            session.add(User(email=email))

    async def run():
        await asyncio.gather(*(add(f"user{i}@x.com") for i in range(5)))

    asyncio.run(run())
    assert sorted(u.email for u in store.load()) == [f"user{i}@x.com" for i in range(5)]


class TestUserSession:
    def test_get_by_email_is_case_sensitive(self):
        session = UserSession([User(email="A@x.com")])
        assert session.get_by_email("A@x.com") is not None
        assert session.get_by_email("a@x.com") is None

    def test_get_by_reset_token_ignores_expired(self):
        now = datetime.now(UTC)
        session = UserSession([
            User(email="old@x.com", reset_token="t", reset_token_expiry=now - timedelta(seconds=1)),
            User(email="new@x.com", reset_token="t2", reset_token_expiry=now + timedelta(minutes=5)),
        ])
        assert session.get_by_reset_token("t", now) is None
        assert session.get_by_reset_token("t2", now).email == "new@x.com"
        assert session.get_by_reset_token("missing", now) is None

    def test_get_by_reset_token_treats_naive_expiry_as_utc(self):
        now = datetime.now(UTC)
        naive = (now + timedelta(minutes=5)).replace(tzinfo=None)
        session = UserSession([User(email="a@x.com", reset_token="t", reset_token_expiry=naive)])
        assert session.get_by_reset_token("t", now) is not None

    def test_add_marks_dirty(self):
        session = UserSession([])
        assert not session.dirty
        session.add(User(email="a@x.com"))
        assert session.dirty
