import asyncio
import logging
import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from pydantic import TypeAdapter

from app.models.user import User

logger = logging.getLogger(__name__)

_USERS = TypeAdapter(list[User])


def _aware_utc(dt: datetime) -> datetime:
    """Timestamps written without an offset are treated as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


class UserSession:
    """One loaded snapshot of the store. Call mark_dirty() after any change."""

    def __init__(self, users: list[User]) -> None:
        self.users = users
        self.dirty = False

    def get_by_email(self, email: str) -> User | None:
        for user in self.users:
            if user.email == email:
                return user
        return None

    def get_by_reset_token(self, token: str, now: datetime) -> User | None:
        for user in self.users:
            if user.reset_token != token or user.reset_token_expiry is None:
                continue
            if _aware_utc(user.reset_token_expiry) > now:
                return user
        return None

    def add(self, user: User) -> None:
        self.users.append(user)
        self.mark_dirty()

    def mark_dirty(self) -> None:
        self.dirty = True


class UserStore:
    """users.json holding a JSON array of user records, rewritten whole on every change.

    All load/mutate/save cycles go through session(), which holds a lock for
    the duration so concurrent requests cannot overwrite each other's changes.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def load(self) -> list[User]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            logger.info("Users file %s not found, creating empty store", self.path)
            self.save([])
            return []
        return _USERS.validate_json(raw)

    def save(self, users: list[User]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = _USERS.dump_json(users, by_alias=True, exclude_none=True, indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d user(s) to %s", len(users), self.path)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[UserSession]:
        async with self._lock:
            users = await asyncio.to_thread(self.load)
            session = UserSession(users)
            yield session
            if session.dirty:
                await asyncio.to_thread(self.save, session.users)
