import asyncio
import logging
import secrets
from functools import lru_cache

from passlib.exc import PasswordValueError

from app.core.security import create_access_token, hash_password, verify_password
from app.core.store import UserSession, UserStore
from app.models.user import User, default_name

logger = logging.getLogger(__name__)


@lru_cache
def _dummy_password_hash() -> str:
    # Verified against when the account has no password, so misses cost the same as wrong passwords
    return hash_password(secrets.token_hex(16))


async def prepare_password_hash(password: str) -> str | None:
    """Hash password off the event loop. None when bcrypt refuses it (e.g. NUL bytes)."""
    try:
        return await asyncio.to_thread(hash_password, password)
    except PasswordValueError:
        return None


def create_user(session: UserSession, email: str, password_hash: str, name: str | None = None) -> User:
    user = User(
        email=email,
        name=name or default_name(email),
        password_hash=password_hash,
    )
    session.add(user)
    return user


def signup_user(
    session: UserSession, email: str, password_hash: str, name: str | None = None
) -> User | None:
    if session.get_by_email(email):
        return None
    user = create_user(session, email, password_hash, name)
    logger.info("Created account for %s", email)
    return user


async def login_user(store: UserStore, email: str, password: str) -> str | None:
    """Return a session token, or None for unknown email, wrong password or no password set.

    The hash is copied out under the store lock and checked after it is released.
    """
    async with store.session() as session:
        user = session.get_by_email(email)
        password_hash = user.password_hash if user else None
    candidate = password_hash or await asyncio.to_thread(_dummy_password_hash)
    valid = await asyncio.to_thread(verify_password, password, candidate)
    if not password_hash or not valid:
        return None
    return create_access_token(email)
