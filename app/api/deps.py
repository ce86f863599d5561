from functools import lru_cache

from app.core.config import settings
from app.core.store import UserStore
from app.services.google_auth_service import GoogleOAuthFlow


@lru_cache
def get_user_store() -> UserStore:
    """Process-wide store; its lock serializes every read-modify-write of users.json."""
    return UserStore(settings.users_file)


def get_google_flow() -> GoogleOAuthFlow:
    return GoogleOAuthFlow()
