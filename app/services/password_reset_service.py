import logging
import secrets
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

from app.core.config import settings
from app.core.store import UserSession
from app.models.user import User

logger = logging.getLogger(__name__)


def generate_reset_token() -> str:
    """64 hex chars, 256 bits from the OS CSPRNG."""
    return secrets.token_hex(32)


def build_reset_link(token: str) -> str:
    return f"{settings.reset_password_url}?{urlencode({'token': token})}"


def request_password_reset(session: UserSession, email: str) -> str | None:
    """Attach a fresh reset token to the account for email and return it.

    Unknown emails get None and no change, the caller answers the same
    either way so the endpoint cannot be used to discover which accounts exist.
    """
    user = session.get_by_email(email)
    if not user:
        logger.debug("Password reset requested for unknown email")
        return None
    token = generate_reset_token()
    expiry = datetime.now(UTC) + timedelta(minutes=settings.reset_token_expire_minutes)
    user.set_reset_token(token, expiry)
    session.mark_dirty()
    # No mail transport: the link is logged instead
    logger.info("Reset email would be sent to %s: %s", email, build_reset_link(token))
    return token


def reset_password(session: UserSession, token: str, new_password_hash: str) -> User | None:
    user = session.get_by_reset_token(token, datetime.now(UTC))
    if not user:
        return None
    user.password_hash = new_password_hash
    user.clear_reset_token()
    session.mark_dirty()
    logger.info("Password reset for %s", user.email)
    return user
