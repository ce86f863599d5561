import enum
import logging
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.core.security import create_access_token
from app.core.store import UserSession, UserStore
from app.models.user import User, default_name

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class OAuthState(str, enum.Enum):
    NEW = "new"
    REDIRECTED = "redirected"
    EXCHANGING = "exchanging"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


class OAuthFlowError(Exception):
    """Aborts a Google sign-in; tag is passed to the frontend as ?error=<tag>."""

    def __init__(self, tag: str, message: str | None = None) -> None:
        super().__init__(message or tag)
        self.tag = tag


def get_google_authorization_url() -> str:
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": "email profile",
        "access_type": "offline",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def get_or_create_google_user(session: UserSession, email: str, google_id: str, name: str | None) -> User:
    user = session.get_by_email(email)
    if user:
        if not user.google_id:
            if not settings.google_link_existing_accounts:
                logger.warning("Refusing to link Google identity to existing account %s", email)
                raise OAuthFlowError("account_exists")
            user.google_id = google_id
            session.mark_dirty()
            logger.info("Linked Google identity to existing account %s", email)
        return user
    user = User(
        email=email,
        name=name or default_name(email),
        google_id=google_id,
    )
    session.add(user)
    logger.info("Created account for %s from Google sign-in", email)
    return user


class GoogleOAuthFlow:
    """One Google sign-in attempt.

    new -> redirected (consent URL handed out)
    new -> exchanging -> reconciling -> done (callback handled)
    any step may end in failed. Nothing is kept between the redirect and the
    callback; each callback builds a fresh flow.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.state = OAuthState.NEW
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    def authorization_url(self) -> str:
        url = get_google_authorization_url()
        self.state = OAuthState.REDIRECTED
        return url

    async def exchange_code(self, code: str) -> str:
        """Swap the authorization code for an access token."""
        if not settings.google_configured:
            logger.warning("Google OAuth not configured")
            raise OAuthFlowError("oauth_error", "Google OAuth not configured")
        async with self._client() as client:
            resp = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": settings.google_client_id,
                    "client_secret": settings.google_client_secret,
                    "redirect_uri": settings.google_redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        if resp.status_code != 200:
            logger.warning(
                "Google token exchange failed: status=%s body=%s redirect_uri=%s",
                resp.status_code,
                resp.text[:500],
                settings.google_redirect_uri,
            )
            raise OAuthFlowError("oauth_error", "Token exchange failed")
        access_token = resp.json().get("access_token")
        if not access_token:
            raise OAuthFlowError("oauth_error", "No access token from Google")
        return access_token

    async def fetch_user_info(self, access_token: str) -> dict:
        async with self._client() as client:
            resp = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        if resp.status_code != 200:
            logger.warning("Google userinfo failed: status=%s body=%s", resp.status_code, resp.text[:500])
            raise OAuthFlowError("oauth_error", "Failed to get user info from Google")
        return resp.json()

    def reconcile(self, session: UserSession, info: dict) -> User:
        email = info.get("email")
        if not email:
            raise OAuthFlowError("no_email", "Google account has no email")
        google_id = info.get("id")
        if not google_id:
            # A record needs a password or a provider id to be signed in to again
            raise OAuthFlowError("oauth_error", "Google profile has no id")
        return get_or_create_google_user(session, email=email, google_id=str(google_id), name=info.get("name"))

    async def complete(self, code: str | None, store: UserStore) -> str:
        """Run the callback half of the flow and return a session token for the user."""
        try:
            if not code:
                raise OAuthFlowError("no_code", "No authorization code")
            self.state = OAuthState.EXCHANGING
            logger.info("Google callback: exchanging code")
            try:
                access_token = await self.exchange_code(code)
                info = await self.fetch_user_info(access_token)
            except httpx.HTTPError as e:
                logger.warning("Google request failed: %s", e)
                raise OAuthFlowError("oauth_error", str(e)) from e
            self.state = OAuthState.RECONCILING
            logger.info("Google callback: reconciling email=%s", info.get("email"))
            async with store.session() as session:
                user = self.reconcile(session, info)
            token = create_access_token(user.email)
        except Exception:
            self.state = OAuthState.FAILED
            raise
        self.state = OAuthState.DONE
        return token
