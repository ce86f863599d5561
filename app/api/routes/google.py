import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from app.api.deps import get_google_flow, get_user_store
from app.core.config import settings
from app.core.store import UserStore
from app.services.google_auth_service import GoogleOAuthFlow, OAuthFlowError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["google"])


def _with_query(base: str, params: dict[str, str]) -> str:
    """Append params to a configured redirect target that may already carry a query."""
    sep = "&" if "?" in base else "?"
    return f"{base}{sep}{urlencode(params)}"


def _failure_redirect(tag: str) -> RedirectResponse:
    url = _with_query(settings.oauth_failure_redirect, {"error": tag})
    return RedirectResponse(url=url, status_code=302)


@router.get("/google")
async def google_login(flow: GoogleOAuthFlow = Depends(get_google_flow)) -> RedirectResponse:
    return RedirectResponse(url=flow.authorization_url(), status_code=302)


@router.get("/google/callback")
async def google_callback(
    code: str | None = Query(None),
    flow: GoogleOAuthFlow = Depends(get_google_flow),
    store: UserStore = Depends(get_user_store),
) -> RedirectResponse:
    try:
        token = await flow.complete(code, store)
    except OAuthFlowError as e:
        logger.warning("Google sign-in failed (%s): %s", e.tag, e)
        return _failure_redirect(e.tag)
    except Exception as e:
        logger.exception("Google OAuth callback error: %s", e)
        return _failure_redirect("oauth_error")
    url = _with_query(settings.oauth_success_redirect, {"msg": "login-success", "token": token})
    return RedirectResponse(url=url, status_code=302)
