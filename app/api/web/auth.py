"""Sign-in and sign-out routes."""

from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse

from app.config import settings
from app.dependencies import AuthContext, DatabaseSession, GoogleOAuth
from app.schemas.auth import LoginPageResponse, ProviderInfo
from app.services.auth_service import AuthService, start_login
from app.services.session_service import (
    SessionService,
    delete_session_cookie,
    set_session_cookie,
)

router = APIRouter()


def _set_oauth_cookie(response: RedirectResponse, key: str, value: str) -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        max_age=settings.oauth_cookie_max_age,
        path="/",
    )


@router.get(
    "/login",
    response_model=LoginPageResponse,
    status_code=status.HTTP_200_OK,
    summary="Available sign-in providers",
)
async def login_page() -> LoginPageResponse:
    """
    List sign-in providers.

    Returns:
        Providers with the URL that starts their sign-in flow
    """
    return LoginPageResponse(
        providers=[ProviderInfo(id="google", name="Google", login_url="/login/google")]
    )


@router.get(
    "/login/google",
    status_code=status.HTTP_302_FOUND,
    summary="Start Google sign-in",
)
async def google_login(oauth: GoogleOAuth) -> RedirectResponse:
    """
    Redirect to Google with a fresh state and PKCE verifier.

    Both values are stashed in short-lived cookies and checked on the callback.
    """
    authorization = start_login(oauth)

    response = RedirectResponse(authorization.url, status_code=status.HTTP_302_FOUND)
    _set_oauth_cookie(response, settings.oauth_state_cookie_name, authorization.state)
    _set_oauth_cookie(
        response, settings.oauth_verifier_cookie_name, authorization.code_verifier
    )
    return response


@router.get(
    "/login/google/callback",
    status_code=status.HTTP_302_FOUND,
    summary="Google sign-in callback",
)
async def google_callback(
    request: Request,
    db: DatabaseSession,
    oauth: GoogleOAuth,
    code: str | None = None,
    state: str | None = None,
) -> RedirectResponse:
    """
    Complete Google sign-in and issue a session.

    Args:
        request: Request carrying the stashed state and verifier cookies
        db: Database session
        oauth: Google OAuth client
        code: Authorization code
        state: State echoed by Google

    Returns:
        Redirect to the landing page with the session cookie set

    Raises:
        InvalidRequestException: Missing code, state or stashed cookies (400)
        CsrfMismatchException: State mismatch (400)
        ExchangeFailedException: Code exchange rejected (400)
        ConflictException: Email already linked to another account (409)
    """
    result = await AuthService(db, oauth).handle_google_callback(
        code=code,
        state=state,
        stored_state=request.cookies.get(settings.oauth_state_cookie_name),
        code_verifier=request.cookies.get(settings.oauth_verifier_cookie_name),
    )

    response = RedirectResponse(settings.landing_path, status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, result.token, result.session["expires_at"])
    response.delete_cookie(settings.oauth_state_cookie_name, path="/")
    response.delete_cookie(settings.oauth_verifier_cookie_name, path="/")
    return response


@router.api_route(
    "/logout",
    methods=["GET", "POST"],
    status_code=status.HTTP_302_FOUND,
    summary="Sign out",
)
async def logout(db: DatabaseSession, context: AuthContext) -> RedirectResponse:
    """
    Invalidate the current session if any and clear the cookie.

    Returns:
        Redirect to the login page
    """
    if context.session is not None:
        await SessionService(db).invalidate_session(context.session["id"])
    context.clear()

    response = RedirectResponse(settings.login_path, status_code=status.HTTP_302_FOUND)
    delete_session_cookie(response)
    return response
