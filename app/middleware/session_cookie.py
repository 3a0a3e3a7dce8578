"""Re-issues the session cookie when a request renewed its session."""

from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.services.session_service import set_session_cookie


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Keeps the browser cookie expiry in step with the sliding session window."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        context = getattr(request.state, "auth", None)
        if context is None or not context.renewed or context.session is None:
            return response

        # The handler may have replaced or cleared the cookie itself
        for header in response.headers.getlist("set-cookie"):
            if header.startswith(f"{settings.session_cookie_name}="):
                return response

        set_session_cookie(response, context.token, context.session["expires_at"])
        return response
