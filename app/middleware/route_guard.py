"""Edge route guard: cheap cookie-presence check in front of protected pages.

Only the presence of the session cookie is inspected, never its validity.
Protected handlers validate the session themselves, so a forged or stale
cookie gets past this layer and is rejected downstream.
"""

from collections.abc import Callable
from dataclasses import dataclass

import structlog
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings

logger = structlog.get_logger(__name__)

PUBLIC_ROUTES = ("/login", "/login/google", "/login/google/callback")

# API routes validate sessions themselves; the rest are framework assets
EXCLUDED_PREFIXES = (
    "/api",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/metrics",
    "/static",
    "/favicon.ico",
    "/robots.txt",
    "/sitemap.xml",
)


@dataclass(frozen=True)
class GuardDecision:
    """Either pass the request through or redirect it."""

    redirect_to: str | None = None

    @property
    def passes(self) -> bool:
        return self.redirect_to is None


PASS = GuardDecision()


def is_public_route(path: str) -> bool:
    return any(path.startswith(route) for route in PUBLIC_ROUTES)


def is_excluded(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in EXCLUDED_PREFIXES)


def evaluate_route(
    path: str,
    has_session_cookie: bool,
    login_path: str = "/login",
    landing_path: str = "/dashboard",
) -> GuardDecision:
    """
    Decide what to do with a request before it reaches a page handler.

    Args:
        path: Request path
        has_session_cookie: Whether a non-empty session cookie was sent
        login_path: Where anonymous visitors are sent
        landing_path: Where signed-in visitors of the login page are sent

    Returns:
        Guard decision
    """
    if has_session_cookie and path == login_path:
        return GuardDecision(redirect_to=landing_path)

    if not has_session_cookie and not is_public_route(path) and path != "/":
        return GuardDecision(redirect_to=login_path)

    return PASS


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Applies evaluate_route to every non-excluded request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if is_excluded(path):
            return await call_next(request)

        has_session_cookie = bool(request.cookies.get(settings.session_cookie_name))
        decision = evaluate_route(
            path,
            has_session_cookie,
            login_path=settings.login_path,
            landing_path=settings.landing_path,
        )
        if decision.passes:
            return await call_next(request)

        logger.debug("route_guard_redirect", path=path, redirect_to=decision.redirect_to)
        return RedirectResponse(decision.redirect_to, status_code=307)
