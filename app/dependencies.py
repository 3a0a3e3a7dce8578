"""FastAPI dependencies."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request, WebSocket
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.exceptions import UnauthorizedException
from app.core.google_oauth import GoogleOAuthClient, get_google_oauth_client
from app.database import get_db, get_session_factory
from app.realtime.feed import RedisChangeFeed, get_change_feed
from app.services.session_service import SessionService


@dataclass
class RequestAuthContext:
    """Session resolution for one request, computed at most once."""

    session: dict | None = None
    user: dict | None = None
    renewed: bool = False
    # Raw token, only kept so a renewed session can re-issue its cookie
    token: str | None = None

    def clear(self) -> None:
        """Forget the session, e.g. after logout."""
        self.session = None
        self.user = None
        self.renewed = False
        self.token = None


async def get_auth_context(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RequestAuthContext:
    """
    Resolve the session cookie into a per-request auth context.

    The context is stored on request.state so later lookups within the same
    request reuse it instead of hitting the session store again.

    Args:
        request: Current request
        db: Database session

    Returns:
        Auth context; session and user are None for anonymous requests
    """
    context = getattr(request.state, "auth", None)
    if context is not None:
        return context

    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        context = RequestAuthContext()
    else:
        result = await SessionService(db).validate_session_token(token)
        if result.is_valid:
            context = RequestAuthContext(
                session=result.session,
                user=result.user,
                renewed=result.renewed,
                token=token,
            )
        else:
            context = RequestAuthContext()

    request.state.auth = context
    return context


async def get_current_user(
    context: Annotated[RequestAuthContext, Depends(get_auth_context)],
) -> dict:
    """
    Get the authenticated user.

    Raises:
        UnauthorizedException: If the request has no valid session
    """
    if context.user is None:
        raise UnauthorizedException()
    return context.user


async def get_websocket_user(
    websocket: WebSocket,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> dict | None:
    """
    Validate the session cookie sent with a WebSocket handshake.

    The database session is closed before returning so an open feed never
    pins a pooled connection.
    """
    token = websocket.cookies.get(settings.session_cookie_name)
    if not token:
        return None
    async with session_factory() as db:
        result = await SessionService(db).validate_session_token(token)
    return result.user


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
AuthContext = Annotated[RequestAuthContext, Depends(get_auth_context)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
WebSocketUser = Annotated[dict | None, Depends(get_websocket_user)]
ChangeFeed = Annotated[RedisChangeFeed, Depends(get_change_feed)]
GoogleOAuth = Annotated[GoogleOAuthClient, Depends(get_google_oauth_client)]
