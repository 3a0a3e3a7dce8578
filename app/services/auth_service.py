"""Authentication service for the Google sign-in flow."""

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CsrfMismatchException, InvalidRequestException
from app.core.google_oauth import GoogleOAuthClient
from app.core.security import generate_code_verifier, generate_session_token, generate_state
from app.schemas.users import UserCreate
from app.services.session_service import SessionService, utc_now
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)


@dataclass
class AuthorizationRequest:
    """Values needed to start the OAuth redirect."""

    url: str
    state: str
    code_verifier: str


@dataclass
class LoginResult:
    """Successful callback: the user and a freshly issued session."""

    user: dict
    session: dict
    token: str
    created_user: bool = False


def start_login(oauth_client: GoogleOAuthClient) -> AuthorizationRequest:
    """Generate state and PKCE verifier and the matching authorization URL."""
    state = generate_state()
    code_verifier = generate_code_verifier()
    return AuthorizationRequest(
        url=oauth_client.create_authorization_url(state, code_verifier),
        state=state,
        code_verifier=code_verifier,
    )


class AuthService:
    """Authentication service for handling the OAuth callback state machine."""

    def __init__(
        self,
        db: AsyncSession,
        oauth_client: GoogleOAuthClient,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize auth service with its store and provider client."""
        self.oauth = oauth_client
        self.users = UserService(db)
        self.sessions = SessionService(db, clock=clock)

    async def handle_google_callback(
        self,
        code: str | None,
        state: str | None,
        stored_state: str | None,
        code_verifier: str | None,
    ) -> LoginResult:
        """
        Handle the OAuth callback: verify state, exchange code, resolve user, issue session.

        Args:
            code: Authorization code from the query string
            state: State from the query string
            stored_state: State stashed in the state cookie
            code_verifier: PKCE verifier stashed in the verifier cookie

        Returns:
            Login result with the raw session token to put in the cookie

        Raises:
            InvalidRequestException: If any of the four values is missing
            CsrfMismatchException: If state does not match the stored state
            ExchangeFailedException: If the provider rejects the exchange
            ConflictException: If a new account's email belongs to another user
        """
        if not code or not state or not stored_state or not code_verifier:
            logger.warning("oauth_callback_invalid_request")
            raise InvalidRequestException()

        # Checked before any network call
        if not secrets.compare_digest(state, stored_state):
            logger.warning("oauth_callback_state_mismatch")
            raise CsrfMismatchException()

        tokens = await self.oauth.validate_authorization_code(code, code_verifier)
        claims = self.oauth.decode_id_token(tokens.id_token)

        user, created = await self.users.get_or_create_user(
            UserCreate(
                provider_id=claims.sub,
                name=claims.display_name,
                email=claims.email or "",
                image=claims.picture,
            )
        )

        token = generate_session_token()
        session = await self.sessions.create_session(token, user["id"])

        logger.info("user_logged_in", user_id=user["id"], new_user=created)
        return LoginResult(user=user, session=session, token=token, created_user=created)
