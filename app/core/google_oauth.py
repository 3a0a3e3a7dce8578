"""Google OAuth 2.0 client: authorization URL, code exchange and ID token claims."""

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
from jose import JWTError, jwt
from pydantic import ValidationError
from structlog import get_logger

from app.config import settings
from app.core.exceptions import ExchangeFailedException
from app.core.security import create_code_challenge
from app.schemas.auth import GoogleClaims

logger = get_logger(__name__)


@dataclass
class GoogleTokens:
    """Tokens returned by the Google token endpoint."""

    id_token: str
    access_token: str | None = None


class GoogleOAuthClient:
    """Authorization code flow with PKCE against Google."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            client_id: OAuth client id, defaults to GOOGLE_CLIENT_ID
            client_secret: OAuth client secret, defaults to GOOGLE_CLIENT_SECRET
            redirect_uri: Callback URL, defaults to GOOGLE_REDIRECT_URI
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.client_id = client_id or settings.google_client_id
        self.client_secret = client_secret or settings.google_client_secret
        self.redirect_uri = redirect_uri or settings.google_redirect_uri
        self.transport = transport

    def create_authorization_url(self, state: str, code_verifier: str) -> str:
        """
        Build the Google consent screen URL.

        Args:
            state: CSRF state echoed back on the callback
            code_verifier: PKCE verifier; only its S256 challenge is sent

        Returns:
            Authorization URL to redirect the browser to
        """
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": settings.google_scopes,
            "state": state,
            "code_challenge": create_code_challenge(code_verifier),
            "code_challenge_method": "S256",
        }
        return f"{settings.google_authorization_endpoint}?{urlencode(params)}"

    async def validate_authorization_code(self, code: str, code_verifier: str) -> GoogleTokens:
        """
        Exchange an authorization code for tokens.

        Raises:
            ExchangeFailedException: On transport errors, non-2xx responses or
                a response without an ID token
        """
        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.post(
                    settings.google_token_endpoint,
                    data={
                        "grant_type": "authorization_code",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "code_verifier": code_verifier,
                        "redirect_uri": self.redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("oauth_exchange_failed", error=str(e))
                raise ExchangeFailedException() from e

        id_token = payload.get("id_token") if isinstance(payload, dict) else None
        if not id_token:
            logger.warning("oauth_exchange_failed", error="no id_token in token response")
            raise ExchangeFailedException()

        return GoogleTokens(id_token=id_token, access_token=payload.get("access_token"))

    @staticmethod
    def decode_id_token(id_token: str) -> GoogleClaims:
        """
        Read the claims of an ID token.

        The token comes straight from the token endpoint over TLS, so the
        signature is not re-verified.

        Raises:
            ExchangeFailedException: If the token is malformed or has no subject
        """
        try:
            claims = jwt.get_unverified_claims(id_token)
            return GoogleClaims.model_validate(claims)
        except (JWTError, ValidationError) as e:
            logger.warning("oauth_id_token_invalid", error=str(e))
            raise ExchangeFailedException() from e


_google_oauth_client: GoogleOAuthClient | None = None


def get_google_oauth_client() -> GoogleOAuthClient:
    """Get the global Google OAuth client instance."""
    global _google_oauth_client
    if _google_oauth_client is None:
        _google_oauth_client = GoogleOAuthClient()
    return _google_oauth_client
