"""Security utilities for session tokens, identifiers and PKCE."""

import base64
import hashlib
import secrets

# 18 random bytes encode to a 24 character base64url token (144 bits of entropy)
SESSION_TOKEN_BYTES = 18
USER_ID_BYTES = 15


def _encode_base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_session_token() -> str:
    """
    Generate a random, URL-safe session token.

    Returns:
        Raw session token. Only its hash may be persisted.
    """
    return _encode_base64url(secrets.token_bytes(SESSION_TOKEN_BYTES))


def hash_session_token(token: str) -> str:
    """
    Derive the session id from a raw session token.

    Args:
        token: Raw session token

    Returns:
        Lowercase hex SHA-256 digest of the UTF-8 encoded token
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_user_id() -> str:
    """Generate an opaque local user id."""
    return _encode_base64url(secrets.token_bytes(USER_ID_BYTES))


def generate_state() -> str:
    """Generate an OAuth state value."""
    return secrets.token_urlsafe(32)


def generate_code_verifier() -> str:
    """Generate a PKCE code verifier (43 characters, RFC 7636 alphabet)."""
    return _encode_base64url(secrets.token_bytes(32))


def create_code_challenge(code_verifier: str) -> str:
    """
    Create the S256 PKCE challenge for a verifier.

    Args:
        code_verifier: PKCE code verifier

    Returns:
        BASE64URL(SHA256(verifier)) without padding
    """
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _encode_base64url(digest)


def session_log_id(session_id: str) -> str:
    """Short prefix of a hashed session id, safe for log lines."""
    return session_id[:12]
