"""Tests for session tokens, the session service and per-request auth context."""

import string
from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from app import dependencies
from app.core.security import (
    create_code_challenge,
    generate_code_verifier,
    generate_session_token,
    generate_user_id,
    hash_session_token,
    session_log_id,
)
from app.database import as_utc
from app.dependencies import get_auth_context
from app.models.sessions import sessions
from app.services.session_service import SessionService

URLSAFE = set(string.ascii_letters + string.digits + "-_")


async def _stored_expiry(db: AsyncSession, session_id: str):
    result = await db.execute(select(sessions.c.expires_at).where(sessions.c.id == session_id))
    value = result.scalar_one_or_none()
    return as_utc(value) if value is not None else None


# ============================================================================
# Token helpers
# ============================================================================


def test_session_token_is_24_urlsafe_characters():
    """Test tokens encode 18 random bytes without padding."""
    token = generate_session_token()
    assert len(token) == 24
    assert set(token) <= URLSAFE
    assert generate_session_token() != token


def test_hash_session_token_is_sha256_hex():
    """Test the session id is the lowercase hex SHA-256 of the token."""
    assert (
        hash_session_token("abc")
        == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )
    assert hash_session_token("abc") == hash_session_token("abc")


def test_user_id_is_opaque():
    """Test local user ids are 15 random bytes in base64url."""
    user_id = generate_user_id()
    assert len(user_id) == 20
    assert set(user_id) <= URLSAFE


def test_code_challenge_matches_rfc7636_example():
    """Test the S256 challenge against the RFC 7636 appendix B vector."""
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert create_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"
    assert len(generate_code_verifier()) == 43


def test_session_log_id_is_a_short_prefix():
    session_id = hash_session_token("token")
    assert session_log_id(session_id) == session_id[:12]


# ============================================================================
# Session service
# ============================================================================


@pytest.mark.asyncio
async def test_create_session_stores_hash_with_thirty_day_expiry(
    db_session: AsyncSession, test_user: dict, clock
) -> None:
    """Test a session row is keyed by the token hash and lives 30 days."""
    token = generate_session_token()
    session = await SessionService(db_session, clock=clock).create_session(
        token, test_user["id"]
    )

    assert session["id"] == hash_session_token(token)
    assert session["user_id"] == test_user["id"]
    assert session["expires_at"] == clock.now + timedelta(days=30)
    assert await _stored_expiry(db_session, session["id"]) == session["expires_at"]

    # The raw token is never stored
    result = await db_session.execute(select(sessions.c.id))
    assert token not in result.scalars().all()


@pytest.mark.asyncio
async def test_validate_unknown_token(db_session: AsyncSession, test_user: dict) -> None:
    """Test an unknown token resolves to no session and no user."""
    result = await SessionService(db_session).validate_session_token("not-a-real-token")

    assert not result.is_valid
    assert result.session is None
    assert result.user is None


@pytest.mark.asyncio
async def test_validate_fresh_session_is_not_renewed(
    db_session: AsyncSession, test_user: dict, clock, make_session_token
) -> None:
    """Test a session outside the renewal window keeps its expiry."""
    service = SessionService(db_session, clock=clock)
    token = await make_session_token(test_user["id"], clock=clock)
    expires_at = clock.now + timedelta(days=30)

    clock.advance(days=10)
    result = await service.validate_session_token(token)

    assert result.is_valid
    assert result.renewed is False
    assert result.user["id"] == test_user["id"]
    assert result.user["email"] == test_user["email"]
    assert result.session["expires_at"] == expires_at


@pytest.mark.asyncio
async def test_validate_resolves_session_and_owner(
    db_session: AsyncSession, test_user: dict, session_token: str
) -> None:
    """Test the session row and the full user row come back side by side."""
    result = await SessionService(db_session).validate_session_token(session_token)

    assert result.session["id"] == hash_session_token(session_token)
    assert result.session["user_id"] == test_user["id"]
    assert result.user["id"] == test_user["id"]
    assert result.user["provider_id"] == test_user["provider_id"]
    assert result.user["name"] == test_user["name"]
    assert set(result.user) == {"id", "provider_id", "name", "email", "image", "created_at"}


@pytest.mark.asyncio
async def test_validate_twice_without_renewal_is_stable(
    db_session: AsyncSession, test_user: dict, clock, make_session_token
) -> None:
    """Test repeated validation inside the lifetime returns the same session."""
    service = SessionService(db_session, clock=clock)
    token = await make_session_token(test_user["id"], clock=clock)

    clock.advance(days=1)
    first = await service.validate_session_token(token)
    clock.advance(days=1)
    second = await service.validate_session_token(token)

    assert first.session["id"] == second.session["id"] == hash_session_token(token)
    assert first.session["expires_at"] == second.session["expires_at"]
    assert not first.renewed and not second.renewed


@pytest.mark.asyncio
async def test_validate_just_outside_renewal_window(
    db_session: AsyncSession, test_user: dict, clock, make_session_token
) -> None:
    """Test one second before the 15-day threshold does not renew."""
    service = SessionService(db_session, clock=clock)
    token = await make_session_token(test_user["id"], clock=clock)
    expires_at = clock.now + timedelta(days=30)

    clock.now = expires_at - timedelta(days=15, seconds=1)
    result = await service.validate_session_token(token)

    assert result.renewed is False
    assert result.session["expires_at"] == expires_at


@pytest.mark.asyncio
async def test_validate_at_renewal_threshold_extends_session(
    db_session: AsyncSession, test_user: dict, clock, make_session_token
) -> None:
    """Test a session with exactly 15 days left is extended to now + 30 days."""
    service = SessionService(db_session, clock=clock)
    token = await make_session_token(test_user["id"], clock=clock)
    expires_at = clock.now + timedelta(days=30)

    clock.now = expires_at - timedelta(days=15)
    result = await service.validate_session_token(token)

    assert result.is_valid
    assert result.renewed is True
    assert result.session["expires_at"] == clock.now + timedelta(days=30)
    assert await _stored_expiry(db_session, hash_session_token(token)) == (
        clock.now + timedelta(days=30)
    )


@pytest.mark.asyncio
async def test_validate_expired_session_deletes_row(
    db_session: AsyncSession, test_user: dict, clock, make_session_token
) -> None:
    """Test a session is invalid from the instant it expires and is removed."""
    service = SessionService(db_session, clock=clock)
    token = await make_session_token(test_user["id"], clock=clock)

    clock.advance(days=30)
    result = await service.validate_session_token(token)

    assert not result.is_valid
    assert await _stored_expiry(db_session, hash_session_token(token)) is None


@pytest.mark.asyncio
async def test_invalidate_session_is_idempotent(
    db_session: AsyncSession, test_user: dict, make_session_token
) -> None:
    """Test invalidating twice, or an unknown id, does not fail."""
    service = SessionService(db_session)
    token = await make_session_token(test_user["id"])
    session_id = hash_session_token(token)

    await service.invalidate_session(session_id)
    await service.invalidate_session(session_id)
    await service.invalidate_session("unknown")

    assert not (await service.validate_session_token(token)).is_valid


@pytest.mark.asyncio
async def test_invalidate_user_sessions_only_touches_that_user(
    db_session: AsyncSession, test_user: dict, make_user, make_session_token
) -> None:
    """Test log-out-everywhere removes every session of one user."""
    other = await make_user(
        user_id="user-2", provider_id="google-sub-2", email="grace@example.com"
    )
    service = SessionService(db_session)
    first = await make_session_token(test_user["id"])
    second = await make_session_token(test_user["id"])
    others = await make_session_token(other["id"])

    assert await service.invalidate_user_sessions(test_user["id"]) == 2

    assert not (await service.validate_session_token(first)).is_valid
    assert not (await service.validate_session_token(second)).is_valid
    assert (await service.validate_session_token(others)).is_valid


# ============================================================================
# Per-request auth context
# ============================================================================


def _request_with_cookie(cookie: str | None) -> Request:
    headers = [(b"cookie", cookie.encode())] if cookie else []
    return Request({"type": "http", "method": "GET", "path": "/dashboard", "headers": headers})


@pytest.mark.asyncio
async def test_auth_context_is_resolved_once_per_request(
    db_session: AsyncSession, session_token: str, monkeypatch
) -> None:
    """Test repeated lookups within one request hit the session store once."""
    calls = []
    original = SessionService.validate_session_token

    async def counting_validate(self, token):
        calls.append(token)
        return await original(self, token)

    monkeypatch.setattr(dependencies.SessionService, "validate_session_token", counting_validate)
    request = _request_with_cookie(f"auth-session={session_token}")

    first = await get_auth_context(request, db_session)
    second = await get_auth_context(request, db_session)

    assert first is second
    assert first.user is not None
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_auth_context_without_cookie_is_anonymous(db_session: AsyncSession) -> None:
    """Test a request without the cookie never touches the store."""
    context = await get_auth_context(_request_with_cookie(None), db_session)

    assert context.session is None
    assert context.user is None
    assert context.renewed is False
