"""Session token lifecycle: issuance, validation, renewal and invalidation."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from fastapi import Response
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.security import hash_session_token, session_log_id
from app.database import as_utc, store_operation
from app.models.sessions import sessions
from app.models.users import users

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


@dataclass
class SessionValidationResult:
    """Outcome of validating a session token."""

    session: dict | None = None
    user: dict | None = None
    renewed: bool = False

    @property
    def is_valid(self) -> bool:
        return self.session is not None and self.user is not None


class SessionService:
    """Sole authority for session rows.

    Raw tokens are only ever hashed here; they are never stored or logged.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
        lifetime: timedelta | None = None,
        renewal_threshold: timedelta | None = None,
    ):
        """
        Initialize session service.

        Args:
            db: Database session used as the session store
            clock: Source of the current time
            lifetime: Session lifetime, defaults to SESSION_LIFETIME_DAYS
            renewal_threshold: Remaining lifetime below which a session is
                renewed, defaults to SESSION_RENEWAL_THRESHOLD_DAYS
        """
        self.db = db
        self.clock = clock
        self.lifetime = lifetime or timedelta(days=settings.session_lifetime_days)
        self.renewal_threshold = renewal_threshold or timedelta(
            days=settings.session_renewal_threshold_days
        )

    async def create_session(self, token: str, user_id: str) -> dict:
        """
        Create and persist a session for a freshly generated token.

        Args:
            token: Raw session token
            user_id: Owning user id

        Returns:
            Session dict with id, user_id and expires_at
        """
        session = {
            "id": hash_session_token(token),
            "user_id": user_id,
            "expires_at": self.clock() + self.lifetime,
        }

        async with store_operation(self.db, "create_session", user_id=user_id):
            await self.db.execute(sessions.insert().values(**session))
            await self.db.commit()

        logger.info(
            "session_created",
            session=session_log_id(session["id"]),
            user_id=user_id,
            expires_at=session["expires_at"].isoformat(),
        )
        return session

    async def validate_session_token(self, token: str) -> SessionValidationResult:
        """
        Resolve a raw token to its session and user.

        Expired sessions are deleted. Sessions inside the renewal window are
        extended to a full lifetime from now.

        Args:
            token: Raw session token from the cookie

        Returns:
            Validation result; both fields are None when the token is not valid
        """
        session_id = hash_session_token(token)

        # Labels must not clash with the session columns (users.id vs session.user_id)
        user_columns = [column.label(f"owner_{column.name}") for column in users.c]
        query = (
            select(sessions.c.id, sessions.c.user_id, sessions.c.expires_at, *user_columns)
            .join_from(sessions, users, sessions.c.user_id == users.c.id)
            .where(sessions.c.id == session_id)
        )

        async with store_operation(
            self.db, "validate_session", session=session_log_id(session_id)
        ):
            result = await self.db.execute(query)
            row = result.mappings().first()

        if row is None:
            return SessionValidationResult()

        session = {
            "id": row["id"],
            "user_id": row["user_id"],
            "expires_at": as_utc(row["expires_at"]),
        }
        user = {column.name: row[f"owner_{column.name}"] for column in users.c}

        now = self.clock()
        if now >= session["expires_at"]:
            await self.invalidate_session(session["id"])
            logger.info("session_expired", session=session_log_id(session["id"]), user_id=user["id"])
            return SessionValidationResult()

        renewed = False
        if now >= session["expires_at"] - self.renewal_threshold:
            session["expires_at"] = now + self.lifetime
            async with store_operation(self.db, "renew_session", user_id=user["id"]):
                await self.db.execute(
                    update(sessions)
                    .where(sessions.c.id == session["id"])
                    .values(expires_at=session["expires_at"])
                )
                await self.db.commit()
            renewed = True
            logger.info(
                "session_renewed",
                session=session_log_id(session["id"]),
                user_id=user["id"],
                expires_at=session["expires_at"].isoformat(),
            )

        return SessionValidationResult(session=session, user=user, renewed=renewed)

    async def invalidate_session(self, session_id: str) -> None:
        """Delete a session. Deleting an unknown id is a no-op."""
        async with store_operation(
            self.db, "invalidate_session", session=session_log_id(session_id)
        ):
            await self.db.execute(delete(sessions).where(sessions.c.id == session_id))
            await self.db.commit()

    async def invalidate_user_sessions(self, user_id: str) -> int:
        """
        Delete every session of a user.

        Returns:
            Number of sessions deleted
        """
        async with store_operation(self.db, "invalidate_user_sessions", user_id=user_id):
            result = await self.db.execute(delete(sessions).where(sessions.c.user_id == user_id))
            await self.db.commit()

        count = result.rowcount  # type: ignore[attr-defined]
        logger.info("user_sessions_invalidated", user_id=user_id, count=count)
        return count


def set_session_cookie(response: Response, token: str, expires_at: datetime) -> None:
    """Write the raw session token cookie, expiring with the session."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        expires=expires_at,
        path="/",
    )


def delete_session_cookie(response: Response) -> None:
    """Overwrite the session cookie with an empty, immediately expired value."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value="",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        max_age=0,
        path="/",
    )
