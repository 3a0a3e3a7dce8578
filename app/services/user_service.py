"""User service for business logic."""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException
from app.core.security import generate_user_id
from app.database import store_operation
from app.models.users import users
from app.schemas.users import UserCreate

logger = structlog.get_logger(__name__)


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with a database session."""
        self.db = db

    async def create_user(self, user_data: UserCreate) -> dict:
        """
        Create a new user with a fresh local id.

        A concurrent insert for the same provider id resolves to the row that
        won the race instead of failing.
        """
        query = (
            users.insert()
            .values(
                id=generate_user_id(),
                provider_id=user_data.provider_id,
                name=user_data.name,
                email=user_data.email,
                image=user_data.image,
            )
            .returning(users)
        )

        try:
            async with store_operation(self.db, "create_user"):
                try:
                    result = await self.db.execute(query)
                    user = result.mappings().first()
                    await self.db.commit()
                except IntegrityError:
                    await self.db.rollback()
                    existing = await self.get_user_by_provider_id(user_data.provider_id)
                    if existing is None:
                        raise ConflictException("Email is already linked to another account")
                    return existing
        except ConflictException:
            logger.warning("user_email_conflict", provider_id=user_data.provider_id)
            raise

        if not user:
            raise ValueError("Failed to create user")

        logger.info("user_created", user_id=user["id"])
        return dict(user)

    async def get_user_by_id(self, user_id: str) -> dict | None:
        """Get user by local id."""
        async with store_operation(self.db, "get_user_by_id", user_id=user_id):
            result = await self.db.execute(select(users).where(users.c.id == user_id))
            user = result.mappings().first()
        return dict(user) if user else None

    async def get_user_by_provider_id(self, provider_id: str) -> dict | None:
        """Get user by identity provider subject id."""
        async with store_operation(self.db, "get_user_by_provider_id"):
            result = await self.db.execute(
                select(users).where(users.c.provider_id == provider_id)
            )
            user = result.mappings().first()
        return dict(user) if user else None

    async def get_or_create_user(self, user_data: UserCreate) -> tuple[dict, bool]:
        """
        Get the user for a provider id or create it.

        Returns:
            Tuple of (user dict, whether it was created)
        """
        user = await self.get_user_by_provider_id(user_data.provider_id)
        if user:
            return user, False

        return await self.create_user(user_data), True
