"""Bookmark service: owner-scoped CRUD that feeds the change stream."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import store_operation
from app.models.bookmarks import bookmarks
from app.realtime.events import ChangeEvent, ChangeEventType
from app.realtime.feed import RedisChangeFeed
from app.schemas.bookmarks import BookmarkCreate, BookmarkResponse, BookmarkUpdate

logger = structlog.get_logger(__name__)


class BookmarkService:
    """Service for bookmark operations.

    Every query is filtered by owner; a bookmark is never visible to or
    mutable by another user.
    """

    def __init__(self, db: AsyncSession, feed: RedisChangeFeed | None = None):
        """Initialize service with a database session and an optional change feed."""
        self.db = db
        self.feed = feed

    async def list_bookmarks(self, user_id: str) -> list[dict]:
        """List a user's bookmarks, newest first."""
        query = (
            select(bookmarks)
            .where(bookmarks.c.user_id == user_id)
            .order_by(bookmarks.c.created_at.desc(), bookmarks.c.id)
        )
        async with store_operation(self.db, "list_bookmarks", user_id=user_id):
            result = await self.db.execute(query)
            rows = result.mappings().all()
        return [dict(row) for row in rows]

    async def get_bookmark(self, user_id: str, bookmark_id: UUID) -> dict | None:
        """Get one of the user's bookmarks."""
        query = select(bookmarks).where(
            bookmarks.c.id == bookmark_id, bookmarks.c.user_id == user_id
        )
        async with store_operation(self.db, "get_bookmark", user_id=user_id):
            result = await self.db.execute(query)
            row = result.mappings().first()
        return dict(row) if row else None

    async def create_bookmark(self, user_id: str, data: BookmarkCreate) -> dict:
        """Insert a bookmark and publish a created event."""
        query = (
            bookmarks.insert()
            .values(
                user_id=user_id,
                title=data.title,
                url=data.url,
                created_at=datetime.now(UTC),
            )
            .returning(bookmarks)
        )
        async with store_operation(self.db, "create_bookmark", user_id=user_id):
            result = await self.db.execute(query)
            row = result.mappings().first()
            await self.db.commit()

        if not row:
            raise ValueError("Failed to create bookmark")

        bookmark = dict(row)
        logger.info("bookmark_created", user_id=user_id, bookmark_id=str(bookmark["id"]))
        await self._publish(user_id, ChangeEventType.CREATED, bookmark)
        return bookmark

    async def update_bookmark(
        self, user_id: str, bookmark_id: UUID, data: BookmarkUpdate
    ) -> dict | None:
        """Update title and/or URL; last write wins. Returns None if not found."""
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return await self.get_bookmark(user_id, bookmark_id)

        query = (
            update(bookmarks)
            .where(bookmarks.c.id == bookmark_id, bookmarks.c.user_id == user_id)
            .values(**update_data)
            .returning(bookmarks)
        )
        async with store_operation(
            self.db, "update_bookmark", user_id=user_id, bookmark_id=str(bookmark_id)
        ):
            result = await self.db.execute(query)
            row = result.mappings().first()
            await self.db.commit()

        if not row:
            return None

        bookmark = dict(row)
        logger.info("bookmark_updated", user_id=user_id, bookmark_id=str(bookmark_id))
        await self._publish(user_id, ChangeEventType.UPDATED, bookmark)
        return bookmark

    async def delete_bookmark(self, user_id: str, bookmark_id: UUID) -> bool:
        """
        Delete a bookmark. Deleting an absent bookmark is a no-op.

        Returns:
            True if a row was removed
        """
        query = (
            delete(bookmarks)
            .where(bookmarks.c.id == bookmark_id, bookmarks.c.user_id == user_id)
            .returning(bookmarks)
        )
        async with store_operation(
            self.db, "delete_bookmark", user_id=user_id, bookmark_id=str(bookmark_id)
        ):
            result = await self.db.execute(query)
            row = result.mappings().first()
            await self.db.commit()

        if not row:
            return False

        logger.info("bookmark_deleted", user_id=user_id, bookmark_id=str(bookmark_id))
        await self._publish(user_id, ChangeEventType.DELETED, dict(row))
        return True

    async def _publish(self, user_id: str, event_type: ChangeEventType, bookmark: dict) -> None:
        if self.feed is None:
            return
        event = ChangeEvent(event_type=event_type, record=BookmarkResponse.model_validate(bookmark))
        await self.feed.publish(user_id, event)
