"""Bookmark model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Table, Text, Uuid, func

from app.models.users import metadata

bookmarks = Table(
    "bookmarks",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "user_id",
        Text,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("title", Text, nullable=False),
    Column("url", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Owner listing, newest first
    Index("idx_bookmarks_user_created", "user_id", "created_at"),
)
