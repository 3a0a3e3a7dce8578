"""Database models."""

from app.models.bookmarks import bookmarks
from app.models.sessions import sessions
from app.models.users import metadata, users

__all__ = [
    "bookmarks",
    "metadata",
    "sessions",
    "users",
]
