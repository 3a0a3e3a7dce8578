"""Session model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, ForeignKey, Table, Text

from app.models.users import metadata

sessions = Table(
    "session",
    metadata,
    # SHA-256 hex digest of the session token; the raw token is never stored
    Column("id", Text, primary_key=True),
    Column(
        "user_id",
        Text,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("expires_at", DateTime(timezone=True), nullable=False),
)
